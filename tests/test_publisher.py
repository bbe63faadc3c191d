"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import tempfile
import unittest
from pathlib import Path

from adf2conf.adf import parse_node
from adf2conf.api import ConfluenceClient
from adf2conf.environment import ConfluenceDeployment
from adf2conf.metadata import ConfluenceSiteMetadata
from adf2conf.publisher import Publisher
from adf2conf.scanner import PublishDocument
from adf2conf.serializer import JsonType
from adf2conf.transport import ConfluenceTransport
from tests.utility import RecordingSender, TypedTestCase, make_response

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(funcName)s [%(lineno)d] - %(message)s",
)

BODY: JsonType = {
    "type": "doc",
    "version": 1,
    "content": [
        {"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]},
        {"type": "mediaSingle", "content": [{"type": "media", "attrs": {"type": "file", "id": "file-1"}}]},
    ],
}


def page_response(page_id: str, version: int = 1) -> JsonType:
    return {
        "id": page_id,
        "type": "page",
        "status": "current",
        "title": f"Page {page_id}",
        "space": {"key": "DEV", "name": "Development"},
        "version": {"number": version, "minorEdit": False, "by": {"username": "jdoe"}},
        "ancestors": [{"id": "1", "type": "page"}],
    }


def make_document(
    path: Path,
    page_id: str | None,
    *,
    title: str | None = None,
    parent_id: str | None = None,
    labels: list[str] | None = None,
    attachments: list[Path] | None = None,
) -> PublishDocument:
    return PublishDocument(
        path=path,
        page_id=page_id,
        title=title,
        parent_id=parent_id,
        labels=labels or [],
        attachments=attachments or [],
        body=BODY,
        tree=parse_node(BODY),
    )


class TestPublisher(TypedTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def make_publisher(self, sender: RecordingSender, deployment: ConfluenceDeployment) -> Publisher:
        transport = ConfluenceTransport(sender, deployment, domain="example.com")
        return Publisher(ConfluenceClient(transport, ConfluenceSiteMetadata("example.com", deployment)))

    def test_publish_on_data_center(self) -> None:
        image = self.dir / "diagram.png"
        image.write_bytes(b"PNG")

        sender = RecordingSender(
            make_response(200, {"results": [{"id": "att9", "type": "attachment", "title": "diagram.png", "extensions": {"fileId": "file-1"}}]}),
            make_response(200, page_response("123", version=4)),
            make_response(200, {"id": "123"}),
            make_response(200, {"results": []}),
        )
        publisher = self.make_publisher(sender, ConfluenceDeployment.DATA_CENTER)
        document = make_document(self.dir / "page.json", "123", parent_id="42", labels=["adr"], attachments=[image])
        results = publisher.publish([document])

        self.assertTrue(results.succeeded)
        self.assertEqual(len(results.published), 1)
        self.assertEqual(results.published[0].url, "https://example.com/spaces/DEV/pages/123")
        self.assertEqual(results.published[0].page.title, "Page 123")

        upload, get, update, labels = sender.sent
        self.assertEqual((upload.method, upload.path), ("POST", "/api/content/123/child/attachment"))
        self.assertEqual((get.method, get.path), ("GET", "/api/content/123"))
        self.assertEqual((update.method, update.path), ("PUT", "/api/content/123"))
        self.assertEqual(
            update.json,
            {
                "id": "123",
                "type": "page",
                "title": "Page 123",
                "version": {"number": 5, "minorEdit": True},
                "body": {
                    "storage": {
                        "value": '<p>Hello</p><ac:image><ri:attachment ri:filename="diagram.png"/></ac:image>',
                        "representation": "storage",
                    }
                },
                "space": {"key": "DEV"},
            },
        )
        self.assertEqual((labels.method, labels.path), ("POST", "/api/content/123/label"))
        self.assertEqual(labels.json, [{"prefix": "global", "name": "adr"}])

    def test_publish_on_cloud(self) -> None:
        sender = RecordingSender(
            make_response(200, page_response("123")),
            make_response(200, {"id": "123"}),
        )
        publisher = self.make_publisher(sender, ConfluenceDeployment.CLOUD)
        results = publisher.publish([make_document(self.dir / "page.json", "123", title="New title", parent_id="42")])

        self.assertTrue(results.succeeded)
        self.assertEqual(results.published[0].url, "https://example.com/wiki/spaces/DEV/pages/123")

        update = sender.sent[1]
        assert isinstance(update.json, dict)
        self.assertEqual(update.json["title"], "New title")
        self.assertEqual(update.json["ancestors"], [{"id": "42"}])

    def test_failure_isolation(self) -> None:
        sender = RecordingSender(
            make_response(409, {"message": "Version must be incremented on update. Page was last updated by another user."}),
            make_response(200, page_response("456")),
            make_response(200, {"id": "456"}),
        )
        publisher = self.make_publisher(sender, ConfluenceDeployment.CLOUD)
        documents = [
            make_document(self.dir / "missing.json", None),
            make_document(self.dir / "first.json", "123"),
            make_document(self.dir / "second.json", "456"),
        ]
        with self.assertLogs("adf2conf.publisher", level=logging.ERROR) as logs:
            results = publisher.publish(documents)

        self.assertFalse(results.succeeded)
        self.assertEqual([page.file_name for page in results.published], [str(self.dir / "second.json")])
        self.assertEqual([failed.file_name for failed in results.failed], [str(self.dir / "missing.json"), str(self.dir / "first.json")])
        self.assertIn("page ID not specified", results.failed[0].reason)
        self.assertIn("Received a 409", results.failed[1].reason)
        self.assertTrue(any("different account" in line for line in logs.output))

    def test_missing_attachment(self) -> None:
        sender = RecordingSender()
        publisher = self.make_publisher(sender, ConfluenceDeployment.CLOUD)
        results = publisher.publish([make_document(self.dir / "page.json", "123", attachments=[self.dir / "missing.png"])])

        self.assertEqual(len(results.failed), 1)
        self.assertIn("file not found", results.failed[0].reason)
        self.assertEqual(sender.sent, [])


if __name__ == "__main__":
    unittest.main()

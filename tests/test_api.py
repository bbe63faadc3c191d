"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import unittest

from adf2conf.api import ConfluenceClient
from adf2conf.api_types import ConfluenceLabel, ConfluenceStatus
from adf2conf.environment import ConfluenceDeployment
from adf2conf.metadata import ConfluenceSiteMetadata
from adf2conf.serializer import JsonType
from adf2conf.transport import ConfluenceTransport
from tests.utility import RecordingSender, TypedTestCase, make_response


def make_client(sender: RecordingSender, deployment: ConfluenceDeployment = ConfluenceDeployment.CLOUD) -> ConfluenceClient:
    transport = ConfluenceTransport(sender, deployment, domain="example.com")
    return ConfluenceClient(transport, ConfluenceSiteMetadata("example.com", deployment))


class TestConfluenceClient(TypedTestCase):
    def test_get_content(self) -> None:
        sender = RecordingSender(
            make_response(
                200,
                {
                    "id": "123",
                    "type": "page",
                    "status": "current",
                    "title": "Page",
                    "version": {"number": 3},
                    "space": {"key": "DEV"},
                    "ancestors": [{"id": "1"}],
                },
            )
        )
        page = make_client(sender).get_content("123")

        request = sender.sent[0]
        self.assertEqual((request.method, request.path), ("GET", "/api/content/123"))
        self.assertEqual(request.query, {"expand": "version,space,ancestors"})
        self.assertEqual(page.status, ConfluenceStatus.CURRENT)
        self.assertEqual(page.version.number, 3)
        self.assertEqual([ancestor.id for ancestor in page.ancestors], ["1"])

    def test_create_content(self) -> None:
        tree = '{"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "New"}]}]}'
        payload: JsonType = {
            "type": "page",
            "title": "New page",
            "space": {"key": "DEV"},
            "body": {"atlas_doc_format": {"value": tree, "representation": "atlas_doc_format"}},
        }
        sender = RecordingSender(make_response(200, {"id": "456"}))
        result = make_client(sender).create_content(payload)

        request = sender.sent[0]
        self.assertEqual((request.method, request.path), ("POST", "/api/content"))
        self.assertIsNone(request.query)
        self.assertEqual(
            request.json,
            {
                "type": "page",
                "title": "New page",
                "space": {"key": "DEV"},
                "body": {"storage": {"value": "<p>New</p>", "representation": "storage"}},
            },
        )
        self.assertEqual(result, {"id": "456"})

    def test_get_attachments(self) -> None:
        sender = RecordingSender(make_response(200, {"results": []}), make_response(200, {"results": []}))
        client = make_client(sender)
        client.get_attachments("123")
        client.get_attachments("123", filename="diagram.png")

        listing, filtered = sender.sent
        self.assertEqual((listing.method, listing.path, listing.query), ("GET", "/api/content/123/child/attachment", None))
        self.assertEqual(filtered.query, {"filename": "diagram.png"})

    def test_create_or_update_attachment(self) -> None:
        sender = RecordingSender(make_response(200, {"results": [{"id": "att7", "type": "attachment", "title": "diagram.png"}]}))
        client = make_client(sender)
        client.create_or_update_attachment("123", "diagram.png", b"PNG", comment="Architecture")

        request = sender.sent[0]
        self.assertEqual((request.method, request.path), ("PUT", "/api/content/123/child/attachment"))
        self.assertEqual(request.headers, {"X-Atlassian-Token": "no-check"})
        self.assertEqual(
            request.files,
            {
                "comment": (None, "Architecture", "text/plain; charset=utf-8", {}),
                "file": ("diagram.png", b"PNG", "image/png", {"Expires": "0"}),
            },
        )
        self.assertEqual(client.attachment_names["att7"], "diagram.png")

    def test_update_attachment_data(self) -> None:
        sender = RecordingSender(make_response(200, {"id": "att999", "type": "attachment", "title": "notes.unknownext"}))
        make_client(sender).update_attachment_data("123", "att999", "notes.unknownext", b"data")

        request = sender.sent[0]
        self.assertEqual((request.method, request.path), ("POST", "/api/content/123/child/attachment/999/data"))
        self.assertEqual(request.headers, {"X-Atlassian-Token": "no-check"})
        self.assertEqual(request.files, {"file": ("notes.unknownext", b"data", "application/octet-stream", {"Expires": "0"})})

    def test_get_space(self) -> None:
        sender = RecordingSender(make_response(200, {"key": "DEV", "name": "Development"}))
        space = make_client(sender).get_space("DEV")

        request = sender.sent[0]
        self.assertEqual((request.method, request.path, request.query), ("GET", "/api/space/DEV", None))
        self.assertEqual(space, {"key": "DEV", "name": "Development"})

    def test_get_current_user(self) -> None:
        sender = RecordingSender(make_response(200, {"username": "jdoe", "displayName": "J. Doe"}))
        user = make_client(sender, ConfluenceDeployment.DATA_CENTER).get_current_user()

        request = sender.sent[0]
        self.assertEqual((request.method, request.path), ("GET", "/api/user/current"))
        self.assertEqual(user, {"username": "jdoe", "displayName": "J. Doe", "accountId": "jdoe"})

    def test_get_labels(self) -> None:
        sender = RecordingSender(
            make_response(200, {"results": [{"prefix": "global", "name": "adr", "id": "1"}, {"prefix": "my", "name": "draft", "id": "2"}]}),
            make_response(200, {}),
        )
        client = make_client(sender)
        self.assertEqual(client.get_labels("123"), [ConfluenceLabel("adr"), ConfluenceLabel("draft", prefix="my")])
        self.assertEqual(client.get_labels("123"), [])

        request = sender.sent[0]
        self.assertEqual((request.method, request.path), ("GET", "/api/content/123/label"))

    def test_add_labels(self) -> None:
        sender = RecordingSender(make_response(200, {"results": []}))
        make_client(sender).add_labels("123", [ConfluenceLabel("adr"), ConfluenceLabel("draft", prefix="my")])

        request = sender.sent[0]
        self.assertEqual((request.method, request.path), ("POST", "/api/content/123/label"))
        self.assertEqual(request.json, [{"prefix": "global", "name": "adr"}, {"prefix": "my", "name": "draft"}])


if __name__ == "__main__":
    unittest.main()

"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import tempfile
import unittest
from pathlib import Path

from adf2conf.adf import DocumentError, DocumentNode, ParagraphNode, TextNode
from adf2conf.scanner import read_document
from tests.utility import TypedTestCase

DOCUMENT = '{"type": "doc", "version": 1, "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Hi"}]}]}'


class TestScanner(TypedTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_envelope(self) -> None:
        path = self.dir / "page.json"
        path.write_text(
            '{"pageId": "123", "title": "Title", "parentId": "42", "labels": ["adr", "draft"], '
            f'"attachments": ["img/diagram.png"], "body": {DOCUMENT}, "extra": true}}',
            encoding="utf-8",
        )

        document = read_document(path)
        self.assertEqual(document.path, path)
        self.assertEqual(document.page_id, "123")
        self.assertEqual(document.title, "Title")
        self.assertEqual(document.parent_id, "42")
        self.assertEqual(document.labels, ["adr", "draft"])
        self.assertEqual(document.attachments, [(self.dir / "img" / "diagram.png").resolve()])
        self.assertEqual(document.tree, DocumentNode((ParagraphNode((TextNode(text="Hi"),)),)))
        self.assertIsInstance(document.body, dict)

    def test_page_id_override(self) -> None:
        path = self.dir / "page.json"
        path.write_text(f'{{"pageId": "123", "body": {DOCUMENT}}}', encoding="utf-8")
        self.assertEqual(read_document(path, "456").page_id, "456")

    def test_bare_document(self) -> None:
        path = self.dir / "page.json"
        path.write_text(DOCUMENT, encoding="utf-8")

        document = read_document(path, "123")
        self.assertEqual(document.page_id, "123")
        self.assertIsNone(document.title)
        self.assertEqual(document.labels, [])
        self.assertEqual(document.attachments, [])

        self.assertIsNone(read_document(path).page_id)

    def test_invalid_documents(self) -> None:
        path = self.dir / "page.json"
        for content in ["{not json", "[]", '{"title": "No body"}']:
            with self.subTest(content=content):
                path.write_text(content, encoding="utf-8")
                with self.assertRaises(DocumentError):
                    read_document(path)


if __name__ == "__main__":
    unittest.main()

"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import orjson
from cattrs import BaseValidationError

from .adf import DocumentError, Node, parse_node
from .serializer import JsonType, json_parse, json_to_object

LOGGER = logging.getLogger(__name__)


@dataclass
class DocumentEnvelope:
    """
    An object that holds properties of a page to publish alongside its content.

    :param pageId: Confluence page ID.
    :param title: Page title; the existing title is kept when omitted.
    :param parentId: Confluence page ID of the parent page to place the page under.
    :param labels: Content labels to add to the page.
    :param attachments: Files to upload as page attachments, relative to the document.
    :param body: Page content as an Atlassian Document Format (ADF) document.
    """

    body: JsonType
    pageId: str | None = None
    title: str | None = None
    parentId: str | None = None
    labels: list[str] | None = None
    attachments: list[str] | None = None


@dataclass
class PublishDocument:
    """
    A document ready to be published to a Confluence page.

    :param path: Path to the source file.
    :param page_id: Confluence page ID, if known.
    :param title: Page title, or `None` to keep the existing title.
    :param parent_id: Confluence page ID of the parent page, or `None` to keep the page in place.
    :param labels: Content labels to add to the page.
    :param attachments: Absolute paths to files to upload as page attachments.
    :param body: Page content as a raw ADF document.
    :param tree: Page content as a parsed ADF tree.
    """

    path: Path
    page_id: str | None
    title: str | None
    parent_id: str | None
    labels: list[str]
    attachments: list[Path]
    body: JsonType
    tree: Node


def read_document(path: Path, page_id: str | None = None) -> PublishDocument:
    """
    Reads a document to publish from a JSON file.

    The file holds either an envelope object with page properties and an ADF document in `body`, or a bare ADF document,
    in which case the page ID must be supplied by the caller.

    :param path: Path to a JSON file.
    :param page_id: Confluence page ID; takes precedence over the ID in the envelope.
    """

    with open(path, "rb") as f:
        content = f.read()

    try:
        data = json_parse(content)
    except orjson.JSONDecodeError as ex:
        raise DocumentError(f"expected: JSON document in file: {path}") from ex

    if not isinstance(data, dict):
        raise DocumentError(f"expected: JSON object in file: {path}")

    if data.get("type") == "doc":
        envelope = DocumentEnvelope(body=data)
    elif "body" in data:
        try:
            envelope = json_to_object(DocumentEnvelope, data)
        except BaseValidationError as ex:
            raise DocumentError(f"invalid document properties in file: {path}") from ex
    else:
        raise DocumentError(f"expected: ADF document or an object with `body` in file: {path}")

    page_id = page_id or envelope.pageId

    tree = parse_node(envelope.body)
    LOGGER.debug("Read document %s for page %s", path, page_id)

    return PublishDocument(
        path=path,
        page_id=page_id,
        title=envelope.title,
        parent_id=envelope.parentId,
        labels=envelope.labels or [],
        attachments=[(path.parent / attachment).resolve() for attachment in envelope.attachments or []],
        body=envelope.body,
        tree=tree,
    )

"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import requests

from .adf import DocumentError
from .api import ConfluenceClient
from .api_types import ConfluenceLabel, ConfluenceRepresentation
from .attachment import attachment_name
from .environment import ConfluenceError, PageError
from .metadata import ConfluencePageMetadata
from .scanner import PublishDocument
from .serializer import JsonType, json_dump_string

LOGGER = logging.getLogger(__name__)

# substrings of error messages that Confluence responds with in common failure scenarios, and an explanation
_FAILURE_HINTS: dict[str, str] = {
    "last updated by another user": (
        "This usually means the page was just created or edited by a different account. "
        "Check that your API credentials match the account that owns these pages."
    ),
    "outside the page tree": "A page with this title already exists in a different location in Confluence.",
}


@dataclass(frozen=True)
class FailedFile:
    """
    A document that could not be published.

    :param file_name: Path to the source file.
    :param reason: Human-readable reason for the failure.
    """

    file_name: str
    reason: str


@dataclass(frozen=True)
class PublishedPage:
    """
    A document published to a Confluence page.

    :param file_name: Path to the source file.
    :param page: Properties of the Confluence page the document has been published to.
    :param url: Human-readable URL of the page.
    """

    file_name: str
    page: ConfluencePageMetadata
    url: str


@dataclass
class PublishResults:
    published: list[PublishedPage] = field(default_factory=list)
    failed: list[FailedFile] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed


class Publisher:
    """
    The entry point for publishing Atlassian Document Format documents to Confluence.

    Each document is written as a new version of an existing page. The page content is sent as an ADF document tree;
    the transport substitutes the equivalent Confluence Storage Format.

    This is the class instantiated by the command-line application.
    """

    client: ConfluenceClient

    def __init__(self, client: ConfluenceClient) -> None:
        self.client = client

    def publish(self, documents: Iterable[PublishDocument]) -> PublishResults:
        """
        Publishes documents one by one. A document that fails to publish does not prevent publishing others.
        """

        results = PublishResults()
        for document in documents:
            file_name = str(document.path)
            try:
                published = self.publish_document(document)
            except (ConfluenceError, PageError, DocumentError, OSError, requests.RequestException) as ex:
                reason = str(ex) or type(ex).__name__
                LOGGER.error("Failed to publish %s: %s", file_name, reason)
                for pattern, hint in _FAILURE_HINTS.items():
                    if pattern in reason:
                        LOGGER.error(hint)
                results.failed.append(FailedFile(file_name, reason))
            else:
                LOGGER.info("Published %s to %s", file_name, published.url)
                results.published.append(published)

        LOGGER.info("Publishing complete: %d succeeded, %d failed", len(results.published), len(results.failed))
        return results

    def publish_document(self, document: PublishDocument) -> PublishedPage:
        "Uploads attachments, updates page content and adds labels."

        page_id = document.page_id
        if page_id is None:
            raise PageError(f"Confluence page ID not specified for file: {document.path}")

        # attachments first such that media references in the document resolve to file names
        for path in document.attachments:
            if not path.is_file():
                raise PageError(f"file not found: {path}")
            self.client.create_or_update_attachment(page_id, attachment_name(path.name), path.read_bytes())

        page = self.client.get_content(page_id)
        title = document.title or page.title

        payload: dict[str, JsonType] = {
            "id": page_id,
            "type": page.type,
            "title": title,
            "version": {"number": page.version.number + 1, "minorEdit": True},
            "body": {
                ConfluenceRepresentation.ATLAS.value: {
                    "value": json_dump_string(document.body),
                    "representation": ConfluenceRepresentation.ATLAS.value,
                }
            },
        }
        if page.space is not None:
            payload["space"] = {"key": page.space.key}
        if document.parent_id is not None:
            payload["ancestors"] = [{"id": document.parent_id}]

        LOGGER.info("Updating page: %s (version %d)", page_id, page.version.number + 1)
        self.client.update_content(page_id, payload)

        if document.labels:
            self.client.add_labels(page_id, [ConfluenceLabel(name=label) for label in document.labels])

        space_key = page.space.key if page.space is not None else None
        return PublishedPage(
            file_name=str(document.path),
            page=ConfluencePageMetadata(page_id=page_id, space_key=space_key, title=title),
            url=self.client.site.page_url(page_id, space_key),
        )

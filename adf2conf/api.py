"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import mimetypes
from types import TracebackType

import requests

from ._version import __version__
from .api_types import ConfluenceLabel, ConfluencePage
from .attachment import AttachmentNameCache
from .environment import ConnectionProperties
from .metadata import ConfluenceSiteMetadata
from .serializer import JsonType, json_to_object
from .transport import ApiRequest, ConfluenceTransport, FilePart, SessionSender

LOGGER = logging.getLogger(__name__)

USER_AGENT = f"adf2conf/{__version__}"


def _attachment_parts(attachment_name: str, data: bytes, content_type: str | None, comment: str | None) -> dict[str, FilePart]:
    "Builds the multipart form parts of an attachment upload."

    if content_type is None:
        content_type, _ = mimetypes.guess_type(attachment_name, strict=True)
        if content_type is None:
            content_type = "application/octet-stream"

    files: dict[str, FilePart] = {}
    if comment is not None:
        files["comment"] = (None, comment, "text/plain; charset=utf-8", {})
    files["file"] = (attachment_name, data, content_type, {"Expires": "0"})
    return files


class ConfluenceClient:
    """
    Invokes Confluence REST API endpoints via a transport that reconciles deployment variants.

    Write operations accept and return raw JSON objects, which lets the transport rewrite them.
    """

    transport: ConfluenceTransport
    site: ConfluenceSiteMetadata

    def __init__(self, transport: ConfluenceTransport, site: ConfluenceSiteMetadata) -> None:
        self.transport = transport
        self.site = site

    @property
    def attachment_names(self) -> AttachmentNameCache:
        return self.transport.cache

    def get_content(self, page_id: str) -> ConfluencePage:
        "Retrieves Confluence page properties including version, space and ancestors."

        data = self.transport.send(ApiRequest("GET", f"/api/content/{page_id}", query={"expand": "version,space,ancestors"}))
        return json_to_object(ConfluencePage, data)

    def create_content(self, payload: JsonType) -> JsonType:
        "Creates a new page (or other content)."

        return self.transport.send(ApiRequest("POST", "/api/content", json=payload))

    def update_content(self, page_id: str, payload: JsonType) -> JsonType:
        "Updates an existing page (or other content) with a new version."

        return self.transport.send(ApiRequest("PUT", f"/api/content/{page_id}", json=payload))

    def get_attachments(self, page_id: str, *, filename: str | None = None) -> JsonType:
        "Lists attachments of a page, optionally filtered by file name."

        query = {"filename": filename} if filename is not None else None
        return self.transport.send(ApiRequest("GET", f"/api/content/{page_id}/child/attachment", query=query))

    def create_or_update_attachment(
        self,
        page_id: str,
        attachment_name: str,
        data: bytes,
        *,
        content_type: str | None = None,
        comment: str | None = None,
    ) -> JsonType:
        """
        Uploads an attachment to a Confluence page, replacing any existing attachment with the same name.

        :param page_id: Confluence page ID.
        :param attachment_name: Unprefixed name unique to the page.
        :param data: Raw data to upload as an attachment.
        :param content_type: Attachment MIME type; guessed from the name when omitted.
        :param comment: Attachment description.
        """

        LOGGER.info("Uploading attachment: %s", attachment_name)
        return self.transport.send(
            ApiRequest(
                "PUT",
                f"/api/content/{page_id}/child/attachment",
                files=_attachment_parts(attachment_name, data, content_type, comment),
                headers={"X-Atlassian-Token": "no-check"},
            )
        )

    def update_attachment_data(
        self,
        page_id: str,
        attachment_id: str,
        attachment_name: str,
        data: bytes,
        *,
        content_type: str | None = None,
        comment: str | None = None,
    ) -> JsonType:
        "Uploads new data for an existing attachment."

        id = attachment_id.removeprefix("att")
        LOGGER.info("Updating attachment data: %s", attachment_name)
        return self.transport.send(
            ApiRequest(
                "POST",
                f"/api/content/{page_id}/child/attachment/{id}/data",
                files=_attachment_parts(attachment_name, data, content_type, comment),
                headers={"X-Atlassian-Token": "no-check"},
            )
        )

    def get_space(self, space_key: str) -> JsonType:
        return self.transport.send(ApiRequest("GET", f"/api/space/{space_key}"))

    def get_current_user(self) -> JsonType:
        return self.transport.send(ApiRequest("GET", "/api/user/current"))

    def get_labels(self, page_id: str) -> list[ConfluenceLabel]:
        "Retrieves labels associated with a page."

        data = self.transport.send(ApiRequest("GET", f"/api/content/{page_id}/label"))
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        return [json_to_object(ConfluenceLabel, item) for item in results]

    def add_labels(self, page_id: str, labels: list[ConfluenceLabel]) -> JsonType:
        "Adds labels to a page."

        payload: JsonType = [{"prefix": label.prefix, "name": label.name} for label in labels]
        return self.transport.send(ApiRequest("POST", f"/api/content/{page_id}/label", json=payload))


class ConfluenceAPI:
    """
    Represents an active connection to a Confluence server.
    """

    properties: ConnectionProperties
    session: requests.Session | None = None

    def __init__(self, properties: ConnectionProperties | None = None) -> None:
        self.properties = properties or ConnectionProperties()

    def __enter__(self) -> ConfluenceClient:
        session = requests.Session()
        if self.properties.user_name:
            session.auth = (self.properties.user_name, self.properties.api_key)
        else:
            session.headers.update({"Authorization": f"Bearer {self.properties.api_key}"})

        session.headers.update(
            {
                "Accept": "application/json",
                "X-Atlassian-Token": "no-check",
                "User-Agent": USER_AGENT,
            }
        )
        if self.properties.headers:
            session.headers.update(self.properties.headers)

        self.session = session
        sender = SessionSender(session, self.properties.base_url, timeout=self.properties.timeout)
        transport = ConfluenceTransport(sender, self.properties.deployment, domain=self.properties.domain)
        site = ConfluenceSiteMetadata(self.properties.domain, self.properties.deployment, self.properties.space_key)
        return ConfluenceClient(transport, site)

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None

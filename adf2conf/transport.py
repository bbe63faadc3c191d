"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import dataclasses
import logging
import re
import typing
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urlencode, urlparse, urlunparse

import orjson
import requests

from .adf import parse_document, parse_node
from .api_types import ConfluenceRepresentation
from .attachment import AttachmentNameCache
from .converter import AdfToStorageConverter
from .environment import ConfluenceDeployment, ConfluenceError, ConfluenceHTTPError
from .serializer import JsonType, json_dump_string, json_parse, object_to_json_payload

LOGGER = logging.getLogger(__name__)

# a multipart form part: (file name, data, content type, extra headers)
FilePart = tuple[str | None, Any, str, dict[str, str]]

MAX_LOGGED_BODY_LENGTH = 500

_PAGE_PATH = re.compile(r"^/api/content/(?P<id>[^/]+)$")
_CONTENT_PATH = re.compile(r"^/api/content/?$")
_ATTACHMENT_PATH = re.compile(r"^/api/content/(?P<id>[^/]+)/child/attachment$")

# error message Confluence Data Center responds with when a new attachment would clash with an existing one;
# not a documented contract, matched on a best-effort basis
_DUPLICATE_ATTACHMENT = re.compile(r"same file name as an existing attachment", re.IGNORECASE)
_DUPLICATE_ATTACHMENT_NAME = re.compile(r"same file name as an existing attachment\s*:\s*(?P<name>[^\"\n]+)", re.IGNORECASE)

_WIKI_PATH = re.compile(r"^/wiki/(?P<kind>spaces|display|pages)/")


def build_url(base_url: str, query: dict[str, str] | None = None) -> str:
    "Builds a URL with scheme, host, port, path and query string parameters."

    scheme, netloc, path, params, query_str, fragment = urlparse(base_url)

    if params:
        raise ValueError("expected: url with no parameters")
    if query_str:
        raise ValueError("expected: url with no query string")
    if fragment:
        raise ValueError("expected: url with no fragment")

    url_parts = (scheme, netloc, path, None, urlencode(query) if query else None, None)
    return urlunparse(url_parts)


@dataclass(frozen=True)
class ApiRequest:
    """
    A logical request to Confluence REST API.

    :param method: HTTP verb, e.g. `GET` or `PUT`.
    :param path: Path of the API endpoint relative to the REST API base URL, e.g. `/api/content/123`.
    :param query: Query string parameters.
    :param json: JSON payload, if any.
    :param files: Multipart form parts to upload, if any.
    :param headers: Additional HTTP headers.
    """

    method: str
    path: str
    query: dict[str, str] | None = None
    json: JsonType = None
    files: dict[str, FilePart] | None = None
    headers: dict[str, str] | None = None


RequestSender = Callable[[ApiRequest], requests.Response]


class SessionSender:
    """
    Executes logical requests over a `requests` session.

    :param session: HTTP session with authentication and default headers already configured.
    :param base_url: URL that API endpoint paths are relative to, e.g. `https://example.com/wiki/rest`.
    :param timeout: Deadline in seconds for each HTTP request.
    """

    _session: requests.Session
    base_url: str
    timeout: float | None

    def __init__(self, session: requests.Session, base_url: str, *, timeout: float | None = None) -> None:
        self._session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def url(self, request: ApiRequest) -> str:
        return build_url(f"{self.base_url}{request.path}", request.query)

    def __call__(self, request: ApiRequest) -> requests.Response:
        url = self.url(request)
        LOGGER.info("%s %s", request.method, url)

        headers = dict(request.headers or {})
        data: bytes | None = None
        if request.json is not None:
            data = object_to_json_payload(request.json)
            headers["Content-Type"] = "application/json"

        return self._session.request(
            request.method,
            url,
            data=data,
            files=request.files,
            headers=headers,
            timeout=self.timeout,
            verify=True,
        )


def _body_preview(request: ApiRequest) -> str:
    if request.files is not None:
        return "(binary)"

    text = json_dump_string(request.json)
    if len(text) > MAX_LOGGED_BODY_LENGTH:
        return f"{text[:MAX_LOGGED_BODY_LENGTH]}... ({len(text)} chars total)"
    return text


def _rewind(files: dict[str, FilePart] | None) -> None:
    "Resets file objects in multipart form parts such that the parts can be uploaded again."

    if files is None:
        return
    for _, data, _, _ in files.values():
        seek = getattr(data, "seek", None)
        if seek is not None:
            seek(0)


def _multipart_filename(files: dict[str, FilePart] | None) -> str | None:
    if files is None:
        return None
    part = files.get("file")
    if part is None:
        return None
    return part[0]


def conflicting_attachment_name(body: str) -> str | None:
    """
    Extracts the name of the conflicting attachment from a "duplicate name" error response.

    :param body: Response body, either a JSON object with a `message` or plain text.
    :returns: Attachment file name, or `None` if the message does not contain one.
    """

    message = body
    try:
        data = json_parse(body)
    except orjson.JSONDecodeError:
        pass
    else:
        if isinstance(data, dict) and isinstance(data.get("message"), str):
            message = typing.cast(str, data["message"])

    m = _DUPLICATE_ATTACHMENT_NAME.search(message)
    if m is None:
        return None
    return m.group("name").strip() or None


def polyfill_account_id(data: JsonType) -> JsonType:
    """
    Adds `accountId` to user objects that only carry a `username`.

    Confluence Data Center identifies users by user name, whereas Confluence Cloud identifies them by account ID.
    """

    if isinstance(data, list):
        return [polyfill_account_id(item) for item in data]
    elif isinstance(data, dict):
        result: dict[str, JsonType] = {key: polyfill_account_id(value) for key, value in data.items()}
        username = result.get("username")
        if isinstance(username, str) and "accountId" not in result:
            result["accountId"] = username
        return result
    else:
        return data


class ConfluenceTransport:
    """
    Intercepts requests to Confluence REST API, and reconciles differences between deployment variants.

    On the way out, the transport
    * substitutes Confluence Storage Format for an ADF document tree in page writes,
    * strips page relocation and rewrites wiki links when talking to Confluence Data Center,
    * replaces an unsupported HTTP verb for attachment uploads on Confluence Data Center.

    On the way in, the transport
    * records attachment names found in responses,
    * replaces the data of an existing attachment when an upload clashes with it by name,
    * harmonizes user objects across deployment variants.

    :param sender: Executes a single logical request.
    :param deployment: Deployment variant of the Confluence server.
    :param domain: Domain name of the Confluence site, used to recognize links that point to the same site.
    :param cache: Attachment name cache owned by this transport.
    """

    sender: RequestSender
    deployment: ConfluenceDeployment
    domain: str | None
    cache: AttachmentNameCache

    def __init__(
        self,
        sender: RequestSender,
        deployment: ConfluenceDeployment,
        *,
        domain: str | None = None,
        cache: AttachmentNameCache | None = None,
    ) -> None:
        self.sender = sender
        self.deployment = deployment
        self.domain = domain
        self.cache = cache if cache is not None else AttachmentNameCache()

    @property
    def is_data_center(self) -> bool:
        return self.deployment is ConfluenceDeployment.DATA_CENTER

    def send(self, request: ApiRequest) -> JsonType:
        """
        Sends a logical request to Confluence, and returns the response body.

        :param request: Request to send.
        :returns: Response body as a raw JSON object, or an empty object if the response has no body.
        :raises ConfluenceHTTPError: Confluence responds with an error status that cannot be recovered from.
        """

        request = self._substitute_storage_format(request)
        request = self._remove_ancestors(request)
        request, rewritten = self._rewrite_attachment_method(request)

        try:
            data = self._exchange(request)
        except ConfluenceHTTPError as ex:
            if rewritten and 400 <= ex.status < 500 and _DUPLICATE_ATTACHMENT.search(ex.body):
                data = self._replace_attachment_data(request, ex)
            else:
                raise

        if self.is_data_center:
            data = polyfill_account_id(data)
        return data

    def _exchange(self, request: ApiRequest) -> JsonType:
        "Sends a single request, checks the response status, and records attachment names."

        if request.method in ("PUT", "POST"):
            LOGGER.debug("Request body: %s", _body_preview(request))

        try:
            response = self.sender(request)
        except requests.RequestException as ex:
            LOGGER.error("%s %s failed: %s", request.method, request.path, ex)
            raise

        text = response.text or ""
        LOGGER.info("Response: %d (%d chars)", response.status_code, len(text))

        if response.status_code >= 400:
            error = ConfluenceHTTPError(response.status_code, text)
            LOGGER.error("%s %s failed with status %d: %s", request.method, request.path, error.status, error.body)
            raise error

        if not text.strip():
            return {}

        try:
            data = json_parse(response.content)
        except orjson.JSONDecodeError as ex:
            raise ConfluenceError(f"expected: JSON response for {request.method} {request.path}") from ex

        count = self.cache.update_from_payload(data)
        if count > 0:
            LOGGER.debug("Recorded %d attachment name(s) from %s %s", count, request.method, request.path)
        return data

    def _substitute_storage_format(self, request: ApiRequest) -> ApiRequest:
        "Replaces an ADF document tree in a page write with the equivalent Confluence Storage Format markup."

        if not (
            (request.method == "PUT" and _PAGE_PATH.match(request.path)) or (request.method == "POST" and _CONTENT_PATH.match(request.path))
        ):
            return request

        payload = request.json
        if not isinstance(payload, dict):
            return request
        body = payload.get("body")
        if not isinstance(body, dict):
            return request
        atlas = body.get(ConfluenceRepresentation.ATLAS.value)
        if not isinstance(atlas, dict) or "value" not in atlas:
            return request

        value = atlas["value"]
        href_transform = self._rewrite_href if self.is_data_center else None
        try:
            if isinstance(value, str):
                tree = parse_document(value)
            else:
                tree = parse_node(value)
            markup = AdfToStorageConverter(self.cache, href_transform=href_transform).convert(tree)
        except Exception as ex:
            LOGGER.warning("Failed to convert ADF to storage format for %s %s; sending original payload: %s", request.method, request.path, ex)
            return request

        LOGGER.info("Converted ADF to storage format for %s %s (%d chars)", request.method, request.path, len(markup))
        storage = ConfluenceRepresentation.STORAGE.value
        converted = dict(payload)
        converted["body"] = {storage: {"value": markup, "representation": storage}}
        return dataclasses.replace(request, json=converted)

    def _rewrite_href(self, url: str) -> str:
        "Rewrites a Confluence Cloud style wiki link to its Confluence Data Center equivalent."

        scheme, netloc, path, params, query, fragment = urlparse(url)
        if netloc and netloc != self.domain:
            return url

        rewritten_path = _WIKI_PATH.sub(r"/\g<kind>/", path)
        if rewritten_path == path:
            return url

        return urlunparse((scheme, netloc, rewritten_path, params, query, fragment))

    def _remove_ancestors(self, request: ApiRequest) -> ApiRequest:
        "Prevents implicitly moving a page to another parent on Confluence Data Center."

        if not self.is_data_center or request.method != "PUT" or not _PAGE_PATH.match(request.path):
            return request

        payload = request.json
        if not isinstance(payload, dict) or "ancestors" not in payload:
            return request

        LOGGER.info("Removing ancestors from page update %s", request.path)
        stripped = {key: value for key, value in payload.items() if key != "ancestors"}
        return dataclasses.replace(request, json=stripped)

    def _rewrite_attachment_method(self, request: ApiRequest) -> tuple[ApiRequest, bool]:
        "Confluence Data Center creates attachments with POST only."

        if not self.is_data_center or request.method != "PUT" or not _ATTACHMENT_PATH.match(request.path):
            return request, False

        LOGGER.info("Rewriting PUT to POST for attachment upload %s", request.path)
        return dataclasses.replace(request, method="POST"), True

    def _replace_attachment_data(self, request: ApiRequest, error: ConfluenceHTTPError) -> JsonType:
        """
        Uploads data to an existing attachment after a failed attempt to create a new attachment with the same name.

        :param request: The rewritten attachment upload request that failed.
        :param error: The error the upload failed with; re-raised when the existing attachment cannot be updated.
        """

        filename = conflicting_attachment_name(error.body) or _multipart_filename(request.files)
        if filename is None:
            LOGGER.warning("Cannot identify conflicting attachment for %s", request.path)
            raise error

        LOGGER.info("Attachment %s already exists; looking up existing attachment", filename)
        try:
            listing = self._exchange(ApiRequest("GET", request.path, query={"filename": filename}))
        except ConfluenceHTTPError:
            LOGGER.warning("Failed to list attachments for %s", request.path)
            raise error from None

        results = listing.get("results") if isinstance(listing, dict) else None
        attachment_id: str | None = None
        if isinstance(results, list):
            for item in results:
                if isinstance(item, dict) and item.get("title") == filename and isinstance(item.get("id"), str):
                    attachment_id = typing.cast(str, item["id"])
                    break

        if attachment_id is None:
            LOGGER.warning("No existing attachment found with name: %s", filename)
            raise error

        id = attachment_id.removeprefix("att")
        LOGGER.info("Retrying upload of %s as new data for attachment %s", filename, id)
        _rewind(request.files)
        retry = dataclasses.replace(request, method="POST", path=f"{request.path}/{id}/data", query=None)
        try:
            data = self._exchange(retry)
        except ConfluenceHTTPError:
            LOGGER.warning("Retry failed for attachment %s", filename)
            raise error from None

        LOGGER.info("Updated existing attachment %s", filename)
        return data

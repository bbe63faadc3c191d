"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from cattrs import BaseValidationError

from .serializer import JsonType, json_to_object

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttachmentExtensions:
    fileId: str | None = None
    mediaType: str | None = None


@dataclass(frozen=True)
class AttachmentContainer:
    id: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class AttachmentDescriptor:
    """
    Holds data for an object uploaded to Confluence as a page attachment, as returned by REST API.

    :param id: Unique ID for the attachment, e.g. `att123456`.
    :param title: Attachment title, i.e. its file name.
    :param type: Content type, which is `attachment` for attachments.
    :param extensions: Extended properties, including the file ID (Confluence Cloud).
    :param fileId: File ID of the attachment, distinct from the attachment ID.
    :param container: The Confluence page the attachment is coupled with.
    """

    id: str | None = None
    title: str | None = None
    type: str | None = None
    extensions: AttachmentExtensions | None = None
    fileId: str | None = None
    container: AttachmentContainer | None = None

    @property
    def file_id(self) -> str | None:
        if self.extensions is not None and self.extensions.fileId:
            return self.extensions.fileId
        return self.fileId


def _normalize_id(identifier: str) -> str:
    "Attachment IDs are reported both with and without the `att` prefix."

    return identifier.removeprefix("att")


class AttachmentNameCache(Mapping[str, str]):
    """
    Maps attachment identifiers and alternate file identifiers to attachment file names.

    Entries are derived from attachment descriptors observed in REST API responses. Entries are only ever added,
    never removed; a later observation of the same identifier overwrites the file name.
    """

    _names: dict[str, str]

    def __init__(self) -> None:
        self._names = {}

    def __getitem__(self, identifier: str) -> str:
        return self._names[_normalize_id(identifier)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and _normalize_id(identifier) in self._names

    def add(self, identifier: str, filename: str) -> None:
        "Associates an attachment identifier with a file name."

        self._names[_normalize_id(identifier)] = filename

    def record(self, descriptor: AttachmentDescriptor) -> bool:
        """
        Stores the file name of an attachment under its identifier and its alternate file identifier.

        :returns: True if the descriptor carried enough information to be recorded.
        """

        if not descriptor.id or not descriptor.title:
            return False
        if descriptor.type is not None and descriptor.type != "attachment":
            return False

        self.add(descriptor.id, descriptor.title)
        file_id = descriptor.file_id
        if file_id and file_id != descriptor.id:
            self.add(file_id, descriptor.title)
        return True

    def update_from_payload(self, payload: JsonType) -> int:
        """
        Records attachment descriptors found in a REST API response body.

        The response body is either a result set (as returned when listing or uploading attachments) or a single
        attachment descriptor. Entries that are not attachments, or lack an identifier or a title, are skipped.

        :param payload: Response body as a raw JSON object.
        :returns: Number of attachment descriptors recorded.
        """

        if not isinstance(payload, dict):
            return 0

        results = payload.get("results")
        if isinstance(results, list):
            items = results
        elif "id" in payload and "title" in payload:
            items = [payload]
        else:
            return 0

        count = 0
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                descriptor = json_to_object(AttachmentDescriptor, item)
            except BaseValidationError as ex:
                LOGGER.debug("Skipping malformed attachment descriptor: %s", ex)
                continue
            if self.record(descriptor):
                count += 1

        if count > 0:
            LOGGER.debug("Attachment name cache holds %d entries after recording %d descriptors", len(self), count)
        return count


def attachment_name(ref: Path | str) -> str:
    """
    Safe name for use with attachment uploads.

    Mutates a relative path such that it meets Confluence's attachment naming requirements.

    Allowed characters:

    * Alphanumeric characters: 0-9, a-z, A-Z
    * Special characters: hyphen (-), underscore (_), period (.)
    """

    if isinstance(ref, Path):
        path = ref
    else:
        path = Path(ref)

    if path.drive or path.root:
        raise ValueError(f"required: relative path; got: {ref}")

    regexp = re.compile(r"[^\-0-9A-Za-z_.]", re.UNICODE)

    def replace_part(part: str) -> str:
        if part == "..":
            return "PAR"
        else:
            return regexp.sub("_", part)

    parts = [replace_part(p) for p in path.parts]
    return Path(*parts).as_posix().replace("/", "_")

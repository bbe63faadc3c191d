"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import enum
from dataclasses import dataclass, field


@enum.unique
class ConfluenceRepresentation(enum.Enum):
    STORAGE = "storage"
    ATLAS = "atlas_doc_format"


@enum.unique
class ConfluenceStatus(enum.Enum):
    CURRENT = "current"
    DRAFT = "draft"
    ARCHIVED = "archived"
    TRASHED = "trashed"


@dataclass(frozen=True)
class ConfluenceContentVersion:
    number: int
    minorEdit: bool = False
    message: str | None = None


@dataclass(frozen=True)
class ConfluenceSpace:
    key: str


@dataclass(frozen=True)
class ConfluencePageRef:
    id: str


@dataclass(frozen=True)
class ConfluencePage:
    """
    Holds Confluence page properties used for page synchronization.

    :param id: Confluence page ID.
    :param type: Content type, e.g. `page` or `blogpost`.
    :param status: Page status.
    :param title: Page title.
    :param version: Page version. Incremented when the page is updated.
    :param space: Confluence space the page belongs to.
    :param ancestors: Confluence pages from the root of the page tree down to the immediate parent.
    """

    id: str
    type: str
    status: ConfluenceStatus
    title: str
    version: ConfluenceContentVersion
    space: ConfluenceSpace | None = None
    ancestors: list[ConfluencePageRef] = field(default_factory=list)


@dataclass(frozen=True, eq=True, order=True)
class ConfluenceLabel:
    """
    Holds information about a single label.

    :param name: Name of the label.
    :param prefix: Prefix of the label.
    """

    name: str
    prefix: str = "global"

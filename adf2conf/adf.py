"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import typing
from dataclasses import dataclass, field
from typing import Callable, ClassVar

import orjson

from .serializer import JsonType, json_parse

LOGGER = logging.getLogger(__name__)


class DocumentError(RuntimeError):
    "Raised when an Atlassian Document Format tree is structurally invalid."


@dataclass(frozen=True)
class Mark:
    """
    Text-level formatting annotation attached to a text node.

    :param type: Mark type, e.g. `strong` or `link`.
    :param attrs: Mark attributes, e.g. `href` for a link.
    """

    type: str
    attrs: dict[str, JsonType] = field(default_factory=dict)


@dataclass(frozen=True)
class Node:
    "Base class for nodes in an Atlassian Document Format (ADF) tree."

    type_name: ClassVar[str] = ""

    content: tuple["Node", ...] = ()


@dataclass(frozen=True)
class DocumentNode(Node):
    type_name: ClassVar[str] = "doc"


@dataclass(frozen=True)
class ParagraphNode(Node):
    type_name: ClassVar[str] = "paragraph"


@dataclass(frozen=True)
class HeadingNode(Node):
    type_name: ClassVar[str] = "heading"

    level: int = 1


@dataclass(frozen=True)
class TextNode(Node):
    type_name: ClassVar[str] = "text"

    text: str = ""
    marks: tuple[Mark, ...] = ()


@dataclass(frozen=True)
class HardBreakNode(Node):
    type_name: ClassVar[str] = "hardBreak"


@dataclass(frozen=True)
class RuleNode(Node):
    type_name: ClassVar[str] = "rule"


@dataclass(frozen=True)
class BulletListNode(Node):
    type_name: ClassVar[str] = "bulletList"


@dataclass(frozen=True)
class OrderedListNode(Node):
    type_name: ClassVar[str] = "orderedList"

    order: int | None = None


@dataclass(frozen=True)
class ListItemNode(Node):
    type_name: ClassVar[str] = "listItem"


@dataclass(frozen=True)
class BlockquoteNode(Node):
    type_name: ClassVar[str] = "blockquote"


@dataclass(frozen=True)
class CodeBlockNode(Node):
    type_name: ClassVar[str] = "codeBlock"

    language: str | None = None


@dataclass(frozen=True)
class TableNode(Node):
    type_name: ClassVar[str] = "table"

    width: int | float | None = None
    layout: str | None = None


@dataclass(frozen=True)
class TableRowNode(Node):
    type_name: ClassVar[str] = "tableRow"


@dataclass(frozen=True)
class TableCellNode(Node):
    type_name: ClassVar[str] = "tableCell"

    colspan: int | None = None
    rowspan: int | None = None
    background: str | None = None


@dataclass(frozen=True)
class TableHeaderNode(TableCellNode):
    type_name: ClassVar[str] = "tableHeader"


@dataclass(frozen=True)
class MediaSingleNode(Node):
    type_name: ClassVar[str] = "mediaSingle"


@dataclass(frozen=True)
class MediaGroupNode(Node):
    type_name: ClassVar[str] = "mediaGroup"


@dataclass(frozen=True)
class MediaNode(Node):
    """
    An image or file, either referenced by URL (`external`) or stored as a page attachment (`file`).

    :param media_type: Either `external` or `file`.
    :param id: Media identifier, typically the attachment file ID.
    :param collection: Media collection the identifier belongs to.
    :param url: Image URL for external media.
    :param alt: Alternative text.
    :param filename: Explicit attachment file name, when known to the producer of the tree.
    :param width: Display width in pixels.
    :param file_id: Alternate file identifier.
    """

    type_name: ClassVar[str] = "media"

    media_type: str | None = None
    id: str | None = None
    collection: str | None = None
    url: str | None = None
    alt: str | None = None
    filename: str | None = None
    width: int | float | None = None
    file_id: str | None = None


@dataclass(frozen=True)
class PanelNode(Node):
    type_name: ClassVar[str] = "panel"

    panel_type: str | None = None


@dataclass(frozen=True)
class ExpandNode(Node):
    type_name: ClassVar[str] = "expand"

    title: str | None = None
    nested: bool = False


@dataclass(frozen=True)
class StatusNode(Node):
    type_name: ClassVar[str] = "status"

    text: str | None = None
    color: str | None = None


@dataclass(frozen=True)
class TaskListNode(Node):
    type_name: ClassVar[str] = "taskList"


@dataclass(frozen=True)
class TaskItemNode(Node):
    type_name: ClassVar[str] = "taskItem"

    state: str | None = None


@dataclass(frozen=True)
class InlineCardNode(Node):
    type_name: ClassVar[str] = "inlineCard"

    url: str | None = None


@dataclass(frozen=True)
class EmojiNode(Node):
    type_name: ClassVar[str] = "emoji"

    text: str | None = None
    short_name: str | None = None


@dataclass(frozen=True)
class MentionNode(Node):
    type_name: ClassVar[str] = "mention"

    account_id: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class DateNode(Node):
    type_name: ClassVar[str] = "date"

    timestamp: str | None = None


@dataclass(frozen=True)
class UnknownNode(Node):
    """
    A node whose type is not recognized.

    :param type: The original node type string.
    """

    type: str = ""


def _get_str(attrs: dict[str, JsonType], key: str) -> str | None:
    value = attrs.get(key)
    if isinstance(value, str):
        return value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    else:
        return None


def _get_int(attrs: dict[str, JsonType], key: str) -> int | None:
    value = attrs.get(key)
    if isinstance(value, bool):
        return None
    elif isinstance(value, int):
        return value
    elif isinstance(value, float) and value.is_integer():
        return int(value)
    elif isinstance(value, str) and value.strip().isdecimal():
        return int(value)
    else:
        return None


def _get_number(attrs: dict[str, JsonType], key: str) -> int | float | None:
    value = attrs.get(key)
    if isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        return value
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
        return int(number) if number.is_integer() else number
    else:
        return None


def _parse_marks(data: JsonType) -> tuple[Mark, ...]:
    if not isinstance(data, list):
        return ()

    marks: list[Mark] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        mark_type = item.get("type")
        if not isinstance(mark_type, str):
            continue
        attrs = item.get("attrs")
        marks.append(Mark(mark_type, dict(attrs) if isinstance(attrs, dict) else {}))
    return tuple(marks)


NodeFactory = Callable[[dict[str, JsonType], dict[str, JsonType], tuple[Node, ...]], Node]

_NODE_FACTORIES: dict[str, NodeFactory] = {
    "doc": lambda node, attrs, content: DocumentNode(content),
    "paragraph": lambda node, attrs, content: ParagraphNode(content),
    "heading": lambda node, attrs, content: HeadingNode(content, level=_get_int(attrs, "level") or 1),
    "text": lambda node, attrs, content: TextNode(
        content, text=node["text"] if isinstance(node.get("text"), str) else "", marks=_parse_marks(node.get("marks"))
    ),
    "hardBreak": lambda node, attrs, content: HardBreakNode(content),
    "rule": lambda node, attrs, content: RuleNode(content),
    "bulletList": lambda node, attrs, content: BulletListNode(content),
    "orderedList": lambda node, attrs, content: OrderedListNode(content, order=_get_int(attrs, "order")),
    "listItem": lambda node, attrs, content: ListItemNode(content),
    "blockquote": lambda node, attrs, content: BlockquoteNode(content),
    "codeBlock": lambda node, attrs, content: CodeBlockNode(content, language=_get_str(attrs, "language")),
    "table": lambda node, attrs, content: TableNode(content, width=_get_number(attrs, "width"), layout=_get_str(attrs, "layout")),
    "tableRow": lambda node, attrs, content: TableRowNode(content),
    "tableHeader": lambda node, attrs, content: TableHeaderNode(
        content, colspan=_get_int(attrs, "colspan"), rowspan=_get_int(attrs, "rowspan"), background=_get_str(attrs, "background")
    ),
    "tableCell": lambda node, attrs, content: TableCellNode(
        content, colspan=_get_int(attrs, "colspan"), rowspan=_get_int(attrs, "rowspan"), background=_get_str(attrs, "background")
    ),
    "mediaSingle": lambda node, attrs, content: MediaSingleNode(content),
    "mediaGroup": lambda node, attrs, content: MediaGroupNode(content),
    "media": lambda node, attrs, content: MediaNode(
        content,
        media_type=_get_str(attrs, "type"),
        id=_get_str(attrs, "id"),
        collection=_get_str(attrs, "collection"),
        url=_get_str(attrs, "url"),
        alt=_get_str(attrs, "alt"),
        filename=_get_str(attrs, "__fileName"),
        width=_get_number(attrs, "width"),
        file_id=_get_str(attrs, "fileId"),
    ),
    "panel": lambda node, attrs, content: PanelNode(content, panel_type=_get_str(attrs, "panelType")),
    "expand": lambda node, attrs, content: ExpandNode(content, title=_get_str(attrs, "title")),
    "nestedExpand": lambda node, attrs, content: ExpandNode(content, title=_get_str(attrs, "title"), nested=True),
    "status": lambda node, attrs, content: StatusNode(content, text=_get_str(attrs, "text"), color=_get_str(attrs, "color")),
    "taskList": lambda node, attrs, content: TaskListNode(content),
    "taskItem": lambda node, attrs, content: TaskItemNode(content, state=_get_str(attrs, "state")),
    "inlineCard": lambda node, attrs, content: InlineCardNode(content, url=_get_str(attrs, "url")),
    "emoji": lambda node, attrs, content: EmojiNode(content, text=_get_str(attrs, "text"), short_name=_get_str(attrs, "shortName")),
    "mention": lambda node, attrs, content: MentionNode(content, account_id=_get_str(attrs, "id"), text=_get_str(attrs, "text")),
    "date": lambda node, attrs, content: DateNode(content, timestamp=_get_str(attrs, "timestamp")),
}


def parse_node(data: JsonType) -> Node:
    """
    Converts a raw JSON object into a typed ADF node, recursively.

    Nodes of an unrecognized type become an `UnknownNode` that retains the original type string and child nodes.

    :param data: ADF node as a JSON object.
    :returns: Typed node.
    """

    if not isinstance(data, dict):
        raise DocumentError(f"expected: ADF node as a JSON object; got: {type(data).__name__}")

    node_type = data.get("type")
    raw_content = data.get("content")
    if raw_content is None:
        raw_content = []
    elif not isinstance(raw_content, list):
        raise DocumentError(f"expected: `content` of node `{node_type}` as a list")

    content = tuple(parse_node(child) for child in raw_content)

    raw_attrs = data.get("attrs")
    attrs = typing.cast(dict[str, JsonType], raw_attrs) if isinstance(raw_attrs, dict) else {}

    factory = _NODE_FACTORIES.get(node_type) if isinstance(node_type, str) else None
    if factory is None:
        return UnknownNode(content, type=node_type if isinstance(node_type, str) else "")

    return factory(data, attrs, content)


def parse_document(data: JsonType | str | bytes) -> Node:
    """
    Parses an ADF document given either as a JSON string or as a raw JSON object.

    :param data: Serialized or deserialized ADF document.
    :returns: Root node of the typed ADF tree.
    """

    if isinstance(data, (str, bytes)):
        try:
            data = json_parse(data)
        except orjson.JSONDecodeError as ex:
            raise DocumentError("expected: ADF document as a JSON string") from ex

    return parse_node(data)

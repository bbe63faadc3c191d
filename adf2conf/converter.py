"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import datetime
import logging
import re
from collections.abc import Mapping
from typing import Callable

import lxml.etree as ET

from .adf import (
    BlockquoteNode,
    BulletListNode,
    CodeBlockNode,
    DateNode,
    DocumentNode,
    EmojiNode,
    ExpandNode,
    HardBreakNode,
    HeadingNode,
    InlineCardNode,
    ListItemNode,
    Mark,
    MediaGroupNode,
    MediaNode,
    MediaSingleNode,
    MentionNode,
    Node,
    OrderedListNode,
    PanelNode,
    ParagraphNode,
    RuleNode,
    StatusNode,
    TableCellNode,
    TableHeaderNode,
    TableNode,
    TableRowNode,
    TaskItemNode,
    TaskListNode,
    TextNode,
    UnknownNode,
    parse_node,
)
from .csf import AC_ATTR, AC_ELEM, HTML, RI_ATTR, RI_ELEM, ElementType, create_root, elements_to_string
from .serializer import JsonType

LOGGER = logging.getLogger(__name__)

# a sequence of text strings and elements, in document order, that is yet to be attached to a parent element
Fragment = list[str | ElementType]

# terminates a CDATA section; cannot occur inside one
_CDATA_END = "]]>"

# characters outside the XML 1.0 `Char` production, e.g. NUL, form feed or escape
_XML_INVALID = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def _xml_text(value: str) -> str:
    "Removes characters that cannot occur in an XML document from text or attribute values."

    count = len(_XML_INVALID.findall(value))
    if count == 0:
        return value

    LOGGER.warning("Removing %d XML-incompatible character(s) from text", count)
    return _XML_INVALID.sub("", value)


def _append(parent: ElementType, fragment: Fragment) -> ElementType:
    "Attaches a fragment to the end of a parent element, merging text into `text` or the `tail` of the last child."

    for item in fragment:
        if isinstance(item, str):
            if len(parent) > 0:
                last = parent[-1]
                last.tail = (last.tail or "") + item
            else:
                parent.text = (parent.text or "") + item
        else:
            parent.append(item)
    return parent


def _escaped_text(text: str) -> Fragment:
    """
    Splits text into a fragment such that the double quote character is serialized as an entity reference.

    The serializer escapes `&`, `<` and `>` in text nodes but leaves `"` as is.
    """

    fragment: Fragment = []
    for index, piece in enumerate(_xml_text(text).split('"')):
        if index > 0:
            fragment.append(ET.Entity("quot"))
        if piece:
            fragment.append(piece)
    return fragment


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _plain_text(node: Node) -> str:
    "Literal text of a subtree, concatenating text leaves in document order."

    if isinstance(node, TextNode):
        return node.text
    return "".join(_plain_text(child) for child in node.content)


def _macro(name: str, parameters: dict[str, str], body: ElementType | None = None) -> ElementType:
    "Builds a Confluence structured macro with named parameters and an optional body."

    macro = AC_ELEM("structured-macro", {AC_ATTR("name"): name})
    for parameter_name, parameter_value in parameters.items():
        macro.append(AC_ELEM("parameter", {AC_ATTR("name"): parameter_name}, _xml_text(parameter_value)))
    if body is not None:
        macro.append(body)
    return macro


class AdfToStorageConverter:
    """
    Transforms an Atlassian Document Format (ADF) tree into Confluence Storage Format XHTML.

    The converter is stateless apart from a read-only attachment name lookup, and may be invoked repeatedly.

    :param attachment_names: Maps attachment identifiers (and alternate file identifiers) to file names.
    :param href_transform: Rewrites the target of links (link marks and inline cards), e.g. to match a deployment variant.
    """

    attachment_names: Mapping[str, str]
    href_transform: Callable[[str], str] | None

    def __init__(
        self,
        attachment_names: Mapping[str, str] | None = None,
        *,
        href_transform: Callable[[str], str] | None = None,
    ) -> None:
        self.attachment_names = attachment_names if attachment_names is not None else {}
        self.href_transform = href_transform
        self._dispatch: dict[type[Node], Callable[[Node], Fragment]] = {
            DocumentNode: self._transform_children,
            ParagraphNode: lambda node: [_append(HTML.p(), self._transform_children(node))],
            HeadingNode: self._transform_heading,  # type: ignore[dict-item]
            TextNode: self._transform_text,  # type: ignore[dict-item]
            HardBreakNode: lambda node: [HTML.br()],
            RuleNode: lambda node: [HTML.hr()],
            BulletListNode: lambda node: [_append(HTML.ul(), self._transform_children(node))],
            OrderedListNode: self._transform_ordered_list,  # type: ignore[dict-item]
            ListItemNode: lambda node: [_append(HTML.li(), self._transform_children(node))],
            BlockquoteNode: lambda node: [_append(HTML.blockquote(), self._transform_children(node))],
            CodeBlockNode: self._transform_code_block,  # type: ignore[dict-item]
            TableNode: self._transform_table,  # type: ignore[dict-item]
            TableRowNode: lambda node: [_append(HTML.tr(), self._transform_children(node))],
            TableHeaderNode: lambda node: self._transform_table_cell("th", node),  # type: ignore[arg-type]
            TableCellNode: lambda node: self._transform_table_cell("td", node),  # type: ignore[arg-type]
            MediaSingleNode: self._transform_children,
            MediaGroupNode: self._transform_children,
            MediaNode: self._transform_media,  # type: ignore[dict-item]
            PanelNode: self._transform_panel,  # type: ignore[dict-item]
            ExpandNode: self._transform_expand,  # type: ignore[dict-item]
            StatusNode: self._transform_status,  # type: ignore[dict-item]
            TaskListNode: lambda node: [_append(HTML.ul({"class": "task-list"}), self._transform_children(node))],
            TaskItemNode: self._transform_task_item,  # type: ignore[dict-item]
            InlineCardNode: self._transform_inline_card,  # type: ignore[dict-item]
            EmojiNode: self._transform_emoji,  # type: ignore[dict-item]
            MentionNode: self._transform_mention,  # type: ignore[dict-item]
            DateNode: self._transform_date,  # type: ignore[dict-item]
        }

    def convert(self, tree: Node) -> str:
        "Converts an ADF tree into a Confluence Storage Format XHTML string."

        root = create_root()
        _append(root, self.transform(tree))
        return elements_to_string(root)

    def transform(self, node: Node) -> Fragment:
        "Converts a single node (and its descendants) into a fragment of Confluence Storage Format elements."

        handler = self._dispatch.get(type(node))
        if handler is None:
            if isinstance(node, UnknownNode):
                LOGGER.warning("Unknown ADF node type: %s", node.type or "(missing)")
            else:
                LOGGER.warning("Unsupported ADF node: %s", type(node).__name__)
            return self._transform_children(node)

        return handler(node)

    def _href(self, url: str) -> str:
        url = _xml_text(url)
        if self.href_transform is not None:
            return self.href_transform(url)
        return url

    def _transform_children(self, node: Node) -> Fragment:
        fragment: Fragment = []
        for child in node.content:
            fragment.extend(self.transform(child))
        return fragment

    def _transform_heading(self, node: HeadingNode) -> Fragment:
        level = min(max(node.level, 1), 6)
        return [_append(HTML(f"h{level}"), self._transform_children(node))]

    def _transform_text(self, node: TextNode) -> Fragment:
        fragment = _escaped_text(node.text)

        # first mark is outermost
        for mark in reversed(node.marks):
            fragment = self._apply_mark(mark, fragment)
        return fragment

    def _apply_mark(self, mark: Mark, fragment: Fragment) -> Fragment:
        "Wraps a fragment in the element corresponding to a text mark."

        match mark.type:
            case "strong":
                return [_append(HTML.strong(), fragment)]
            case "em":
                return [_append(HTML.em(), fragment)]
            case "code":
                return [_append(HTML.code(), fragment)]
            case "strike":
                return [_append(HTML.s(), fragment)]
            case "underline":
                return [_append(HTML.u(), fragment)]
            case "subsup":
                subsup_type = mark.attrs.get("type")
                if subsup_type == "sub":
                    return [_append(HTML.sub(), fragment)]
                elif subsup_type == "sup":
                    return [_append(HTML.sup(), fragment)]
                else:
                    return fragment
            case "textColor":
                color = mark.attrs.get("color")
                return [_append(HTML.span({"style": f"color: {_xml_text(color) if isinstance(color, str) else ''}"}), fragment)]
            case "link":
                href = mark.attrs.get("href")
                return [_append(HTML.a({"href": self._href(href) if isinstance(href, str) else ""}), fragment)]
            case _:
                LOGGER.debug("Ignoring unsupported text mark: %s", mark.type)
                return fragment

    def _transform_ordered_list(self, node: OrderedListNode) -> Fragment:
        attrs: dict[str, str] = {}
        if node.order is not None and node.order > 1:
            attrs["start"] = str(node.order)
        return [_append(HTML.ol(attrs), self._transform_children(node))]

    def _transform_code_block(self, node: CodeBlockNode) -> Fragment:
        "Transforms a code block into a code macro with a literal body."

        content = _xml_text("".join(_plain_text(child) for child in node.content))

        parameters: dict[str, str] = {}
        if node.language:
            parameters["language"] = node.language

        if _CDATA_END in content:
            LOGGER.warning("Code block contains CDATA terminator `%s`; emitting body as escaped text", _CDATA_END)
            body = AC_ELEM("plain-text-body", content)
        else:
            body = AC_ELEM("plain-text-body", ET.CDATA(content))

        return [_macro("code", parameters, body)]

    def _transform_table(self, node: TableNode) -> Fragment:
        attrs: dict[str, str] = {}
        if node.layout:
            attrs["class"] = _xml_text(node.layout)
        if node.width:
            attrs["style"] = f"width: {_format_number(node.width)}px;"
        return [HTML.table(attrs, _append(HTML.tbody(), self._transform_children(node)))]

    def _transform_table_cell(self, tag: str, node: TableCellNode) -> Fragment:
        attrs: dict[str, str] = {}
        if node.colspan is not None and node.colspan > 1:
            attrs["colspan"] = str(node.colspan)
        if node.rowspan is not None and node.rowspan > 1:
            attrs["rowspan"] = str(node.rowspan)
        if node.background:
            attrs["style"] = f"background-color: {_xml_text(node.background)}"
        return [_append(HTML(tag, attrs), self._transform_children(node))]

    def _resolve_filename(self, node: MediaNode) -> str | None:
        "Finds the attachment file name a media node refers to."

        if node.filename:
            return node.filename
        if node.alt:
            return node.alt
        for identifier in (node.id, node.file_id):
            if identifier and (filename := self.attachment_names.get(identifier)):
                return filename
        return None

    def _transform_media(self, node: MediaNode) -> Fragment:
        "Transforms an external image or an attachment reference into an image element."

        attrs: dict[str, str] = {}
        if node.width:
            attrs[AC_ATTR("width")] = _format_number(node.width)

        if node.media_type == "external":
            return [AC_ELEM("image", attrs, RI_ELEM("url", {RI_ATTR("value"): _xml_text(node.url or "")}))]

        filename = self._resolve_filename(node)
        if filename is None:
            LOGGER.warning("Skipping media with unresolved attachment file name: id=%s, collection=%s", node.id, node.collection)
            return []

        return [AC_ELEM("image", attrs, RI_ELEM("attachment", {RI_ATTR("filename"): _xml_text(filename)}))]

    def _transform_panel(self, node: PanelNode) -> Fragment:
        body = _append(AC_ELEM("rich-text-body"), self._transform_children(node))
        return [_macro("panel", {"panelType": node.panel_type or "info"}, body)]

    def _transform_expand(self, node: ExpandNode) -> Fragment:
        body = _append(AC_ELEM("rich-text-body"), self._transform_children(node))
        return [_macro("expand", {"title": node.title or ""}, body)]

    def _transform_status(self, node: StatusNode) -> Fragment:
        return [_macro("status", {"title": node.text or "", "colour": node.color or "neutral"})]

    def _transform_task_item(self, node: TaskItemNode) -> Fragment:
        status = "complete" if node.state == "DONE" else "incomplete"
        task = AC_ELEM(
            "task",
            AC_ELEM("task-status", status),
            _append(AC_ELEM("task-body"), self._transform_children(node)),
        )
        return [HTML.li(task)]

    def _transform_inline_card(self, node: InlineCardNode) -> Fragment:
        url = node.url or ""
        return [_append(HTML.a({"href": self._href(url)}), _escaped_text(url))]

    def _transform_emoji(self, node: EmojiNode) -> Fragment:
        return _escaped_text(node.text or node.short_name or "")

    def _transform_mention(self, node: MentionNode) -> Fragment:
        return [AC_ELEM("link", RI_ELEM("user", {RI_ATTR("account-id"): _xml_text(node.account_id or "")}))]

    def _transform_date(self, node: DateNode) -> Fragment:
        "Transforms a date given as milliseconds since the epoch into a date element."

        try:
            milliseconds = int(node.timestamp or "")
            date = datetime.datetime.fromtimestamp(milliseconds / 1000, tz=datetime.timezone.utc).date()
        except (ValueError, OverflowError, OSError):
            LOGGER.warning("Invalid date timestamp: %s", node.timestamp)
            return self._transform_children(node)

        return [HTML.time({"datetime": date.isoformat()})]


def convert_adf(tree: Node | JsonType, attachment_names: Mapping[str, str] | None = None) -> str:
    """
    Converts an Atlassian Document Format (ADF) tree into Confluence Storage Format XHTML.

    :param tree: Parsed ADF tree or ADF document as a raw JSON object.
    :param attachment_names: Maps attachment identifiers to file names, consulted for media without a file name.
    :returns: Confluence Storage Format XHTML; empty string for an empty document.
    """

    if not isinstance(tree, Node):
        tree = parse_node(tree)
    return AdfToStorageConverter(attachment_names).convert(tree)

"""
Publish Atlassian Document Format content to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import re

import lxml.etree as ET
from lxml.builder import ElementMaker

# XML namespaces typically associated with Confluence Storage Format documents
_namespaces = {
    "ac": "http://atlassian.com/content",
    "ri": "http://atlassian.com/resource/identifier",
}
for key, value in _namespaces.items():
    ET.register_namespace(key, value)

HTML = ElementMaker()
AC_ELEM = ElementMaker(namespace=_namespaces["ac"], nsmap={"ac": _namespaces["ac"]})
RI_ELEM = ElementMaker(namespace=_namespaces["ri"], nsmap={"ri": _namespaces["ri"]})

ElementType = ET._Element  # pyright: ignore [reportPrivateUsage]


class ParseError(RuntimeError):
    pass


def _qname(namespace_uri: str, name: str) -> str:
    return ET.QName(namespace_uri, name).text


def AC_ATTR(name: str) -> str:
    return _qname(_namespaces["ac"], name)


def RI_ATTR(name: str) -> str:
    return _qname(_namespaces["ri"], name)


def create_root() -> ElementType:
    "Creates a synthetic root element that declares the namespaces associated with Confluence documents."

    return ET.Element("root", nsmap=_namespaces)  # type: ignore[arg-type]


def elements_from_strings(items: list[str]) -> ElementType:
    """
    Creates a Confluence Storage Format XML document tree from XML fragment strings.

    This function
    * wraps the content in a root element,
    * adds namespace declarations associated with Confluence documents.

    Only the entities pre-defined in XML (e.g. `&amp;` or `&quot;`) are recognized.

    :param items: Strings to parse into XML fragments.
    :returns: An XML document as an element tree.
    """

    parser = ET.XMLParser(
        remove_blank_text=True,
        remove_comments=True,
        strip_cdata=False,
    )

    ns_attr_list = "".join(f' xmlns:{key}="{value}"' for key, value in _namespaces.items())

    data = [f"<root{ns_attr_list}>"]
    data.extend(items)
    data.append("</root>")

    try:
        return ET.fromstringlist(data, parser=parser)
    except ET.XMLSyntaxError as ex:
        raise ParseError() from ex


def elements_from_string(content: str) -> ElementType:
    """
    Creates a Confluence Storage Format XML document tree from an XML string.

    :param content: String to parse into XML.
    :returns: An XML document as an element tree.
    """

    return elements_from_strings([content])


def elements_to_string(root: ElementType) -> str:
    """
    Converts a Confluence Storage Format element tree into an XML string to push to Confluence REST API.

    Namespace declarations are hoisted to the synthetic root element, which is then stripped.

    :param root: Synthesized XML element tree of a Confluence Storage Format document.
    :returns: XML as a string.
    """

    ET.cleanup_namespaces(root, top_nsmap=_namespaces)  # type: ignore[arg-type]
    if len(root) == 0 and not root.text:
        return ""

    xml = ET.tostring(root, encoding="utf8", method="xml").decode("utf8")
    m = re.match(r"^<root\s+[^>]*>(.*)</root>\s*$", xml, re.DOTALL)
    if m:
        return m.group(1)
    else:
        raise ValueError("expected: Confluence content")

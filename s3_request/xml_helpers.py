"""Typed wrappers for lxml operations to provide type safety."""

from typing import Any

import lxml.etree as _ET  # ty: ignore[unresolved-import]

from s3_request.errors import InvalidResponseError


# Using Any for Element types since lxml doesn't have proper type stubs
Element = Any

S3_XMLNS = "http://s3.amazonaws.com/doc/2006-03-01/"


def create_element(tag: str, **attribs: str) -> Element:
    """Create an XML element with optional attributes."""
    return _ET.Element(tag, **attribs)


def add_subelement(parent: Element, tag: str, text: str | None = None) -> Element:
    """Add a child element to a parent element with optional text content."""
    elem = _ET.SubElement(parent, tag)
    if text is not None:
        elem.text = text
    return elem


def to_xml_bytes(
    root: Element, encoding: str = "UTF-8", xml_declaration: bool = False, pretty_print: bool = False
) -> bytes:
    """Convert an element tree to bytes.

    Request bodies are hashed before sending, so the defaults produce a compact
    document without declaration.
    """
    result: bytes = _ET.tostring(root, encoding=encoding, xml_declaration=xml_declaration, pretty_print=pretty_print)
    return result


def parse_xml(data: bytes) -> Element:
    """Parse a response document and strip namespaces from every tag."""
    if not data or not data.strip():
        raise InvalidResponseError("Empty XML document")
    parser = _ET.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = _ET.fromstring(data, parser=parser)
    except _ET.XMLSyntaxError as e:
        raise InvalidResponseError(f"Malformed XML document: {e}") from e

    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]
    return root


def find_text(parent: Element, tag: str, default: str | None = None) -> str | None:
    """Return the text of the first direct child named ``tag``."""
    elem = parent.find(tag)
    if elem is None:
        return default
    return elem.text if elem.text is not None else ""


def find_all(parent: Element, tag: str) -> list[Element]:
    return list(parent.findall(tag))


def error_code_from_body(body: str) -> str | None:
    """Extract <Code> from an S3 XML error document, if the body is one."""
    try:
        root = parse_xml(body.encode("utf-8"))
    except InvalidResponseError:
        return None
    if root.tag != "Error":
        return None
    return find_text(root, "Code")

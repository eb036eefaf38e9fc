import logging
from pathlib import Path
from typing import List, Optional, Union

from lxml import etree as ET
from lxml.etree import Element

from mathml_query_generator.models.mathml_models import ElementNode, TextNode

logger = logging.getLogger(__name__)

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
SUPPORTED_EXTENSIONS = [".xml", ".mml", ".html", ".xhtml"]

# characters up to U+0020; non-breaking and other Unicode spaces are content
XML_TRIM_CHARS = "".join(chr(code) for code in range(0x21))


def trim_text(text: str) -> str:
    """Strip leading and trailing control characters and ASCII spaces."""
    return text.strip(XML_TRIM_CHARS)


class MathMLParseError(Exception):
    """Exception raised for errors during MathML parsing."""

    pass


class MathMLXMLParser:
    """Parser for MathML query documents.

    Single responsibility: turn XML text into the node model.
    - No query logic
    - Whitespace-only text is dropped
    - Comments and processing instructions are dropped
    """

    def __init__(self):
        """Initialize parser.

        Entities declared in an internal DTD subset are expanded into text,
        external entities are never loaded.
        """
        self._parser = ET.XMLParser(
            resolve_entities="internal", remove_comments=True, remove_pis=True
        )

    def parse_string(self, xml_text: Union[str, bytes]) -> ElementNode:
        """Parse an XML document held in memory.

        Args:
            xml_text: Document source

        Returns:
            ElementNode for the document's root element

        Raises:
            MathMLParseError: If the text is not well-formed XML
        """
        if isinstance(xml_text, str):
            xml_text = xml_text.encode("utf-8")
        try:
            root = ET.fromstring(xml_text, self._parser)
        except ET.XMLSyntaxError as e:
            raise MathMLParseError(f"Failed to parse MathML string: {str(e)}") from e
        return self.to_node(root)

    def parse_file(self, file_path: Union[str, Path]) -> ElementNode:
        """Parse an XML document from disk.

        Args:
            file_path: Path to .xml, .mml, .html or .xhtml file

        Returns:
            ElementNode for the document's root element

        Raises:
            MathMLParseError: If file cannot be parsed
            FileNotFoundError: If file doesn't exist
            ValueError: If file extension is not supported
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        ext = file_path.suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported file extension: {ext}")

        try:
            tree = ET.parse(str(file_path), self._parser)
        except (ET.XMLSyntaxError, OSError) as e:
            raise MathMLParseError(f"Failed to parse {file_path}: {str(e)}") from e

        logger.debug(f"Parsed {file_path}")
        return self.to_node(tree.getroot())

    def parse_file_tree(self, file_path: Union[str, Path]) -> Element:
        """Parse a file and return the raw lxml root element.

        Used where XPath evaluation over the original tree is needed.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        try:
            return ET.parse(str(file_path), self._parser).getroot()
        except (ET.XMLSyntaxError, OSError) as e:
            raise MathMLParseError(f"Failed to parse {file_path}: {str(e)}") from e

    def to_node(self, element: Element) -> ElementNode:
        """Convert an lxml element and its subtree to an ElementNode.

        Args:
            element: lxml element (or element tree)

        Returns:
            ElementNode mirroring the element
        """
        if isinstance(element, ET._ElementTree):
            element = element.getroot()

        children: List[Union[ElementNode, TextNode]] = []
        self._append_text(children, element.text)
        for child in element:
            if isinstance(child.tag, str):
                children.append(self.to_node(child))
            self._append_text(children, child.tail)

        qname = ET.QName(element)
        return ElementNode(
            local_name=qname.localname,
            prefix=element.prefix,
            namespace=qname.namespace,
            attributes={
                self._attribute_name(element, key): value
                for key, value in element.attrib.items()
            },
            children=children,
        )

    @staticmethod
    def _append_text(
        children: List[Union[ElementNode, TextNode]], text: Optional[str]
    ) -> None:
        if text is not None and trim_text(text):
            children.append(TextNode(value=text))

    @staticmethod
    def _attribute_name(element: Element, key: str) -> str:
        """Map a Clark-notation attribute key to its prefixed form."""
        qname = ET.QName(key)
        if qname.namespace is None:
            return qname.localname
        if qname.namespace == XML_NAMESPACE:
            return f"xml:{qname.localname}"
        for prefix, uri in element.nsmap.items():
            if uri == qname.namespace and prefix:
                return f"{prefix}:{qname.localname}"
        return key

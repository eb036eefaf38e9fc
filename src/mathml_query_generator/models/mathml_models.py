"""Data models for parsed MathML documents.

A parsed document is a closed tree of two node kinds: elements and text
leaves. Whitespace-only text never becomes a node, so every children list
is already filtered when the compiler sees it.
"""

from typing import Dict, Iterator, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class TextNode(BaseModel):
    """Text leaf holding a non-blank string."""

    kind: Literal["text"] = "text"
    value: str = Field(description="Raw text value, untrimmed")

    model_config = ConfigDict(frozen=True)


class ElementNode(BaseModel):
    """Element with a qualified name, attributes and ordered children."""

    kind: Literal["element"] = "element"
    local_name: str = Field(description="Tag name without prefix")
    prefix: Optional[str] = Field(None, description="Namespace prefix as written")
    namespace: Optional[str] = Field(None, description="Namespace URI")
    attributes: Dict[str, str] = Field(default_factory=dict)
    children: List[Union["ElementNode", TextNode]] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def qualified_name(self) -> str:
        """Name as written in the source, e.g. ``mws:qvar`` or ``apply``."""
        if self.prefix:
            return f"{self.prefix}:{self.local_name}"
        return self.local_name

    def has_children(self) -> bool:
        return bool(self.children)

    def first_element_child(self) -> Optional["ElementNode"]:
        for child in self.children:
            if child.kind == "element":
                return child
        return None

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Look up an attribute by its qualified name."""
        return self.attributes.get(name, default)

    def text_content(self) -> str:
        """Concatenated text of all descendant text leaves."""
        return "".join(self.itertext())

    def itertext(self) -> Iterator[str]:
        for child in self.children:
            if child.kind == "text":
                yield child.value
            else:
                yield from child.itertext()

    def iter(self) -> Iterator["ElementNode"]:
        """Yield this element and all descendant elements in document order."""
        yield self
        for child in self.children:
            if child.kind == "element":
                yield from child.iter()


MathMLNode = Union[ElementNode, TextNode]

ElementNode.model_rebuild()

"""
XQuery Generator - Converts Content MathML queries to XQuery expressions.

The generated query binds every candidate hit to ``$x``; the footer may refer
to ``$x`` as the result node. When the qvar map is enabled, ``$q`` maps every
qvar name to the xml:id values of the nodes it matched.

Query variables (``mws:qvar``) act as wildcards. Repeated occurrences of the
same name must match equal subtrees, which is expressed with XQuery ``=``
equality between the occurrence paths.
"""

import logging
import re
from typing import Dict, List, Optional, Union

from mathml_query_generator.core.main_element_locator import MainElementLocator
from mathml_query_generator.core.xml_parser import MathMLXMLParser, trim_text
from mathml_query_generator.models.mathml_models import ElementNode
from mathml_query_generator.models.query_models import QueryConfig

logger = logging.getLogger(__name__)

QVAR_TAG = "mws:qvar"
ANNOTATION_PATTERN = re.compile(r"annotation(-xml)?")


class QueryGenerationError(Exception):
    """Raised when a query document violates the input contract."""

    pass


class MalformedWildcardError(QueryGenerationError):
    """Raised for a qvar that has neither text content nor a name attribute."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"{QVAR_TAG} at $x{path} has neither text content nor a name attribute"
        )


class EmptyExpressionError(QueryGenerationError):
    """Raised when the main element has no element child to bind $x to."""

    pass


def _quote(value: str) -> str:
    """XQuery string literal in single quotes."""
    return "'" + value.replace("'", "''") + "'"


class _CompilationSession:
    """Traversal state of a single compilation.

    Owns the qvar table, the relative path stack and the length constraint.
    A new session is created for every compilation, so nothing leaks from one
    run into the next.
    """

    def __init__(self, restrict_length: bool):
        self.restrict_length = restrict_length
        self.qvar: Dict[str, List[str]] = {}
        self._path: List[str] = []
        self._length_constraints: List[str] = []

    @property
    def relative_xpath(self) -> str:
        return "".join(self._path)

    @property
    def length_constraint(self) -> str:
        return "\n and ".join(self._length_constraints)

    def generate_simple_constraints(self, node: ElementNode, is_root: bool = False) -> str:
        """Build the exact match constraint for all children of ``node``.

        Records qvar occurrences and length constraints on the way. The direct
        children of the root are not constrained by name here; the first of
        them is bound in the ``for`` clause instead.

        Args:
            node: Element whose children are constrained
            is_root: Whether ``node`` is the main element

        Returns:
            str: Constraint text relative to ``node``
        """
        child_index = 0
        out = ""
        query_has_text = False

        for child in node.children:
            if child.kind == "element":
                child_index += 1

                if child.qualified_name == QVAR_TAG:
                    self._add_qvar(child, child_index)
                elif ANNOTATION_PATTERN.fullmatch(child.local_name):
                    # annotations and presentation markup
                    continue
                else:
                    if query_has_text:
                        out += " and "
                    else:
                        query_has_text = True

                    if not is_root:
                        out += f"*[{child_index}]/name() = {_quote(child.local_name)}"

                    if child.has_children():
                        if not is_root:
                            self._path.append(f"/*[{child_index}]")
                            out += f" and *[{child_index}]"
                        constraint = self.generate_simple_constraints(child)
                        if not is_root:
                            self._path.pop()
                        if constraint:
                            out += f"[{constraint}]"
            else:
                if query_has_text:
                    out += " and "
                else:
                    query_has_text = True
                out += f"./text() = {_quote(trim_text(child.value))}"

        if not is_root and self.restrict_length:
            self._length_constraints.append(
                f"fn:count($x{self.relative_xpath}/*) = {child_index}"
            )

        return out

    def _add_qvar(self, child: ElementNode, child_index: int) -> None:
        path = f"{self.relative_xpath}/*[{child_index}]"
        name = trim_text(child.text_content()) or child.get("name")
        if not name:
            raise MalformedWildcardError(path)

        logger.debug(f"qvar '{name}' at $x{path}")
        self.qvar.setdefault(name, []).append(path)

    def generate_qvar_constraints(self) -> str:
        """Equality constraints between repeated occurrences of each qvar."""
        groups = []
        for name, paths in self.qvar.items():
            first = paths[0]
            pairs = [f"$x{first} = $x{other}" for other in paths[1:]]
            if pairs:
                groups.append(" and ".join(pairs))
        return "\n and ".join(groups)

    def generate_qvar_map(self) -> str:
        """``let $q := map {...}`` clause exposing the xml:id of every qvar hit."""
        if not self.qvar:
            return ""

        entries = []
        for name, paths in self.qvar.items():
            values = [f"data($x{paths[0]}/@xml:id)"]
            values.extend(f"data($x{other}/@xml-id)" for other in paths[1:])
            entries.append(f'"{name}" : (' + ",".join(values) + ")")
        return "let $q := map {" + ",".join(entries) + "}"


def build_query(
    main_element: ElementNode,
    fixed_constraints: str,
    length_constraint: str,
    qvar_constraint: str,
    qvar_map: str,
    header: str,
    footer: str,
) -> str:
    """Assemble the XQuery from its already generated parts.

    Args:
        main_element: Located main element; its first element child names the
            ``for`` binding
        fixed_constraints: Exact match constraint
        length_constraint: Child count constraints
        qvar_constraint: Qvar equality constraints
        qvar_map: ``let $q`` clause, or empty
        header: Text placed before the query
        footer: Text placed after ``return``

    Returns:
        str: The complete query

    Raises:
        EmptyExpressionError: If the main element has no element child
    """
    first_child = main_element.first_element_child()
    if first_child is None:
        raise EmptyExpressionError(
            f"<{main_element.qualified_name}> has no element child to query for"
        )

    out = header
    out += "for $x in $m//*:" + first_child.local_name + "\n" + fixed_constraints
    if length_constraint or qvar_constraint:
        out += "\n" + "where" + "\n"
        if not length_constraint:
            out += qvar_constraint
        else:
            out += length_constraint
            if qvar_constraint:
                out += "\n and " + qvar_constraint
    if qvar_map:
        out += "\n" + qvar_map
    out += "\n" + "\n" + "return" + "\n" + footer
    return out


class XQueryGenerator:
    """Converts MathML queries into XQueries.

    The query is wrapped with a header and a footer, which default to a DB2
    setup and can be replaced, either as a whole or through the namespace,
    path to root and return format parts.

    Example:
        >>> generator = XQueryGenerator(xml_text).set_restrict_length(False)
        >>> generator.generate()
    """

    def __init__(
        self,
        source: Union[ElementNode, str, bytes, None] = None,
        config: Optional[QueryConfig] = None,
    ):
        """Build a generator for a query document.

        Args:
            source: Parsed document, or XML text to parse
            config: Query options, defaults to QueryConfig()
        """
        self.config = config.model_copy() if config is not None else QueryConfig()
        self.qvar: Dict[str, List[str]] = {}
        self.main_element: Optional[ElementNode] = None

        if isinstance(source, (str, bytes)):
            source = MathMLXMLParser().parse_string(source)
        if source is not None:
            self.main_element = MainElementLocator().locate(source)

    @classmethod
    def from_main_element(
        cls, main_element: Optional[ElementNode], config: Optional[QueryConfig] = None
    ) -> "XQueryGenerator":
        """Build a generator for an already located main element."""
        generator = cls(config=config)
        generator.set_main_element(main_element)
        return generator

    def set_main_element(self, main_element: Optional[ElementNode]) -> "XQueryGenerator":
        """Reset the generated state and use a new main element."""
        self.main_element = main_element
        self.qvar = {}
        return self

    @property
    def restrict_length(self) -> bool:
        return self.config.restrict_length

    def set_restrict_length(self, restrict_length: bool) -> "XQueryGenerator":
        """If True, a query like x+y does not match x+y+z."""
        self.config.restrict_length = restrict_length
        return self

    @property
    def add_qvar_map(self) -> bool:
        return self.config.emit_wildcard_map

    def set_add_qvar_map(self, add_qvar_map: bool) -> "XQueryGenerator":
        """Whether the $q map of qvar names to xml:id values is generated."""
        self.config.emit_wildcard_map = add_qvar_map
        return self

    @property
    def header(self) -> str:
        return self.config.resolved_header()

    def set_header(self, header: Optional[str]) -> "XQueryGenerator":
        self.config.header = header
        return self

    @property
    def footer(self) -> str:
        return self.config.resolved_footer()

    def set_footer(self, footer: Optional[str]) -> "XQueryGenerator":
        self.config.footer = footer
        return self

    def set_namespace(self, namespace: str) -> "XQueryGenerator":
        self.config.namespace = namespace
        return self

    def set_path_to_root(self, path_to_root: str) -> "XQueryGenerator":
        self.config.path_to_root = path_to_root
        return self

    def set_return_format(self, return_format: str) -> "XQueryGenerator":
        self.config.return_format = return_format
        return self

    def generate(self) -> Optional[str]:
        """Generate the XQuery for the main element.

        Returns:
            str: The query, or None if there is no main element

        Raises:
            MalformedWildcardError: If a qvar has no name
            EmptyExpressionError: If the main element has no element child
        """
        if self.main_element is None:
            return None

        session = _CompilationSession(self.config.restrict_length)
        exact_match = session.generate_simple_constraints(self.main_element, is_root=True)
        qvar_constraint = session.generate_qvar_constraints()
        qvar_map = session.generate_qvar_map() if self.config.emit_wildcard_map else ""
        self.qvar = session.qvar

        logger.debug(
            f"Generated constraints for <{self.main_element.qualified_name}> "
            f"with {len(session.qvar)} qvars"
        )
        return build_query(
            self.main_element,
            exact_match,
            session.length_constraint,
            qvar_constraint,
            qvar_map,
            self.config.resolved_header(),
            self.config.resolved_footer(),
        )


def generate_xquery(
    source: Union[ElementNode, str, bytes, None], config: Optional[QueryConfig] = None
) -> Optional[str]:
    """Locate the main element of ``source`` and compile it in one call."""
    return XQueryGenerator(source, config).generate()

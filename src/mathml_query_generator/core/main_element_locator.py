import logging
from typing import Callable, List, Optional, Tuple

from mathml_query_generator.models.mathml_models import ElementNode

logger = logging.getLogger(__name__)

EXPR_TAG = "mws:expr"
ANNOTATION_XML_TAG = "annotation-xml"
CONTENT_ENCODING = "MathML-Content"
SEMANTICS_LOCAL_NAME = "semantics"
MATH_LOCAL_NAME = "math"


class MainElementLocator:
    """Finds the element whose content is the query formula.

    Embedding conventions are tried in a fixed order, the first match wins:
    1. ``mws:expr`` wrapper
    2. ``annotation-xml`` with ``encoding="MathML-Content"``
    3. first ``semantics`` element, any namespace
    4. first ``math`` element, any namespace
    """

    def __init__(self):
        self._strategies: List[Tuple[str, Callable[[ElementNode], bool]]] = [
            ("mws:expr", self._is_expr),
            ("annotation-xml", self._is_content_annotation),
            ("semantics", self._is_semantics),
            ("math", self._is_math),
        ]

    def locate(self, document: Optional[ElementNode]) -> Optional[ElementNode]:
        """Return the main element of a document, or None if it has none.

        Args:
            document: Root of the parsed document

        Returns:
            The located element, or None when no convention matches
        """
        if document is None:
            return None

        for name, matches in self._strategies:
            for element in document.iter():
                if matches(element):
                    logger.debug(f"Main element found via {name} convention")
                    return element

        logger.info("No main element found in document")
        return None

    @staticmethod
    def _is_expr(element: ElementNode) -> bool:
        return element.qualified_name == EXPR_TAG

    @staticmethod
    def _is_content_annotation(element: ElementNode) -> bool:
        return (
            element.qualified_name == ANNOTATION_XML_TAG
            and element.get("encoding") == CONTENT_ENCODING
        )

    @staticmethod
    def _is_semantics(element: ElementNode) -> bool:
        return element.local_name == SEMANTICS_LOCAL_NAME

    @staticmethod
    def _is_math(element: ElementNode) -> bool:
        return element.local_name == MATH_LOCAL_NAME


def get_main_element(document: Optional[ElementNode]) -> Optional[ElementNode]:
    """Shortcut for ``MainElementLocator().locate(document)``."""
    return MainElementLocator().locate(document)

"""MathML to XQuery query generator.

Converts Content MathML formula queries, optionally containing qvar
wildcards, into XQuery expressions for structural formula search.
"""

from mathml_query_generator.core.xml_parser import MathMLXMLParser, MathMLParseError
from mathml_query_generator.core.main_element_locator import MainElementLocator
from mathml_query_generator.core.query_generator import (
    XQueryGenerator,
    QueryGenerationError,
    MalformedWildcardError,
    EmptyExpressionError,
    generate_xquery,
)
from mathml_query_generator.core.topic_reader import NtcirTopicReader, TopicReaderError
from mathml_query_generator.models.query_models import (
    QueryConfig,
    QueryPattern,
    load_dialect,
)

# Version
__version__ = "0.1.0"

# Public API
__all__ = [
    # Core components
    "MathMLXMLParser",
    "MainElementLocator",
    "XQueryGenerator",
    "NtcirTopicReader",
    "generate_xquery",
    # Configuration and results
    "QueryConfig",
    "QueryPattern",
    "load_dialect",
    # Errors
    "MathMLParseError",
    "QueryGenerationError",
    "MalformedWildcardError",
    "EmptyExpressionError",
    "TopicReaderError",
    # Version
    "__version__",
]

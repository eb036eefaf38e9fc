from .main_element_locator import MainElementLocator, get_main_element
from .query_generator import (
    EmptyExpressionError,
    MalformedWildcardError,
    QueryGenerationError,
    XQueryGenerator,
    generate_xquery,
)
from .topic_reader import NtcirTopicReader, TopicReaderError
from .xml_parser import MathMLParseError, MathMLXMLParser

__all__ = [
    "MainElementLocator",
    "get_main_element",
    "XQueryGenerator",
    "generate_xquery",
    "QueryGenerationError",
    "MalformedWildcardError",
    "EmptyExpressionError",
    "NtcirTopicReader",
    "TopicReaderError",
    "MathMLXMLParser",
    "MathMLParseError",
]

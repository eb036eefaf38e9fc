from .mathml_models import ElementNode, MathMLNode, TextNode
from .query_models import (
    ExtractionStatus,
    QueryConfig,
    QueryPattern,
    TopicExtractionResult,
    load_dialect,
)

__all__ = [
    "ElementNode",
    "TextNode",
    "MathMLNode",
    "QueryConfig",
    "QueryPattern",
    "TopicExtractionResult",
    "ExtractionStatus",
    "load_dialect",
]

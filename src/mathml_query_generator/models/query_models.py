"""Configuration and result models for XQuery generation."""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .mathml_models import ElementNode

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = (
    'declare default element namespace "http://www.w3.org/1998/Math/MathML";'
)
DEFAULT_PATH_TO_ROOT = 'db2-fn:xmlcolumn("math.math_mathml")'
DEFAULT_RETURN_FORMAT = "data($m/*[1]/@alttext)"

DIALECTS_FILE = Path(__file__).parent.parent / "config" / "dialects.yaml"


class QueryConfig(BaseModel):
    """Options controlling the text wrapped around the generated constraints."""

    namespace: str = Field(
        DEFAULT_NAMESPACE, description="Namespace declaration opening the query"
    )
    path_to_root: str = Field(
        DEFAULT_PATH_TO_ROOT, description="Expression bound to $m"
    )
    return_format: str = Field(
        DEFAULT_RETURN_FORMAT, description="Return clause body, used as footer"
    )
    header: Optional[str] = Field(
        None, description="Explicit header, overrides namespace and path_to_root"
    )
    footer: Optional[str] = Field(
        None, description="Explicit footer, overrides return_format"
    )
    restrict_length: bool = Field(
        True, description="Emit exact child-count constraints"
    )
    emit_wildcard_map: bool = Field(
        True, description="Emit the $q map of qvar names to xml:id values"
    )

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    def resolved_header(self) -> str:
        if self.header is not None:
            return self.header
        out = ""
        if self.namespace:
            out += self.namespace + "\n"
        return out + "for $m in " + self.path_to_root + " return\n"

    def resolved_footer(self) -> str:
        if self.footer is not None:
            return self.footer
        return self.return_format

    @classmethod
    def from_yaml(
        cls, config_path: Union[str, Path], dialect: Optional[str] = None
    ) -> "QueryConfig":
        """Load a configuration from a YAML file.

        The file either holds the options at top level, or a ``dialects``
        mapping of named option sets, in which case ``dialect`` picks one.

        Raises:
            FileNotFoundError: If the file doesn't exist
            KeyError: If the requested dialect is not defined
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if "dialects" in data:
            dialects: Dict[str, Dict] = data["dialects"] or {}
            name = dialect or data.get("default")
            if name not in dialects:
                raise KeyError(
                    f"Unknown dialect '{name}', available: {', '.join(sorted(dialects))}"
                )
            data = dialects[name] or {}
        elif dialect is not None:
            raise KeyError(f"{config_path} defines no dialects")

        logger.debug(f"Loaded query config from {config_path}")
        return cls(**data)


def load_dialect(name: str) -> QueryConfig:
    """Load one of the packaged dialect presets (``db2``, ``basex``, ``plain``)."""
    return QueryConfig.from_yaml(DIALECTS_FILE, name)


class QueryPattern(BaseModel):
    """One compiled formula out of a topic set."""

    num: str = Field(description="Topic identifier")
    formula_id: str = Field(description="Formula identifier within the topic")
    xquery: str = Field(description="Generated XQuery expression")
    math_node: ElementNode = Field(description="The formula's math element")


class ExtractionStatus(str, Enum):
    """Status of a topic extraction run"""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some formulas failed but others compiled
    FAILED = "failed"


class FormulaError(BaseModel):
    """Details about a formula that could not be compiled"""

    num: Optional[str] = None
    formula_id: Optional[str] = None
    error: str


class ExtractionStats(BaseModel):
    """Statistics about the extraction"""

    total_formulas: int = 0
    compiled_formulas: int = 0
    skipped_formulas: int = 0
    failed_formulas: int = 0


class TopicExtractionResult(BaseModel):
    """Complete results of reading a topic set"""

    status: ExtractionStatus = ExtractionStatus.SUCCESS
    patterns: List[QueryPattern] = Field(default_factory=list)
    stats: ExtractionStats = Field(default_factory=ExtractionStats)
    errors: List[FormulaError] = Field(default_factory=list)

    def add_pattern(self, pattern: QueryPattern):
        """Add a successfully compiled formula"""
        self.patterns.append(pattern)
        self.stats.compiled_formulas += 1

    def add_error(
        self,
        error: str,
        num: Optional[str] = None,
        formula_id: Optional[str] = None,
    ):
        """Add an error that occurred while compiling a formula"""
        self.errors.append(FormulaError(num=num, formula_id=formula_id, error=error))
        self.stats.failed_formulas += 1

    def update_status(self):
        """Update the overall status based on current stats"""
        if self.stats.failed_formulas == 0:
            self.status = ExtractionStatus.SUCCESS
        elif self.stats.failed_formulas < self.stats.total_formulas:
            self.status = ExtractionStatus.PARTIAL
        else:
            self.status = ExtractionStatus.FAILED

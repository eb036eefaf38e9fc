"""Reader for NTCIR math topic sets.

Reads the topic format of the NTCIR-11 Math task, where every ``topic``
carries a ``num`` and one or more ``query/formula`` elements, and converts
each formula into an XQuery with XQueryGenerator.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from lxml import etree as ET
from lxml.etree import Element

from mathml_query_generator.core.query_generator import (
    QueryGenerationError,
    XQueryGenerator,
)
from mathml_query_generator.core.xml_parser import MathMLXMLParser
from mathml_query_generator.models.query_models import (
    QueryConfig,
    QueryPattern,
    TopicExtractionResult,
)

NS_NII = "http://ntcir-math.nii.ac.jp/"
NAMESPACES = {"t": NS_NII}


class TopicReaderError(Exception):
    """Raised when a topic set does not follow the NTCIR topic format."""

    pass


class NtcirTopicReader:
    """Splits an NTCIR topic file into formulas and compiles each of them.

    Every formula gets its own generator, so qvar tables never mix between
    formulas.
    """

    def __init__(
        self,
        topics: Union[str, Path, Element],
        config: Optional[QueryConfig] = None,
    ):
        """Initialize the reader.

        Args:
            topics: Path to a topic file, or an already parsed lxml root
            config: Query options applied to every formula
        """
        self.logger = logging.getLogger(__name__)
        self.parser = MathMLXMLParser()
        self.config = config.model_copy() if config is not None else QueryConfig()

        if isinstance(topics, (str, Path)):
            self.topics = self.parser.parse_file_tree(topics)
            self.logger.info(f"Loaded topics from {topics}")
        elif isinstance(topics, ET._ElementTree):
            self.topics = topics.getroot()
        else:
            self.topics = topics

    def set_header(self, header: Optional[str]) -> "NtcirTopicReader":
        self.config.header = header
        return self

    def set_footer(self, footer: Optional[str]) -> "NtcirTopicReader":
        self.config.footer = footer
        return self

    def set_restrict_length(self, restrict_length: bool) -> "NtcirTopicReader":
        self.config.restrict_length = restrict_length
        return self

    def set_add_qvar_map(self, add_qvar_map: bool) -> "NtcirTopicReader":
        self.config.emit_wildcard_map = add_qvar_map
        return self

    def extract_patterns(self) -> List[QueryPattern]:
        """Compile every formula of the topic set.

        Returns:
            List of QueryPattern, one per compiled formula, in document order

        Raises:
            TopicReaderError: If a topic or formula lacks its identifier
            QueryGenerationError: If a formula violates the query contract
        """
        patterns = []
        for num, formula in self._iter_formulas():
            pattern = self._compile_formula(num, formula)
            if pattern is not None:
                patterns.append(pattern)

        self.logger.info(f"Extracted {len(patterns)} patterns")
        return patterns

    def extract_patterns_report(self) -> TopicExtractionResult:
        """Compile every formula, collecting failures instead of raising."""
        result = TopicExtractionResult()

        for topic in self._topics():
            num = self._topic_num(topic)
            for formula in self._formulas(topic):
                result.stats.total_formulas += 1
                formula_id = formula.get("id")
                try:
                    if num is None:
                        raise TopicReaderError("Topic without num")
                    pattern = self._compile_formula(num, formula)
                except (TopicReaderError, QueryGenerationError) as e:
                    self.logger.warning(f"Failed to compile {num}/{formula_id}: {e}")
                    result.add_error(str(e), num=num, formula_id=formula_id)
                    continue

                if pattern is None:
                    result.stats.skipped_formulas += 1
                else:
                    result.add_pattern(pattern)

        result.update_status()
        self.logger.info(
            f"Compiled {result.stats.compiled_formulas} of "
            f"{result.stats.total_formulas} formulas ({result.status.value})"
        )
        return result

    def _topics(self) -> List[Element]:
        return self.topics.xpath("//t:topic", namespaces=NAMESPACES)

    @staticmethod
    def _formulas(topic: Element) -> List[Element]:
        return topic.xpath("./t:query/t:formula", namespaces=NAMESPACES)

    @staticmethod
    def _topic_num(topic: Element) -> Optional[str]:
        num = topic.xpath("string(./t:num)", namespaces=NAMESPACES)
        return num.strip() or None

    def _iter_formulas(self) -> Iterator[Tuple[str, Element]]:
        for topic in self._topics():
            num = self._topic_num(topic)
            if num is None:
                raise TopicReaderError("Topic without num")
            for formula in self._formulas(topic):
                yield num, formula

    def _compile_formula(self, num: str, formula: Element) -> Optional[QueryPattern]:
        formula_id = formula.get("id")
        if formula_id is None:
            raise TopicReaderError(f"Formula without id in topic {num}")

        math_element = self._first_element(formula)
        if math_element is None:
            raise TopicReaderError(f"Formula {formula_id} in topic {num} is empty")

        math_node = self.parser.to_node(math_element)
        generator = XQueryGenerator.from_main_element(
            math_node.first_element_child(), self.config
        )
        xquery = generator.generate()
        if xquery is None:
            self.logger.warning(f"No queryable content in {num}/{formula_id}")
            return None

        return QueryPattern(
            num=num, formula_id=formula_id, xquery=xquery, math_node=math_node
        )

    @staticmethod
    def _first_element(element: Element) -> Optional[Element]:
        for child in element:
            if isinstance(child.tag, str):
                return child
        return None

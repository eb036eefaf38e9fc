"""
Command line entry point.

Converts a single MathML query document, or every formula of an NTCIR topic
set, into XQuery.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from mathml_query_generator.core.query_generator import (
    QueryGenerationError,
    XQueryGenerator,
)
from mathml_query_generator.core.topic_reader import NtcirTopicReader, TopicReaderError
from mathml_query_generator.core.xml_parser import MathMLParseError, MathMLXMLParser
from mathml_query_generator.models.query_models import QueryConfig, load_dialect

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> QueryConfig:
    """Combine dialect preset, config file and command line overrides."""
    if args.config:
        config = QueryConfig.from_yaml(args.config, args.dialect)
    else:
        config = load_dialect(args.dialect or "db2")

    if args.namespace is not None:
        config.namespace = args.namespace
    if args.path_to_root is not None:
        config.path_to_root = args.path_to_root
    if args.return_format is not None:
        config.return_format = args.return_format
    if args.no_restrict_length:
        config.restrict_length = False
    if args.no_qvar_map:
        config.emit_wildcard_map = False
    return config


def convert_query_file(query_file: str, config: QueryConfig) -> Optional[str]:
    """Generate the XQuery of one query document."""
    document = MathMLXMLParser().parse_file(query_file)
    return XQueryGenerator(document, config).generate()


def convert_topic_file(
    topic_file: str, config: QueryConfig, json_out: Optional[str] = None
) -> int:
    """Generate XQueries for a topic set, printing them or writing JSON."""
    result = NtcirTopicReader(topic_file, config).extract_patterns_report()

    if json_out:
        records = [
            {"num": p.num, "formula_id": p.formula_id, "xquery": p.xquery}
            for p in result.patterns
        ]
        output_path = Path(json_out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
        logger.info(f"Wrote {len(records)} queries to {output_path}")
    else:
        for pattern in result.patterns:
            print(f"(: {pattern.num} {pattern.formula_id} :)")
            print(pattern.xquery)
            print()

    for error in result.errors:
        print(
            f"  - {error.num}/{error.formula_id}: {error.error}", file=sys.stderr
        )
    return 0 if result.patterns else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the mathml-xquery CLI command."""
    parser = argparse.ArgumentParser(
        prog="mathml-xquery",
        description="Convert Content MathML queries to XQuery",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert one query document
  mathml-xquery query.xml

  # Convert an NTCIR topic set for BaseX without length restriction
  mathml-xquery --topics NTCIR11-Math-topics.xml --dialect basex --no-restrict-length
        """,
    )

    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument(
        "query", nargs="?", metavar="FILE", help="MathML query document"
    )
    mode_group.add_argument(
        "--topics", type=str, metavar="FILE", help="NTCIR topic set file"
    )

    parser.add_argument(
        "--dialect", type=str, help="Named preset: db2 (default), basex, plain"
    )
    parser.add_argument("--config", type=str, help="YAML file with query options")
    parser.add_argument("--namespace", type=str, help="Namespace declaration")
    parser.add_argument("--path-to-root", type=str, help="Expression bound to $m")
    parser.add_argument("--return-format", type=str, help="Return clause body")
    parser.add_argument(
        "--no-restrict-length",
        action="store_true",
        help="Do not emit exact child count constraints",
    )
    parser.add_argument(
        "--no-qvar-map", action="store_true", help="Do not emit the $q qvar map"
    )
    parser.add_argument(
        "--json-out", type=str, help="Write topic results to this JSON file"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = build_config(args)
        if args.topics:
            return convert_topic_file(args.topics, config, args.json_out)

        xquery = convert_query_file(args.query, config)
    except (
        FileNotFoundError,
        ValueError,
        KeyError,
        MathMLParseError,
        QueryGenerationError,
        TopicReaderError,
    ) as e:
        logger.error(f"Conversion failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if xquery is None:
        print("Error: no MathML found in query document", file=sys.stderr)
        return 1

    print(xquery)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Tests for MathML query to XQuery conversion.

Generated queries are compared against reference strings, so any change in
whitespace or ordering shows up here.
"""

import re

import pytest

from mathml_query_generator import (
    EmptyExpressionError,
    MalformedWildcardError,
    QueryConfig,
    XQueryGenerator,
    generate_xquery,
)
from mathml_query_generator.core.xml_parser import MathMLXMLParser

DB2_HEADER = (
    'declare default element namespace "http://www.w3.org/1998/Math/MathML";\n'
    'for $m in db2-fn:xmlcolumn("math.math_mathml") return\n'
)
DB2_FOOTER = "data($m/*[1]/@alttext)"

TOPIC_1_QUERY = """<?xml version="1.0" encoding="UTF-8"?>
<math xmlns="http://www.w3.org/1998/Math/MathML">
  <semantics>
    <apply>
      <gt/>
      <apply>
        <times/>
        <ci>W</ci>
        <interval>
          <cn>2</cn>
          <ci>k</ci>
        </interval>
      </apply>
      <apply>
        <divide/>
        <apply>
          <csymbol>superscript</csymbol>
          <cn>2</cn>
          <ci>k</ci>
        </apply>
        <apply>
          <csymbol>superscript</csymbol>
          <ci>k</ci>
          <ci>ε</ci>
        </apply>
      </apply>
    </apply>
    <annotation-xml encoding="MathML-Presentation">
      <mrow><mi>W</mi><mo>&gt;</mo><mn>2</mn></mrow>
    </annotation-xml>
  </semantics>
</math>
"""

TOPIC_1_CONSTRAINT = (
    "[*[1]/name() = 'gt' and *[2]/name() = 'apply' and *[2][*[1]/name() = 'times' "
    "and *[2]/name() = 'ci' and *[2][./text() = 'W'] and *[3]/name() = 'interval' "
    "and *[3][*[1]/name() = 'cn' and *[1][./text() = '2'] and *[2]/name() = 'ci' "
    "and *[2][./text() = 'k']]] and *[3]/name() = 'apply' and *[3][*[1]/name() = 'divide' "
    "and *[2]/name() = 'apply' and *[2][*[1]/name() = 'csymbol' "
    "and *[1][./text() = 'superscript'] and *[2]/name() = 'cn' and *[2][./text() = '2'] "
    "and *[3]/name() = 'ci' and *[3][./text() = 'k']] and *[3]/name() = 'apply' "
    "and *[3][*[1]/name() = 'csymbol' and *[1][./text() = 'superscript'] "
    "and *[2]/name() = 'ci' and *[2][./text() = 'k'] and *[3]/name() = 'ci' "
    "and *[3][./text() = 'ε']]]]"
)

TOPIC_1_LENGTH = (
    "fn:count($x/*[2]/*[2]/*) = 0\n"
    " and fn:count($x/*[2]/*[3]/*[1]/*) = 0\n"
    " and fn:count($x/*[2]/*[3]/*[2]/*) = 0\n"
    " and fn:count($x/*[2]/*[3]/*) = 2\n"
    " and fn:count($x/*[2]/*) = 3\n"
    " and fn:count($x/*[3]/*[2]/*[1]/*) = 0\n"
    " and fn:count($x/*[3]/*[2]/*[2]/*) = 0\n"
    " and fn:count($x/*[3]/*[2]/*[3]/*) = 0\n"
    " and fn:count($x/*[3]/*[2]/*) = 3\n"
    " and fn:count($x/*[3]/*[3]/*[1]/*) = 0\n"
    " and fn:count($x/*[3]/*[3]/*[2]/*) = 0\n"
    " and fn:count($x/*[3]/*[3]/*[3]/*) = 0\n"
    " and fn:count($x/*[3]/*[3]/*) = 3\n"
    " and fn:count($x/*[3]/*) = 3\n"
    " and fn:count($x/*) = 3"
)

QVAR_QUERY = """
<mws:query xmlns:mws="http://search.mathweb.org/ns"
           xmlns="http://www.w3.org/1998/Math/MathML">
  <mws:expr>
    <apply>
      <plus/>
      <apply>
        <csymbol>superscript</csymbol>
        <mws:qvar>x</mws:qvar>
        <cn>2</cn>
      </apply>
      <mws:qvar>x</mws:qvar>
    </apply>
  </mws:expr>
</mws:query>
"""

QVAR_CONSTRAINT = (
    "[*[1]/name() = 'plus' and *[2]/name() = 'apply' and *[2][*[1]/name() = 'csymbol' "
    "and *[1][./text() = 'superscript'] and *[3]/name() = 'cn' "
    "and *[3][./text() = '2']]]"
)

SIMPLE_QUERY = '<math xmlns="http://www.w3.org/1998/Math/MathML"><ci>E</ci></math>'


def parse(xml_text):
    return MathMLXMLParser().parse_string(xml_text)


class TestReferenceQueries:
    """Generated queries must match the reference strings byte for byte."""

    def test_topic_with_length_restriction(self):
        expected = (
            DB2_HEADER
            + "for $x in $m//*:apply\n"
            + TOPIC_1_CONSTRAINT
            + "\nwhere\n"
            + TOPIC_1_LENGTH
            + "\n\nreturn\n"
            + DB2_FOOTER
        )
        assert XQueryGenerator(parse(TOPIC_1_QUERY)).generate() == expected

    def test_topic_without_length_restriction(self):
        expected = (
            DB2_HEADER
            + "for $x in $m//*:apply\n"
            + TOPIC_1_CONSTRAINT
            + "\n\nreturn\n"
            + DB2_FOOTER
        )
        generator = XQueryGenerator(parse(TOPIC_1_QUERY)).set_restrict_length(False)

        assert generator.generate() == expected
        assert not generator.restrict_length

    def test_qvar_without_length_restriction(self):
        expected = (
            "for $m in //*:root return\n"
            "for $x in $m//*:apply\n"
            + QVAR_CONSTRAINT
            + "\nwhere\n"
            "$x/*[2]/*[2] = $x/*[3]\n"
            'let $q := map {"x" : (data($x/*[2]/*[2]/@xml:id),data($x/*[3]/@xml-id))}\n'
            "\n"
            "return\n"
        )
        generator = XQueryGenerator(parse(QVAR_QUERY))
        generator.set_return_format("").set_namespace("").set_path_to_root(
            "//*:root"
        ).set_restrict_length(False)

        assert generator.generate() == expected

    def test_qvar_with_length_restriction(self):
        generator = XQueryGenerator(parse(QVAR_QUERY)).set_add_qvar_map(False)
        expected = (
            DB2_HEADER
            + "for $x in $m//*:apply\n"
            + QVAR_CONSTRAINT
            + "\nwhere\n"
            "fn:count($x/*[2]/*[1]/*) = 0\n"
            " and fn:count($x/*[2]/*[3]/*) = 0\n"
            " and fn:count($x/*[2]/*) = 3\n"
            " and fn:count($x/*) = 3\n"
            " and $x/*[2]/*[2] = $x/*[3]"
            "\n\nreturn\n" + DB2_FOOTER
        )
        assert generator.generate() == expected

    def test_customization(self):
        expected = (
            'declare default element namespace "http://www.w3.org/1998/Math/MathML";\n'
            "for $m in //*:root return\n"
            "for $x in $m//*:ci\n"
            "[./text() = 'E']\n"
            "where\n"
            "fn:count($x/*) = 0\n"
            "\n"
            "return\n"
            "<hit>{$x}</hit>"
        )
        generator = XQueryGenerator(SIMPLE_QUERY)
        generator.set_return_format("<hit>{$x}</hit>").set_path_to_root("//*:root")

        assert generator.generate() == expected

    def test_explicit_header_and_footer(self):
        generator = XQueryGenerator(SIMPLE_QUERY).set_header("H\n").set_footer("F")
        result = generator.generate()

        assert result.startswith("H\nfor $x in $m//*:ci\n")
        assert result.endswith("\n\nreturn\nF")
        assert generator.header == "H\n"
        assert generator.footer == "F"


class TestNoMath:
    def test_no_math_returns_none(self):
        generator = XQueryGenerator('<?xml version="1.0"?>\n<noMath />')
        assert generator.main_element is None
        assert generator.generate() is None

    def test_generate_xquery_shortcut(self):
        assert generate_xquery("<root><child/></root>") is None
        assert generate_xquery(SIMPLE_QUERY).startswith(DB2_HEADER)

    def test_no_source(self):
        assert XQueryGenerator().generate() is None


class TestProperties:
    def test_idempotent(self):
        generator = XQueryGenerator(parse(TOPIC_1_QUERY))
        first = generator.generate()

        assert generator.generate() == first
        assert XQueryGenerator(parse(TOPIC_1_QUERY)).generate() == first

    def test_length_toggle_only_removes_counts(self):
        document = parse(QVAR_QUERY)
        restricted = XQueryGenerator(document).generate()
        unrestricted = XQueryGenerator(document).set_restrict_length(False).generate()

        assert "fn:count" in restricted
        assert "fn:count" not in unrestricted
        stripped = re.sub(r"fn:count\([^)]*\) = \d+\n and ", "", restricted)
        assert stripped == unrestricted

    def test_indices_are_contiguous(self):
        result = XQueryGenerator(
            "<math><apply><plus/><ci>a</ci><ci>b</ci><ci>c</ci></apply></math>"
        ).generate()

        indices = [int(i) for i in re.findall(r"\*\[(\d+)\]/name\(\)", result)]
        assert indices == [1, 2, 3, 4]

    @pytest.mark.parametrize("occurrences", [2, 3, 5])
    def test_qvar_pairs_first_with_others(self, occurrences):
        qvars = "<mws:qvar>y</mws:qvar>" * occurrences
        query = (
            '<mws:expr xmlns:mws="http://search.mathweb.org/ns">'
            f"<apply><plus/>{qvars}</apply></mws:expr>"
        )
        generator = XQueryGenerator(query).set_restrict_length(False)
        result = generator.generate()

        where = result.split("\nwhere\n")[1].split("\n")[0]
        pairs = where.split(" and ")
        assert len(pairs) == occurrences - 1
        assert all(pair.startswith("$x/*[2] = ") for pair in pairs)
        assert generator.qvar == {
            "y": [f"/*[{i}]" for i in range(2, occurrences + 2)]
        }


class TestQvars:
    def test_qvar_name_attribute(self):
        query = (
            '<mws:expr xmlns:mws="http://search.mathweb.org/ns">'
            '<apply><times/><mws:qvar name="a"/><mws:qvar name="a"/></apply>'
            "</mws:expr>"
        )
        result = XQueryGenerator(query).set_restrict_length(False).generate()

        assert "where\n$x/*[2] = $x/*[3]\n" in result

    def test_multiple_qvar_groups(self):
        query = (
            '<mws:expr xmlns:mws="http://search.mathweb.org/ns"><apply><plus/>'
            "<mws:qvar>a</mws:qvar><mws:qvar>b</mws:qvar>"
            "<mws:qvar>a</mws:qvar><mws:qvar>b</mws:qvar>"
            "</apply></mws:expr>"
        )
        generator = XQueryGenerator(query).set_restrict_length(False)
        result = generator.generate()

        assert (
            "where\n$x/*[2] = $x/*[4]\n and $x/*[3] = $x/*[5]\n"
            'let $q := map {"a" : (data($x/*[2]/@xml:id),data($x/*[4]/@xml-id)),'
            '"b" : (data($x/*[3]/@xml:id),data($x/*[5]/@xml-id))}\n'
        ) in result
        assert list(generator.qvar) == ["a", "b"]

    def test_single_qvar_has_map_but_no_where(self):
        query = (
            '<mws:expr xmlns:mws="http://search.mathweb.org/ns">'
            "<apply><sin/><mws:qvar>t</mws:qvar></apply></mws:expr>"
        )
        result = XQueryGenerator(query).set_restrict_length(False).generate()

        assert "where" not in result
        assert 'let $q := map {"t" : (data($x/*[2]/@xml:id))}' in result

    def test_unnamed_qvar_raises(self):
        query = (
            '<mws:expr xmlns:mws="http://search.mathweb.org/ns">'
            "<apply><plus/><ci>a</ci><apply><minus/><mws:qvar/></apply></apply>"
            "</mws:expr>"
        )
        with pytest.raises(MalformedWildcardError) as exc_info:
            XQueryGenerator(query).generate()

        assert exc_info.value.path == "/*[3]/*[2]"
        assert "$x/*[3]/*[2]" in str(exc_info.value)


class TestEdgeCases:
    def test_annotation_keeps_index(self):
        result = XQueryGenerator(
            "<math><apply><plus/><annotation>p</annotation><ci>a</ci></apply></math>"
        ).generate()

        assert "[*[1]/name() = 'plus' and *[3]/name() = 'ci'" in result
        assert "annotation" not in result
        assert "fn:count($x/*) = 3" in result

    def test_text_and_elements_are_joined(self):
        result = XQueryGenerator(
            "<math><apply><ci>a<mi>b</mi></ci></apply></math>"
        ).set_restrict_length(False).generate()

        assert (
            "[*[1]/name() = 'ci' and *[1][./text() = 'a' and *[1]/name() = 'mi' "
            "and *[1][./text() = 'b']]]"
        ) in result

    def test_text_is_trimmed_and_quoted(self):
        result = XQueryGenerator("<math><ci>  f' </ci></math>").generate()
        assert "[./text() = 'f''']" in result

    def test_prime_in_text(self):
        result = XQueryGenerator("<math><apply><ci>f'</ci></apply></math>").generate()

        assert result == (
            DB2_HEADER
            + "for $x in $m//*:apply\n"
            + "[*[1]/name() = 'ci' and *[1][./text() = 'f''']]\n"
            + "where\n"
            + "fn:count($x/*[1]/*) = 0\n"
            + " and fn:count($x/*) = 1\n"
            + "\nreturn\n"
            + DB2_FOOTER
        )

    def test_non_breaking_space_text(self):
        result = XQueryGenerator(
            "<math><apply><plus/><mtext>&#160;</mtext><ci>a</ci></apply></math>"
        ).generate()

        assert (
            "[*[1]/name() = 'plus' and *[2]/name() = 'mtext' "
            "and *[2][./text() = '\u00a0'] and *[3]/name() = 'ci' "
            "and *[3][./text() = 'a']]"
        ) in result
        assert "fn:count($x/*[2]/*) = 0" in result

    def test_internal_entity_text(self):
        result = XQueryGenerator(
            '<!DOCTYPE math [<!ENTITY e "x">]>'
            "<math><apply><plus/><ci>&e;</ci></apply></math>"
        ).generate()

        assert "*[2]/name() = 'ci' and *[2][./text() = 'x']" in result
        assert "fn:count($x/*[2]/*) = 0" in result

    def test_empty_main_element_raises(self):
        with pytest.raises(EmptyExpressionError):
            XQueryGenerator("<math><semantics/></math>").generate()

    def test_set_main_element_resets(self):
        generator = XQueryGenerator(parse(QVAR_QUERY))
        generator.generate()
        assert generator.qvar

        generator.set_main_element(parse(SIMPLE_QUERY))
        assert generator.qvar == {}
        assert "for $x in $m//*:ci" in generator.generate()

    def test_from_main_element_with_config(self):
        config = QueryConfig(namespace="", path_to_root="$doc", return_format="$x")
        main = parse(SIMPLE_QUERY)
        generator = XQueryGenerator.from_main_element(main, config)

        assert generator.generate() == (
            "for $m in $doc return\n"
            "for $x in $m//*:ci\n"
            "[./text() = 'E']\n"
            "where\n"
            "fn:count($x/*) = 0\n\nreturn\n$x"
        )
        # the generator works on its own copy
        generator.set_restrict_length(False)
        assert config.restrict_length

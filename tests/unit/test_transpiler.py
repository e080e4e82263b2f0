"""Unit tests for expression transpilation."""

import pytest

from flowbridge.expressions import (
    AMBIGUOUS_UPSTREAM,
    Dialect,
    ExpressionTranspiler,
    ReferenceContext,
    detect_dialect,
    extract_content,
    find_embedded,
    is_expression,
)

N8N = Dialect.NODE_GRAPH
MAKE = Dialect.MODULE_FLOW


@pytest.fixture
def to_make_context() -> ReferenceContext:
    """n8n node "a" feeds "b"; they become modules 1 and 2."""
    return ReferenceContext(
        upstream=["a"],
        output_ids={"a": "1", "b": "2"},
        output_names={"a": "Trigger", "b": "Lookup"},
        ids_by_name={"Trigger": "a", "Lookup": "b"},
    )


@pytest.fixture
def to_n8n_context() -> ReferenceContext:
    """Make module 1 feeds 2 which feeds 3."""
    return ReferenceContext(
        upstream=["2"],
        output_ids={"1": "1", "2": "2", "3": "3"},
        output_names={"1": "Trigger", "2": "Lookup", "3": "Notify"},
        ids_by_name={"Trigger": "1", "Lookup": "2", "Notify": "3"},
    )


class TestDelimiters:
    """Test expression detection helpers."""

    def test_is_expression(self):
        """Test whole-string detection for both dialects."""
        assert is_expression("={{ $json.name }}")
        assert is_expression("{{ 1.name }}")
        assert is_expression("={{ $json.name }}", N8N)
        assert not is_expression("{{ 1.name }}", N8N)
        assert not is_expression("Hello {{ 1.name }}")
        assert not is_expression("plain text")
        assert not is_expression(42)

    def test_detect_dialect(self):
        """Test dialect detection."""
        assert detect_dialect("={{ $json.a }}") is N8N
        assert detect_dialect("{{ 1.a }}") is MAKE
        assert detect_dialect("text") is None

    def test_extract_content(self):
        """Test stripping delimiters."""
        assert extract_content("={{ $json.name }}") == "$json.name"
        assert extract_content("{{ 1.name }}") == "1.name"
        assert extract_content("plain") == "plain"

    def test_find_embedded_expression_mode(self):
        """Test that every {{ }} counts in an n8n string starting with '='."""
        segments = find_embedded("=Hi {{ $json.first }} {{ $json.last }}", N8N)

        assert [s.content.strip() for s in segments] == ["$json.first", "$json.last"]

    def test_find_embedded_legacy(self):
        """Test legacy ={{ }} segments inside plain n8n strings."""
        segments = find_embedded("Order ={{ $json.id }} shipped", N8N)

        assert len(segments) == 1
        assert segments[0].start == len("Order ")

    def test_find_embedded_plain_n8n_braces_ignored(self):
        """Test that bare {{ }} in a plain n8n string is literal text."""
        assert find_embedded("Use {{ braces }} literally", N8N) == []


class TestRewrite:
    """Test rewriting bare expression content."""

    def test_current_item_to_module_reference(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test $json.x becomes <upstream module id>.x."""
        outcome = transpiler.rewrite("$json.name", N8N, MAKE, to_make_context)

        assert outcome.translated
        assert outcome.content == "1.name"

    def test_named_node_reference(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test $node["X"].json.y becomes <id of X>.y."""
        outcome = transpiler.rewrite('$node["Lookup"].json.email', N8N, MAKE, to_make_context)

        assert outcome.translated
        assert outcome.content == "2.email"

    def test_unknown_named_node(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test that a reference to a missing node is not guessed."""
        outcome = transpiler.rewrite('$node["Nowhere"].json.email', N8N, MAKE, to_make_context)

        assert not outcome.translated
        assert outcome.content == '$node["Nowhere"].json.email'

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("$env.API_KEY", "env.API_KEY"),
            ("$binary.data", "binary.data"),
            ("$parameter.limit", "parameters.limit"),
            ("$workflow.id", "scenario.id"),
        ],
    )
    def test_variable_roots(self, transpiler: ExpressionTranspiler, source, expected):
        """Test platform variable roots."""
        outcome = transpiler.rewrite(source, N8N, MAKE)

        assert outcome.translated
        assert outcome.content == expected

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("$str.upper($json.name)", "upper(1.name)"),
            ("$str.replace($json.name, 'a', 'b')", "replace(1.name, 'a', 'b')"),
            ("$array.join($json.tags, ', ')", "join(1.tags, ', ')"),
            ("$date.now()", "now()"),
            ("$math.round($json.price, 2)", "round(1.price, 2)"),
            ("$if($json.ok, 'yes', 'no')", "ifThenElse(1.ok, 'yes', 'no')"),
        ],
    )
    def test_functions_to_module_flow(self, transpiler: ExpressionTranspiler, to_make_context, source, expected):
        """Test library function calls."""
        outcome = transpiler.rewrite(source, N8N, MAKE, to_make_context)

        assert outcome.translated
        assert outcome.content == expected

    def test_ternary_becomes_if_then_else(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test a?b:c becomes ifThenElse(a, b, c)."""
        outcome = transpiler.rewrite("$json.total > 100 ? 'big' : 'small'", N8N, MAKE, to_make_context)

        assert outcome.translated
        assert outcome.content == "ifThenElse(1.total > 100, 'big', 'small')"

    def test_double_negation_survives_both_ways(self, transpiler: ExpressionTranspiler, to_make_context, to_n8n_context):
        """Test that - -x is not printed as the decrement --x in either dialect."""
        forward = transpiler.rewrite("- -$json.n", N8N, MAKE, to_make_context)
        assert forward.content == "- -1.n"

        backward = transpiler.rewrite("- -2.n", MAKE, N8N, to_n8n_context)
        assert backward.content == "- -$json.n"

    def test_wrong_arity_not_translated(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test that a known function with the wrong argument count is left alone."""
        outcome = transpiler.rewrite("$str.upper($json.a, $json.b)", N8N, MAKE, to_make_context)

        assert not outcome.translated

    def test_unknown_construct_not_translated(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test that method calls outside the closed table are not guessed."""
        outcome = transpiler.rewrite("$json.name.toUpperCase()", N8N, MAKE, to_make_context)

        assert not outcome.translated
        assert outcome.content == "$json.name.toUpperCase()"

    def test_unknown_variable_not_translated(self, transpiler: ExpressionTranspiler):
        """Test that unknown $-roots are not guessed."""
        outcome = transpiler.rewrite("$items.length", N8N, MAKE)

        assert not outcome.translated

    def test_no_root_or_function_not_translated(self, transpiler: ExpressionTranspiler):
        """Test that plain arithmetic with no known root is left alone."""
        outcome = transpiler.rewrite("1 + 2", N8N, MAKE)

        assert not outcome.translated
        assert outcome.reason

    def test_syntax_error_not_translated(self, transpiler: ExpressionTranspiler):
        """Test that content outside the grammar is returned unchanged."""
        outcome = transpiler.rewrite("$json.items.map(i => i.id)", N8N, MAKE)

        assert not outcome.translated
        assert outcome.content == "$json.items.map(i => i.id)"

    def test_current_item_without_upstream(self, transpiler: ExpressionTranspiler):
        """Test that $json with no upstream entity is not resolved."""
        outcome = transpiler.rewrite("$json.name", N8N, MAKE, ReferenceContext(output_ids={"a": "1"}))

        assert not outcome.translated

    def test_current_item_with_several_upstream(self, transpiler: ExpressionTranspiler):
        """Test that the first upstream entity is used and the choice is noted."""
        context = ReferenceContext(upstream=["x", "y"], output_ids={"x": "4", "y": "5"})
        outcome = transpiler.rewrite("$json.name", N8N, MAKE, context)

        assert outcome.translated
        assert outcome.content == "4.name"
        assert AMBIGUOUS_UPSTREAM in outcome.notes

    @pytest.mark.parametrize("output_id", ["8f2a-11", "null", "env", "a b"])
    def test_module_id_not_writable_as_reference(self, transpiler: ExpressionTranspiler, output_id):
        """Test that ids the expression syntax cannot name are not translated."""
        context = ReferenceContext(upstream=["x"], output_ids={"x": output_id})
        outcome = transpiler.rewrite("$json.name", N8N, MAKE, context)

        assert not outcome.translated
        assert outcome.content == "$json.name"

    def test_named_module_id_as_reference(self, transpiler: ExpressionTranspiler):
        """Test that a name-like id is used as the reference root."""
        context = ReferenceContext(upstream=["x"], output_ids={"x": "fetch_1"})
        outcome = transpiler.rewrite("$json.name", N8N, MAKE, context)

        assert outcome.translated
        assert outcome.content == "fetch_1.name"

    def test_module_reference_to_current_item(self, transpiler: ExpressionTranspiler, to_n8n_context):
        """Test that the immediate upstream module becomes $json."""
        outcome = transpiler.rewrite("2.email", MAKE, N8N, to_n8n_context)

        assert outcome.translated
        assert outcome.content == "$json.email"

    def test_module_reference_to_named_node(self, transpiler: ExpressionTranspiler, to_n8n_context):
        """Test that any other module becomes $node["name"].json."""
        outcome = transpiler.rewrite("1.body.id", MAKE, N8N, to_n8n_context)

        assert outcome.translated
        assert outcome.content == '$node["Trigger"].json.body.id'

    def test_functions_to_node_graph(self, transpiler: ExpressionTranspiler, to_n8n_context):
        """Test Make function calls, including ';' separators."""
        outcome = transpiler.rewrite("ifThenElse(2.ok; upper(2.name); env.FALLBACK)", MAKE, N8N, to_n8n_context)

        assert outcome.translated
        assert outcome.content == "$if($json.ok, $str.upper($json.name), $env.FALLBACK)"

    def test_unknown_module_not_translated(self, transpiler: ExpressionTranspiler, to_n8n_context):
        """Test that a reference to a module that does not exist is not guessed."""
        outcome = transpiler.rewrite("9.value", MAKE, N8N, to_n8n_context)

        assert not outcome.translated

    def test_unknown_identifier_not_translated(self, transpiler: ExpressionTranspiler, to_n8n_context):
        """Test that unknown bare identifiers are not guessed."""
        outcome = transpiler.rewrite("someVar.value", MAKE, N8N, to_n8n_context)

        assert not outcome.translated

    def test_same_dialect_rejected(self, transpiler: ExpressionTranspiler):
        """Test that rewriting into the same dialect is an error."""
        with pytest.raises(ValueError):
            transpiler.rewrite("$json.a", N8N, N8N)


class TestTranspileValue:
    """Test transpiling whole parameter strings."""

    def test_whole_expression_to_module_flow(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test that ={{ $json.name }} becomes {{ 1.name }}."""
        result = transpiler.transpile_value("={{ $json.name }}", N8N, MAKE, to_make_context)

        assert result.found and result.translated
        assert result.value == "{{ 1.name }}"

    def test_embedded_expression_keeps_literal_text(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test that text around segments is kept verbatim."""
        result = transpiler.transpile_value(
            "=Dear {{ $json.first }}, your order {{ $json.id }} shipped.",
            N8N,
            MAKE,
            to_make_context,
        )

        assert result.value == "Dear {{ 1.first }}, your order {{ 1.id }} shipped."

    def test_legacy_segment(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test a legacy ={{ }} segment inside a plain string."""
        result = transpiler.transpile_value("Order ={{ $json.id }} shipped", N8N, MAKE, to_make_context)

        assert result.value == "Order {{ 1.id }} shipped"

    def test_module_flow_gets_expression_prefix(self, transpiler: ExpressionTranspiler, to_n8n_context):
        """Test that n8n output strings with expressions start with '='."""
        result = transpiler.transpile_value("Hi {{ 2.first }}!", MAKE, N8N, to_n8n_context)

        assert result.value == "=Hi {{ $json.first }}!"

    def test_plain_string_untouched(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test strings without expressions."""
        result = transpiler.transpile_value("https://example.com", N8N, MAKE, to_make_context)

        assert not result.found
        assert result.value == "https://example.com"

    def test_any_untranslatable_segment_keeps_original(self, transpiler: ExpressionTranspiler, to_make_context):
        """Test that one bad segment leaves the whole string unchanged."""
        value = "={{ $json.name }} {{ $json.items.length() }}"
        result = transpiler.transpile_value(value, N8N, MAKE, to_make_context)

        assert result.found
        assert not result.translated
        assert result.value == value

    def test_round_trip(self, transpiler: ExpressionTranspiler):
        """Test n8n -> Make -> n8n keeps the variable root and field path."""
        forward = ReferenceContext(upstream=["a"], output_ids={"a": "1", "b": "2"}, output_names={"a": "Trigger", "b": "Use"})
        backward = ReferenceContext(upstream=["1"], output_ids={"1": "1", "2": "2"}, output_names={"1": "Trigger", "2": "Use"})

        make_value = transpiler.transpile_value("={{ $json.customer.name }}", N8N, MAKE, forward).value
        n8n_value = transpiler.transpile_value(make_value, MAKE, N8N, backward).value

        assert make_value == "{{ 1.customer.name }}"
        assert n8n_value == "={{ $json.customer.name }}"

"""
Tests for the declarative node pattern matcher.
"""

import pytest

from factorylint.engine.node_pattern import (
    Alternation, Capture, NodeMatcher, NodeOf, PatternSyntaxError, Ref, Rest, Value, Wildcard,
    capture_names, compile_pattern, match,
)
from factorylint.engine.syntax import SyntaxNode


def send(receiver, method, *args):
    return SyntaxNode("send", (receiver, method) + args)


def int_node(value):
    return SyntaxNode("int", (value,))


def sym(name):
    return SyntaxNode("sym", (name,))


class TestMatch:
    """Matching pattern values against nodes."""

    def test_node_tag_and_literal_children(self):
        pattern = NodeOf("send", (NodeOf("int", (Value(3),)), Value("times")))
        assert match(pattern, send(int_node(3), "times")) == {}

    def test_wrong_tag_fails(self):
        pattern = NodeOf("int", (Wildcard(),))
        assert match(pattern, sym("a")) is None

    def test_arity_must_match_without_rest(self):
        pattern = NodeOf("send", (Wildcard(), Value("create")))
        assert match(pattern, send(None, "create", sym("user"))) is None

    def test_rest_matches_zero_or_more(self):
        pattern = NodeOf("send", (Wildcard(), Value("create"), Capture("args", Rest())))
        assert match(pattern, send(None, "create"))["args"] == ()
        bindings = match(pattern, send(None, "create", sym("a"), sym("b")))
        assert bindings["args"] == (sym("a"), sym("b"))

    def test_value_requires_identical_type(self):
        assert match(Value(1), 1) == {}
        assert match(Value(1), True) is None
        assert match(Value(1), 1.0) is None
        assert match(Value(1), "1") is None

    def test_nil_matches_absent_node_only(self):
        assert match(Value(None), None) == {}
        assert match(Value(None), SyntaxNode("nil")) is None

    def test_wildcard_matches_none(self):
        assert match(Wildcard(), None) == {}

    def test_non_node_input_is_a_plain_mismatch(self):
        pattern = NodeOf("send", (Rest(),))
        for value in (None, 3, "send", object(), ("send",)):
            assert match(pattern, value) is None

    def test_alternation_first_match_wins(self):
        pattern = Capture("recv", Alternation((NodeOf("const", (Value(None), Wildcard())), Value(None))))
        const = SyntaxNode("const", (None, "Factory"))
        assert match(pattern, const)["recv"] is const
        assert match(pattern, None)["recv"] is None
        assert match(pattern, SyntaxNode("lvar", ("x",))) is None

    def test_failed_alternative_leaves_no_bindings(self):
        pattern = NodeOf("pair", (
            Alternation((
                NodeOf("int", (Capture("v", Value(1)),)),
                NodeOf("int", (Capture("v", Wildcard()),)),
            )),
            Wildcard(),
        ))
        bindings = match(pattern, SyntaxNode("pair", (int_node(2), None)))
        assert dict(bindings) == {"v": 2}

    def test_ref_is_a_predicate(self):
        inner = NodeOf("int", (Capture("n", Wildcard()),))
        pattern = NodeOf("send", (Ref("count", inner), Value("times")))
        assert dict(match(pattern, send(int_node(3), "times"))) == {}
        assert match(pattern, send(sym("a"), "times")) is None

    def test_bindings_are_read_only(self):
        bindings = match(Capture("x", Wildcard()), 1)
        with pytest.raises(TypeError):
            bindings["x"] = 2

    def test_match_does_not_mutate_tree(self):
        node = send(int_node(3), "times")
        before = repr(node)
        match(compile_pattern("(send $(int $_) :times)"), node)
        assert repr(node) == before


class TestPatternValues:
    """Construction-time checks on pattern values."""

    def test_rest_must_be_last(self):
        with pytest.raises(PatternSyntaxError):
            NodeOf("send", (Rest(), Wildcard()))

    def test_duplicate_capture_names(self):
        with pytest.raises(PatternSyntaxError):
            NodeOf("send", (Capture("a", Wildcard()), Capture("a", Wildcard())))

    def test_alternatives_must_capture_same_names(self):
        with pytest.raises(PatternSyntaxError):
            Alternation((Capture("a", Wildcard()), Wildcard()))

    def test_empty_alternation(self):
        with pytest.raises(PatternSyntaxError):
            Alternation(())

    def test_capture_names_in_textual_order(self):
        pattern = compile_pattern("(send $recv=_ :create (sym $name=_) $opts=...)")
        assert capture_names(pattern) == ("recv", "name", "opts")

    def test_patterns_are_values(self):
        assert compile_pattern("(int 3)") == compile_pattern("(int 3)")
        assert hash(compile_pattern("(sym :a)")) == hash(NodeOf("sym", (Value("a"),)))


class TestCompilePattern:
    """The pattern text form."""

    def test_literals(self):
        assert compile_pattern(":times") == Value("times")
        assert compile_pattern("42") == Value(42)
        assert compile_pattern("-1") == Value(-1)
        assert compile_pattern('"a \\"b\\""') == Value('a "b"')
        assert compile_pattern("nil") == Value(None)
        assert compile_pattern("_") == Wildcard()

    def test_bare_type_matches_any_children(self):
        pattern = compile_pattern("hash")
        assert match(pattern, SyntaxNode("hash", (SyntaxNode("pair", (None, None)),))) == {}
        assert match(pattern, SyntaxNode("hash", ())) == {}
        assert match(pattern, SyntaxNode("array", ())) is None

    def test_positional_captures(self):
        pattern = compile_pattern("(send $_ $_)")
        bindings = match(pattern, send(None, "create"))
        assert dict(bindings) == {"0": None, "1": "create"}

    def test_named_capture_of_rest(self):
        bindings = match(compile_pattern("(send nil :create $args=...)"), send(None, "create", sym("u")))
        assert bindings["args"] == (sym("u"),)

    def test_reference_to_matcher(self):
        n_times = NodeMatcher("n_times", "(send (int _) :times)")
        pattern = compile_pattern("(block #n_times (args) ...)", refs={"n_times": n_times})
        block = SyntaxNode("block", (send(int_node(2), "times"), SyntaxNode("args", ()), None))
        assert match(pattern, block) == {}

    @pytest.mark.parametrize("source", [
        "(send",
        "(send))",
        "( :a)",
        "(send ... _)",
        "{}",
        "#missing",
        "(send @x)",
        "",
        "($a=_ $a=_)" ,
    ])
    def test_malformed_text_raises(self, source):
        with pytest.raises(PatternSyntaxError):
            compile_pattern(source)


class TestNodeMatcher:
    """Positional results from calling a matcher."""

    def setup_method(self):
        self.node = send(int_node(3), "times")

    def test_no_captures_returns_true(self):
        assert NodeMatcher("m", "(send (int _) :times)")(self.node) is True

    def test_single_capture_returns_value(self):
        assert NodeMatcher("m", "(send (int $_) :times)")(self.node) == 3

    def test_several_captures_return_tuple(self):
        matcher = NodeMatcher("m", "(send $(int $_) $_)")
        assert matcher(self.node) == (int_node(3), 3, "times")

    def test_no_match_returns_none(self):
        assert NodeMatcher("m", "(send (int _) :upto)")(self.node) is None

    def test_repeated_matching_is_idempotent(self):
        matcher = NodeMatcher("m", "(send (int $count=_) :times)")
        first = matcher.match(self.node)
        second = matcher.match(self.node)
        assert dict(first) == dict(second) == {"count": 3}

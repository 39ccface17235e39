"""
Instruction Matcher Tests
=========================

Tests for rule tables, pattern fragments and bindings.
"""

import pytest

from lbpasm.assembler.matcher import SEP, SPACE, Bindings, RuleTable, slot


def _noop(ctx, b):
    pass


@pytest.fixture
def table():
    reg = slot("a|b")
    value = slot("[0-9]+")
    table = RuleTable("test")
    table.add("ld", reg("r"), SEP, "#", value("v"), action=_noop)
    table.add("ld", reg("r"), SEP, value("v"), action=_noop)
    table.add("hlt", action=_noop)
    return table


class TestRuleTable:
    """Test rule ordering and whole-line matching."""

    def test_first_match_wins(self, table):
        """The earlier, more specific rule is chosen."""
        rule, bindings = table.find("lda #5")
        assert rule is table.rules[0]
        assert bindings.v == "5"

    def test_fallthrough(self, table):
        """Lines that miss the first rule reach later ones."""
        rule, bindings = table.find("ldb 7")
        assert rule is table.rules[1]
        assert dict(bindings) == {"r": "b", "v": "7"}

    def test_case_insensitive(self, table):
        """Mnemonics and registers match in any case."""
        assert table.find("HLT") is not None
        assert table.find("LDA, 3") is not None

    def test_whole_line(self, table):
        """A rule only matches the whole line."""
        assert table.find("hlt now") is None
        assert table.find("xhlt") is None

    def test_length(self, table):
        assert len(table) == 3

    def test_add_returns_rule(self):
        """add() returns the rule with its declared slots."""
        table = RuleTable("t")
        rule = table.add("jmp", SPACE, slot("[a-z]+")("a"), action=_noop)
        assert rule.slots == ("a",)


class TestBindings:
    """Test the read-only operand mapping."""

    def test_attribute_access(self):
        b = Bindings({"a": "x", "b": None})
        assert b.a == "x"
        assert b.b == ""

    def test_unknown_name(self):
        """Undeclared names raise AttributeError."""
        b = Bindings({"a": "x"})
        with pytest.raises(AttributeError):
            b.c

    def test_mapping(self):
        """Bindings format templates like a dict."""
        b = Bindings({"d": "t0", "a": "5"})
        assert "addi {d}, zero, {a}".format(**b) == "addi t0, zero, 5"

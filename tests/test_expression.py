from __future__ import annotations

import pytest

from sqlassembly import CompositeExpression, ExpressionBuilder
from sqlassembly.expression import AND, OR, combine


def test_leaf_builders():
    expr = ExpressionBuilder()

    assert expr.eq("a", "b") == "a = b"
    assert expr.neq("a", "b") == "a <> b"
    assert expr.lt("a", "?") == "a < ?"
    assert expr.lte("a", "?") == "a <= ?"
    assert expr.gt("a", "?") == "a > ?"
    assert expr.gte("a", "?") == "a >= ?"
    assert expr.is_null("a") == "a IS NULL"
    assert expr.is_not_null("a") == "a IS NOT NULL"
    assert expr.like("a", ":p") == "a LIKE :p"
    assert expr.not_like("a", ":p", "'!'") == "a NOT LIKE :p ESCAPE '!'"
    assert expr.in_("a", ["1", "2"]) == "a IN (1, 2)"
    assert expr.not_in("a", ":ids") == "a NOT IN (:ids)"


def test_composite_rendering_by_child_count():
    assert str(CompositeExpression(AND)) == ""
    assert str(CompositeExpression(AND, ["a = 1"])) == "a = 1"
    assert str(CompositeExpression(OR, ["a = 1", "b = 2"])) == "(a = 1) OR (b = 2)"


def test_nested_composites_are_parenthesized_at_each_boundary():
    expr = ExpressionBuilder()
    tree = expr.or_x(expr.and_x("a = 1", "b = 2"), "c = 3")

    assert str(tree) == "((a = 1) AND (b = 2)) OR (c = 3)"


def test_empty_children_are_dropped():
    tree = CompositeExpression(AND, ["a = 1", "", CompositeExpression(OR), None])

    assert len(tree) == 1
    assert str(tree) == "a = 1"


def test_combine_same_type_appends_and_other_type_wraps():
    base = CompositeExpression(AND, ["p", "q"])

    same = combine(base, AND, "r")
    other = combine(base, OR, "r")

    assert str(same) == "(p) AND (q) AND (r)"
    assert str(other) == "((p) AND (q)) OR (r)"
    assert str(base) == "(p) AND (q)"


def test_combine_into_nothing_returns_predicate():
    assert combine(None, AND, "p") == "p"


def test_copy_does_not_share_children():
    inner = CompositeExpression(OR, ["a", "b"])
    tree = CompositeExpression(AND, [inner, "c"])

    clone = tree.copy()
    clone.parts[0].parts.append("z")

    assert str(tree) == "((a) OR (b)) AND (c)"


def test_invalid_composite_type():
    with pytest.raises(ValueError):
        CompositeExpression("XOR", ["a"])

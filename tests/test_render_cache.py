from __future__ import annotations

import copy
import logging

import pytest

from sqlassembly import QueryBuilder, RenderState, UnknownAliasError
from sqlassembly import builder as builder_module


def test_state_transitions():
    qb = QueryBuilder()
    assert qb.state is RenderState.CLEAN
    assert qb.get_sql() == ""

    qb.select("u.*").from_("users", "u")
    assert qb.state is RenderState.DIRTY

    sql = qb.get_sql()
    assert qb.state is RenderState.CLEAN
    assert qb.get_sql() == sql


def test_clean_render_does_not_rerun_join_resolution(monkeypatch):
    qb = QueryBuilder().select("u.id").from_("users", "u").join("u", "phones", "p", "p.user_id = u.id")
    calls = []
    original = builder_module.render_from_clause

    def counting(*args, **kwargs):
        calls.append(args)
        return original(*args, **kwargs)

    monkeypatch.setattr(builder_module, "render_from_clause", counting)

    first = qb.get_sql()
    second = str(qb)

    assert first == second
    assert len(calls) == 1


def test_failed_render_caches_nothing_and_stays_dirty():
    qb = QueryBuilder().select("u.id").from_("users", "u").join("x", "phones", "p", "p.user_id = u.id")

    result = qb.try_render()

    assert not result.ok
    assert result.sql is None
    assert isinstance(result.error, UnknownAliasError)
    assert qb.state is RenderState.DIRTY
    with pytest.raises(UnknownAliasError):
        str(qb)

    qb.reset_query_part("join")
    assert qb.try_render().unwrap() == "SELECT u.id FROM users u"
    assert qb.state is RenderState.CLEAN


def test_every_mutation_marks_dirty():
    mutations = [
        lambda qb: qb.select("a"),
        lambda qb: qb.add_select("a"),
        lambda qb: qb.from_("t"),
        lambda qb: qb.join("t", "u", "u", "u.t = t.id"),
        lambda qb: qb.where("a = 1"),
        lambda qb: qb.and_where("a = 1"),
        lambda qb: qb.or_where("a = 1"),
        lambda qb: qb.group_by("a"),
        lambda qb: qb.having("a = 1"),
        lambda qb: qb.order_by("a"),
        lambda qb: qb.set_max_results(1),
        lambda qb: qb.set_first_result(1),
        lambda qb: qb.set("a", "?"),
        lambda qb: qb.set_value("a", "?"),
        lambda qb: qb.values({"a": "?"}),
        lambda qb: qb.set_parameter("a", 1),
        lambda qb: qb.reset_query_part("where"),
        lambda qb: qb.reset_query_parts(),
        lambda qb: qb.set_exclude_aliases(),
    ]
    for mutate in mutations:
        qb = QueryBuilder().select("x").from_("t")
        qb.get_sql()
        assert qb.state is RenderState.CLEAN

        mutate(qb)

        assert qb.state is RenderState.DIRTY


def test_clone_is_independent():
    qb = QueryBuilder().select("u.id").from_("users", "u").where("u.id = :test")
    qb.set_parameter(":test", 1)

    clone = qb.clone()
    assert str(qb) == str(clone)

    qb.and_where("u.id = 1")
    qb.set_parameter("other", 2)
    clone.left_join("u", "phones", "p", "p.user_id = u.id")

    assert str(qb) == "SELECT u.id FROM users u WHERE (u.id = :test) AND (u.id = 1)"
    assert str(clone) == "SELECT u.id FROM users u LEFT JOIN phones p ON p.user_id = u.id WHERE u.id = :test"
    assert qb.get_parameters() == {"test": 1, "other": 2}
    assert clone.get_parameters() == {"test": 1}


def test_clone_deep_copies_composite_trees():
    qb = QueryBuilder().select("*").from_("t").where("a = 1").or_where("b = 1")
    clone = copy.copy(qb)

    clone.get_query_part("where").parts.append("hacked")
    clone.or_where("c = 1")

    assert str(qb) == "SELECT * FROM t WHERE (a = 1) OR (b = 1)"
    assert str(clone) == "SELECT * FROM t WHERE (a = 1) OR (b = 1) OR (c = 1)"
    assert qb.get_query_parts()["where"] is not clone.get_query_parts()["where"]
    assert str(copy.deepcopy(qb)) == str(qb)


def test_render_logs_at_debug(caplog):
    qb = QueryBuilder().select("*").from_("t")

    with caplog.at_level(logging.DEBUG, logger="sqlassembly.builder"):
        qb.get_sql()
        qb.get_sql()

    messages = [r.getMessage() for r in caplog.records]
    assert any("Rendered select statement" in m for m in messages)
    assert any("Render cache hit" in m for m in messages)


def test_alias_failure_logs_warning(caplog):
    qb = QueryBuilder().select("*").from_("t").join("nope", "u", "u", "u.id = t.id")

    with caplog.at_level(logging.WARNING, logger="sqlassembly.builder"):
        result = qb.try_render()

    assert not result.ok
    assert any("nope" in r.getMessage() for r in caplog.records)


def test_caller_trees_are_copied_on_the_way_in():
    qb = QueryBuilder()
    where = qb.expr().and_x("a = 1", "b = 2")
    on = qb.expr().and_x("p.user_id = u.id", "p.active = 1")
    qb.select("*").from_("users", "u").inner_join("u", "phones", "p", on).where(where)
    expected = "SELECT * FROM users u INNER JOIN phones p ON (p.user_id = u.id) AND (p.active = 1) WHERE (a = 1) AND (b = 2)"
    assert qb.get_sql() == expected

    where.parts.append("c = 3")
    on.parts.append("p.deleted = 0")

    assert qb.state is RenderState.CLEAN
    assert str(qb.get_query_part("where")) == "(a = 1) AND (b = 2)"
    qb.set_exclude_aliases(False)
    assert qb.get_sql() == expected


def test_merged_predicates_are_copied_too():
    qb = QueryBuilder().select("*").from_("t").where("a = 1")
    extra = qb.expr().or_x("b = 1", "c = 1")
    qb.and_where(extra)

    extra.parts.append("d = 1")

    assert str(qb) == "SELECT * FROM t WHERE (a = 1) AND ((b = 1) OR (c = 1))"


def test_clone_copies_mutable_parameter_values():
    qb = QueryBuilder().select("*").from_("t").where("id IN (:ids)")
    qb.set_parameter("ids", [1, 2])
    clone = qb.clone()

    clone.get_parameter("ids").append(99)

    assert qb.get_parameter("ids") == [1, 2]
    assert clone.get_parameter("ids") == [1, 2, 99]

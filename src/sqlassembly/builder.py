"""Fluent statement assembler with a dirty/clean render cache."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, TextIO

from .errors import AliasError
from .expression import AND, OR, CompositeExpression, ExpressionBuilder, Predicate, combine, copy_predicate
from .joins import FromEntry, JoinEntry, JoinType, render_from_clause
from .parameters import Parameter, ParameterKey, ParameterStore, ParameterType
from .parts import (
    OrderByItem,
    QueryPartName,
    UpdateSet,
    copy_part,
    copy_parts,
    empty_part,
    empty_parts,
    flatten_expressions,
    incompatible_parts,
    is_empty_part,
    normalize_part_name,
)
from .settings import BuilderSettings

logger = logging.getLogger(__name__)

# Base leaf for an ``and_where`` that opens the WHERE clause.
TRUE_PREDICATE = "1 = 1"


class StatementKind(str, Enum):
    UNDEFINED = "undefined"
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class RenderState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"


@dataclass(frozen=True)
class RenderResult:
    sql: Optional[str] = None
    error: Optional[AliasError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        if self.error is not None:
            raise self.error
        return self.sql or ""


def _require_count(label: str, value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{label} must be an integer or None")
    if value < 0:
        raise ValueError(f"{label} must be non-negative, got {value}")
    return value


def _require_table(table: Any) -> str:
    if not isinstance(table, str) or not table.strip():
        raise ValueError("table must be a non-empty string")
    return table


def _require_assignment(column: Any, value: Any) -> None:
    if not isinstance(column, str) or not column.strip():
        raise ValueError("column must be a non-empty string")
    if not isinstance(value, str):
        raise TypeError(f"Value for column '{column}' must be SQL text such as '?', got {type(value).__name__}")


class QueryBuilder:
    """Assemble one SELECT/INSERT/UPDATE/DELETE statement from fluent calls.

    Every mutating call returns the builder and marks the cached SQL stale.
    Alias problems in FROM/JOIN are detected only when the statement is
    rendered, so clauses may be declared in any order.

    Example
    -------
    >>> qb = QueryBuilder()
    >>> qb.select("u.id").from_("users", "u").where("u.id = :id").get_sql()
    'SELECT u.id FROM users u WHERE u.id = :id'
    """

    def __init__(self, settings: Optional[BuilderSettings] = None):
        self.settings = settings or BuilderSettings()
        self._kind = StatementKind.UNDEFINED
        self._parts: Dict[QueryPartName, Any] = empty_parts()
        self._parameters = ParameterStore(self.settings.named_placeholder_prefix)
        self._exclude_aliases = self.settings.exclude_aliases
        self._state = RenderState.CLEAN
        self._sql: Optional[str] = ""
        self._expr = ExpressionBuilder()

    # --- introspection ---
    @property
    def kind(self) -> StatementKind:
        return self._kind

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def exclude_aliases(self) -> bool:
        return self._exclude_aliases

    def expr(self) -> ExpressionBuilder:
        return self._expr

    def get_query_part(self, name: Any) -> Any:
        part = normalize_part_name(name)
        return copy_part(part, self._parts[part])

    def get_query_parts(self) -> Dict[str, Any]:
        return {name.value: value for name, value in copy_parts(self._parts).items()}

    def get_max_results(self) -> Optional[int]:
        return self._parts[QueryPartName.LIMIT]

    def get_first_result(self) -> Optional[int]:
        return self._parts[QueryPartName.OFFSET]

    # --- state helpers ---
    def _touch(self) -> "QueryBuilder":
        self._state = RenderState.DIRTY
        self._sql = None
        return self

    def _set_part(self, name: QueryPartName, value: Any) -> "QueryBuilder":
        self._parts[name] = value
        return self._touch()

    def _switch_kind(self, kind: StatementKind) -> None:
        if kind is self._kind:
            return
        cleared = incompatible_parts(kind.value, self._parts)
        if cleared:
            logger.debug(
                "Statement kind %s -> %s clears parts: %s",
                self._kind.value,
                kind.value,
                ", ".join(p.value for p in cleared),
            )
        for name in cleared:
            self._parts[name] = empty_part(name)
        self._kind = kind
        self._touch()

    def _set_target(self, table: Optional[str], alias: Optional[str]) -> None:
        if table is None:
            return
        self._parts[QueryPartName.FROM] = [FromEntry(_require_table(table), alias or None)]

    # --- statement shapes ---
    def select(self, *expressions: Any) -> "QueryBuilder":
        self._switch_kind(StatementKind.SELECT)
        exprs = flatten_expressions(expressions)
        if exprs:
            self._set_part(QueryPartName.SELECT, exprs)
        return self

    def add_select(self, *expressions: Any) -> "QueryBuilder":
        self._switch_kind(StatementKind.SELECT)
        exprs = flatten_expressions(expressions)
        if exprs:
            self._set_part(QueryPartName.SELECT, [*self._parts[QueryPartName.SELECT], *exprs])
        return self

    def distinct(self, flag: bool = True) -> "QueryBuilder":
        return self._set_part(QueryPartName.DISTINCT, bool(flag))

    def insert(self, table: Optional[str] = None) -> "QueryBuilder":
        self._switch_kind(StatementKind.INSERT)
        self._set_target(table, None)
        return self._touch()

    def update(self, table: Optional[str] = None, alias: Optional[str] = None) -> "QueryBuilder":
        self._switch_kind(StatementKind.UPDATE)
        self._set_target(table, alias)
        return self._touch()

    def delete(self, table: Optional[str] = None, alias: Optional[str] = None) -> "QueryBuilder":
        self._switch_kind(StatementKind.DELETE)
        self._set_target(table, alias)
        return self._touch()

    # --- sources ---
    def from_(self, table: str, alias: Optional[str] = None) -> "QueryBuilder":
        entry = FromEntry(_require_table(table), alias or None)
        return self._set_part(QueryPartName.FROM, [*self._parts[QueryPartName.FROM], entry])

    def join(
        self,
        from_alias: str,
        table: str,
        alias: Optional[str] = None,
        condition: Optional[Predicate] = None,
    ) -> "QueryBuilder":
        return self._add_join(JoinType.INNER, from_alias, table, alias, condition)

    def inner_join(
        self,
        from_alias: str,
        table: str,
        alias: Optional[str] = None,
        condition: Optional[Predicate] = None,
    ) -> "QueryBuilder":
        return self._add_join(JoinType.INNER, from_alias, table, alias, condition)

    def left_join(
        self,
        from_alias: str,
        table: str,
        alias: Optional[str] = None,
        condition: Optional[Predicate] = None,
    ) -> "QueryBuilder":
        return self._add_join(JoinType.LEFT, from_alias, table, alias, condition)

    def right_join(
        self,
        from_alias: str,
        table: str,
        alias: Optional[str] = None,
        condition: Optional[Predicate] = None,
    ) -> "QueryBuilder":
        return self._add_join(JoinType.RIGHT, from_alias, table, alias, condition)

    def _add_join(
        self,
        join_type: JoinType,
        from_alias: str,
        table: str,
        alias: Optional[str],
        condition: Optional[Predicate],
    ) -> "QueryBuilder":
        entry = JoinEntry(from_alias, join_type, _require_table(table), alias or None, copy_predicate(condition))
        return self._set_part(QueryPartName.JOIN, [*self._parts[QueryPartName.JOIN], entry])

    def set_exclude_aliases(self, flag: bool = True) -> "QueryBuilder":
        self._exclude_aliases = bool(flag)
        return self._touch()

    # --- conditions ---
    @staticmethod
    def _predicate(predicates: Iterable[Predicate]) -> Optional[Predicate]:
        # Caller trees are copied so later edits to them cannot reach this statement.
        items = [copy_predicate(p) for p in predicates if p is not None and p != ""]
        if not items:
            return None
        if len(items) == 1:
            return items[0]
        return CompositeExpression(AND, items)

    def _merge(
        self,
        part: QueryPartName,
        type: str,
        predicates: Iterable[Predicate],
        opener: Optional[str] = None,
    ) -> "QueryBuilder":
        predicate = self._predicate(predicates)
        if predicate is None:
            return self
        existing = self._parts[part]
        if is_empty_part(existing):
            merged = CompositeExpression(type, [opener, predicate]) if opener else predicate
        else:
            merged = combine(existing, type, predicate)
        return self._set_part(part, merged)

    def where(self, *predicates: Predicate) -> "QueryBuilder":
        return self._merge(QueryPartName.WHERE, AND, predicates)

    def and_where(self, *predicates: Predicate) -> "QueryBuilder":
        return self._merge(QueryPartName.WHERE, AND, predicates, opener=TRUE_PREDICATE)

    def or_where(self, *predicates: Predicate) -> "QueryBuilder":
        return self._merge(QueryPartName.WHERE, OR, predicates)

    def having(self, *predicates: Predicate) -> "QueryBuilder":
        return self._merge(QueryPartName.HAVING, AND, predicates)

    def and_having(self, *predicates: Predicate) -> "QueryBuilder":
        return self._merge(QueryPartName.HAVING, AND, predicates)

    def or_having(self, *predicates: Predicate) -> "QueryBuilder":
        return self._merge(QueryPartName.HAVING, OR, predicates)

    # --- grouping / ordering / paging ---
    def group_by(self, *expressions: Any) -> "QueryBuilder":
        return self._set_part(QueryPartName.GROUP_BY, flatten_expressions(expressions))

    def add_group_by(self, *expressions: Any) -> "QueryBuilder":
        exprs = flatten_expressions(expressions)
        return self._set_part(QueryPartName.GROUP_BY, [*self._parts[QueryPartName.GROUP_BY], *exprs])

    def _order_item(self, sort: str, order: Optional[str]) -> OrderByItem:
        if not isinstance(sort, str) or not sort.strip():
            raise ValueError("order by expression must be a non-empty string")
        direction = (order or self.settings.default_order_direction).strip().upper()
        if direction not in ("ASC", "DESC"):
            raise ValueError(f"order direction must be ASC or DESC, got {order!r}")
        return OrderByItem(sort, direction)

    def order_by(self, sort: str, order: Optional[str] = None) -> "QueryBuilder":
        return self._set_part(QueryPartName.ORDER_BY, [self._order_item(sort, order)])

    def add_order_by(self, sort: str, order: Optional[str] = None) -> "QueryBuilder":
        item = self._order_item(sort, order)
        return self._set_part(QueryPartName.ORDER_BY, [*self._parts[QueryPartName.ORDER_BY], item])

    def set_max_results(self, max_results: Optional[int]) -> "QueryBuilder":
        return self._set_part(QueryPartName.LIMIT, _require_count("max_results", max_results))

    def set_first_result(self, first_result: Optional[int]) -> "QueryBuilder":
        return self._set_part(QueryPartName.OFFSET, _require_count("first_result", first_result))

    # --- insert / update payload ---
    def set(self, column: str, value: str) -> "QueryBuilder":
        _require_assignment(column, value)
        entry = UpdateSet(column, value)
        return self._set_part(QueryPartName.SET, [*self._parts[QueryPartName.SET], entry])

    def values(self, values: Mapping[str, str]) -> "QueryBuilder":
        values = dict(values)
        for column, value in values.items():
            _require_assignment(column, value)
        return self._set_part(QueryPartName.VALUES, values)

    def set_value(self, column: str, value: str) -> "QueryBuilder":
        _require_assignment(column, value)
        current = dict(self._parts[QueryPartName.VALUES])
        current[column] = value
        return self._set_part(QueryPartName.VALUES, current)

    # --- parameters ---
    def create_named_parameter(
        self,
        value: Any,
        type: Optional[ParameterType] = None,
        placeholder: Optional[str] = None,
    ) -> str:
        token = self._parameters.create_named(value, type, placeholder)
        self._touch()
        return token

    def create_positional_parameter(self, value: Any, type: Optional[ParameterType] = None) -> str:
        token = self._parameters.create_positional(value, type)
        self._touch()
        return token

    def set_parameter(self, key: ParameterKey, value: Any, type: Optional[ParameterType] = None) -> "QueryBuilder":
        self._parameters.set(key, value, type)
        return self._touch()

    def set_parameters(
        self,
        values: Mapping[ParameterKey, Any],
        types: Optional[Mapping[ParameterKey, ParameterType]] = None,
    ) -> "QueryBuilder":
        self._parameters.update(values, types)
        return self._touch()

    def get_parameter(self, key: ParameterKey) -> Any:
        return self._parameters.get(key)

    def get_parameter_type(self, key: ParameterKey) -> Optional[ParameterType]:
        return self._parameters.get_type(key)

    def lookup_parameter(self, key: ParameterKey) -> Optional[Parameter]:
        return self._parameters.lookup(key)

    def get_parameters(self) -> Dict[ParameterKey, Any]:
        return self._parameters.values()

    def get_parameter_types(self) -> Dict[ParameterKey, ParameterType]:
        return self._parameters.types()

    # --- resets ---
    def reset_query_part(self, name: Any) -> "QueryBuilder":
        part = normalize_part_name(name)
        return self._set_part(part, empty_part(part))

    def reset_query_parts(self, names: Optional[Iterable[Any]] = None) -> "QueryBuilder":
        targets = list(QueryPartName) if names is None else [normalize_part_name(n) for n in names]
        for part in targets:
            self._parts[part] = empty_part(part)
        return self._touch()

    # --- rendering ---
    def _render_from(self) -> str:
        froms: List[FromEntry] = self._parts[QueryPartName.FROM]
        joins: List[JoinEntry] = self._parts[QueryPartName.JOIN]
        if not froms and not joins:
            return ""
        return render_from_clause(froms, joins, self._exclude_aliases)

    def _target(self) -> str:
        froms: List[FromEntry] = self._parts[QueryPartName.FROM]
        return froms[0].render() if froms else ""

    def _condition(self, keyword: str, part: QueryPartName) -> str:
        value = self._parts[part]
        text = str(value) if value is not None else ""
        return f"{keyword} {text}" if text else ""

    def _render_select(self) -> str:
        tokens = ["SELECT"]
        if self._parts[QueryPartName.DISTINCT]:
            tokens.append("DISTINCT")
        tokens.append(", ".join(self._parts[QueryPartName.SELECT]))
        from_clause = self._render_from()
        if from_clause:
            tokens.append(f"FROM {from_clause}")
        tokens.append(self._condition("WHERE", QueryPartName.WHERE))
        if self._parts[QueryPartName.GROUP_BY]:
            tokens.append("GROUP BY " + ", ".join(self._parts[QueryPartName.GROUP_BY]))
        tokens.append(self._condition("HAVING", QueryPartName.HAVING))
        if self._parts[QueryPartName.ORDER_BY]:
            tokens.append("ORDER BY " + ", ".join(item.render() for item in self._parts[QueryPartName.ORDER_BY]))
        return " ".join(t for t in tokens if t)

    def _render_insert(self) -> str:
        froms: List[FromEntry] = self._parts[QueryPartName.FROM]
        table = froms[0].table if froms else ""
        values: Dict[str, str] = self._parts[QueryPartName.VALUES]
        tokens = [
            "INSERT INTO",
            table,
            f"({', '.join(values.keys())})",
            f"VALUES({', '.join(values.values())})",
        ]
        return " ".join(t for t in tokens if t)

    def _render_update(self) -> str:
        sets = ", ".join(s.render() for s in self._parts[QueryPartName.SET])
        tokens = [
            "UPDATE",
            self._target(),
            f"SET {sets}" if sets else "",
            self._condition("WHERE", QueryPartName.WHERE),
        ]
        return " ".join(t for t in tokens if t)

    def _render_delete(self) -> str:
        tokens = ["DELETE FROM", self._target(), self._condition("WHERE", QueryPartName.WHERE)]
        return " ".join(t for t in tokens if t)

    def _render(self) -> str:
        if self._kind is StatementKind.INSERT:
            return self._render_insert()
        if self._kind is StatementKind.UPDATE:
            return self._render_update()
        if self._kind is StatementKind.DELETE:
            return self._render_delete()
        if self._kind is StatementKind.UNDEFINED and all(is_empty_part(v) for v in self._parts.values()):
            return ""
        return self._render_select()

    def try_render(self) -> RenderResult:
        """Render through the cache without raising alias errors.

        A failed render caches nothing and leaves the builder dirty.
        """
        if self._state is RenderState.CLEAN and self._sql is not None:
            logger.debug("Render cache hit for %s statement", self._kind.value)
            return RenderResult(sql=self._sql)
        try:
            sql = self._render()
        except AliasError as exc:
            logger.warning(
                "Cannot render %s statement: alias %r (known aliases: %s)",
                self._kind.value,
                exc.alias,
                ", ".join(exc.known_aliases),
            )
            return RenderResult(error=exc)
        self._sql = sql
        self._state = RenderState.CLEAN
        logger.debug("Rendered %s statement (%d chars)", self._kind.value, len(sql))
        return RenderResult(sql=sql)

    def get_sql(self) -> str:
        return self.try_render().unwrap()

    def print(self, file: Optional[TextIO] = None) -> "QueryBuilder":
        print(self.get_sql(), file=file or sys.stdout)
        return self

    def __str__(self) -> str:
        return self.get_sql()

    def __repr__(self) -> str:
        return f"<QueryBuilder kind={self._kind.value} state={self._state.value}>"

    # --- cloning ---
    def clone(self) -> "QueryBuilder":
        other = QueryBuilder.__new__(QueryBuilder)
        other.settings = self.settings
        other._kind = self._kind
        other._parts = copy_parts(self._parts)
        other._parameters = self._parameters.copy()
        other._exclude_aliases = self._exclude_aliases
        other._state = self._state
        other._sql = self._sql
        other._expr = ExpressionBuilder()
        return other

    def __copy__(self) -> "QueryBuilder":
        return self.clone()

    def __deepcopy__(self, memo: Dict[int, Any]) -> "QueryBuilder":
        return self.clone()


__all__ = ["QueryBuilder", "RenderResult", "RenderState", "StatementKind", "TRUE_PREDICATE"]

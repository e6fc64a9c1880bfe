"""FROM roots, JOIN edges and the alias bookkeeping between them."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .errors import NonUniqueAliasError, UnknownAliasError
from .expression import CompositeExpression


class JoinType(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class FromEntry:
    table: str
    alias: Optional[str] = None

    def __post_init__(self) -> None:
        _require_name("table", self.table)

    @property
    def effective_alias(self) -> str:
        return self.alias or self.table

    def render(self) -> str:
        alias = self.effective_alias
        return self.table if alias == self.table else f"{self.table} {alias}"


@dataclass(frozen=True)
class JoinEntry:
    from_alias: str
    join_type: JoinType
    table: str
    alias: Optional[str] = None
    condition: Optional[Union[str, CompositeExpression]] = None

    def __post_init__(self) -> None:
        _require_name("from_alias", self.from_alias)
        _require_name("table", self.table)

    def effective_alias(self, exclude_aliases: bool = False) -> str:
        if exclude_aliases or not self.alias:
            return self.table
        return self.alias

    def render(self, exclude_aliases: bool = False) -> str:
        alias = self.effective_alias(exclude_aliases)
        text = f" {self.join_type.value} JOIN {self.table}"
        if alias != self.table:
            text += f" {alias}"
        condition = str(self.condition) if self.condition is not None else ""
        if condition:
            text += f" ON {condition}"
        return text

    def copy(self) -> "JoinEntry":
        if isinstance(self.condition, CompositeExpression):
            return JoinEntry(self.from_alias, self.join_type, self.table, self.alias, self.condition.copy())
        return self


def _require_name(label: str, value: Optional[str]) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must be a non-empty string")


class AliasRegistry:
    """Aliases bound so far during one render, in registration order."""

    def __init__(self) -> None:
        self._aliases: Dict[str, None] = {}

    def register(self, alias: str) -> None:
        if alias in self._aliases:
            raise NonUniqueAliasError(alias, self.aliases)
        self._aliases[alias] = None

    def require(self, alias: str) -> None:
        if alias not in self._aliases:
            raise UnknownAliasError(alias, self.aliases)

    @property
    def aliases(self) -> Tuple[str, ...]:
        return tuple(self._aliases)

    def __contains__(self, alias: object) -> bool:
        return alias in self._aliases


def _children_by_alias(joins: Iterable[JoinEntry]) -> Dict[str, List[JoinEntry]]:
    children: Dict[str, List[JoinEntry]] = {}
    for join in joins:
        children.setdefault(join.from_alias, []).append(join)
    return children


def _render_subtree(
    root_alias: str,
    children: Dict[str, List[JoinEntry]],
    registry: AliasRegistry,
    exclude_aliases: bool,
) -> str:
    # Level order: every direct child of a parent before any grandchild.
    parts: List[str] = []
    queue: Deque[str] = deque([root_alias])
    while queue:
        parent = queue.popleft()
        for join in children.get(parent, []):
            alias = join.effective_alias(exclude_aliases)
            registry.register(alias)
            parts.append(join.render(exclude_aliases))
            queue.append(alias)
    return "".join(parts)


def render_from_clause(
    froms: Sequence[FromEntry],
    joins: Sequence[JoinEntry],
    exclude_aliases: bool = False,
) -> str:
    """Render FROM roots with their JOIN subtrees, roots separated by ``, ``.

    Raises :class:`NonUniqueAliasError` when two entries resolve to the same
    alias and :class:`UnknownAliasError` when a JOIN hangs off an alias that no
    FROM root or reachable JOIN declares.
    """
    registry = AliasRegistry()
    children = _children_by_alias(joins)
    rendered: List[str] = []
    for entry in froms:
        registry.register(entry.effective_alias)
        rendered.append(
            entry.render() + _render_subtree(entry.effective_alias, children, registry, exclude_aliases)
        )
    for join in joins:
        registry.require(join.from_alias)
    return ", ".join(rendered)


__all__ = [
    "JoinType",
    "FromEntry",
    "JoinEntry",
    "AliasRegistry",
    "render_from_clause",
]

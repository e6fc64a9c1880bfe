"""Boolean predicate trees for WHERE and HAVING clauses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Union

AND = "AND"
OR = "OR"

Predicate = Union[str, "CompositeExpression"]


@dataclass
class CompositeExpression:
    """AND/OR node over leaf text predicates and nested composites.

    Rendering wraps every child in parentheses once there are two or more of
    them, so precedence never depends on the SQL operator rules. A single
    child renders bare and an empty node renders as the empty string.
    """

    type: str
    parts: List[Predicate] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.type not in (AND, OR):
            raise ValueError(f"Composite type must be {AND} or {OR}, got {self.type!r}")
        self.parts = [p for p in self.parts if not _is_empty(p)]

    @classmethod
    def and_(cls, *parts: Predicate) -> "CompositeExpression":
        return cls(AND, list(parts))

    @classmethod
    def or_(cls, *parts: Predicate) -> "CompositeExpression":
        return cls(OR, list(parts))

    def with_(self, *parts: Predicate) -> "CompositeExpression":
        """Return a copy with ``parts`` appended; ``self`` is left untouched."""
        return CompositeExpression(self.type, [*self.parts, *parts])

    def copy(self) -> "CompositeExpression":
        return CompositeExpression(
            self.type,
            [p.copy() if isinstance(p, CompositeExpression) else p for p in self.parts],
        )

    def __len__(self) -> int:
        return len(self.parts)

    def __str__(self) -> str:
        rendered = [str(p) for p in self.parts]
        if not rendered:
            return ""
        if len(rendered) == 1:
            return rendered[0]
        return "(" + f") {self.type} (".join(rendered) + ")"


def _is_empty(part: Optional[Predicate]) -> bool:
    if part is None:
        return True
    if isinstance(part, CompositeExpression):
        return len(part) == 0
    return part == ""


def combine(existing: Optional[Predicate], type: str, predicate: Predicate) -> Predicate:
    """Merge ``predicate`` into ``existing`` under ``type``.

    A composite of the same type grows by one child; anything else is wrapped
    as the first child of a new composite.
    """
    if _is_empty(existing):
        return predicate
    if isinstance(existing, CompositeExpression) and existing.type == type:
        return existing.with_(predicate)
    return CompositeExpression(type, [existing, predicate])  # type: ignore[list-item]


def copy_predicate(predicate: Optional[Predicate]) -> Optional[Predicate]:
    if isinstance(predicate, CompositeExpression):
        return predicate.copy()
    return predicate


class ExpressionBuilder:
    """Leaf predicate factory. Operands are inserted verbatim."""

    EQ = "="
    NEQ = "<>"
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="

    def and_x(self, *parts: Predicate) -> CompositeExpression:
        return CompositeExpression(AND, list(parts))

    def or_x(self, *parts: Predicate) -> CompositeExpression:
        return CompositeExpression(OR, list(parts))

    def comparison(self, x: str, operator: str, y: str) -> str:
        return f"{x} {operator} {y}"

    def eq(self, x: str, y: str) -> str:
        return self.comparison(x, self.EQ, y)

    def neq(self, x: str, y: str) -> str:
        return self.comparison(x, self.NEQ, y)

    def lt(self, x: str, y: str) -> str:
        return self.comparison(x, self.LT, y)

    def lte(self, x: str, y: str) -> str:
        return self.comparison(x, self.LTE, y)

    def gt(self, x: str, y: str) -> str:
        return self.comparison(x, self.GT, y)

    def gte(self, x: str, y: str) -> str:
        return self.comparison(x, self.GTE, y)

    def is_null(self, x: str) -> str:
        return f"{x} IS NULL"

    def is_not_null(self, x: str) -> str:
        return f"{x} IS NOT NULL"

    def like(self, x: str, y: str, escape: Optional[str] = None) -> str:
        return self.comparison(x, "LIKE", y) + (f" ESCAPE {escape}" if escape else "")

    def not_like(self, x: str, y: str, escape: Optional[str] = None) -> str:
        return self.comparison(x, "NOT LIKE", y) + (f" ESCAPE {escape}" if escape else "")

    def in_(self, x: str, y: Union[str, Sequence[str]]) -> str:
        return self.comparison(x, "IN", f"({_join_list(y)})")

    def not_in(self, x: str, y: Union[str, Sequence[str]]) -> str:
        return self.comparison(x, "NOT IN", f"({_join_list(y)})")


def _join_list(values: Union[str, Iterable[str]]) -> str:
    if isinstance(values, str):
        return values
    return ", ".join(str(v) for v in values)


__all__ = [
    "AND",
    "OR",
    "Predicate",
    "CompositeExpression",
    "ExpressionBuilder",
    "combine",
    "copy_predicate",
]

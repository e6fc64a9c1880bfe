from __future__ import annotations

from typing import Iterable, Tuple


class QueryError(Exception):
    """Base class for errors raised while assembling a statement."""


class AliasError(QueryError):
    """Render-time alias failure carrying the offending alias."""

    reason = ""

    def __init__(self, alias: str, known_aliases: Iterable[str]):
        self.alias = alias
        self.known_aliases: Tuple[str, ...] = tuple(known_aliases)
        super().__init__(
            f"The given alias '{alias}' {self.reason}. "
            f"The currently registered aliases are: {', '.join(self.known_aliases)}."
        )


class UnknownAliasError(AliasError):
    reason = "is not part of any FROM or JOIN clause table"


class NonUniqueAliasError(AliasError):
    reason = "is not unique in FROM and JOIN clause table"


__all__ = ["QueryError", "AliasError", "UnknownAliasError", "NonUniqueAliasError"]

"""Placeholder values handed to the execution layer alongside the SQL text."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

ParameterKey = Union[str, int]


class ParameterType(str, Enum):
    NULL = "null"
    INTEGER = "integer"
    STRING = "string"
    LARGE_OBJECT = "large_object"
    BOOLEAN = "boolean"
    BINARY = "binary"
    ASCII = "ascii"


@dataclass(frozen=True)
class Parameter:
    value: Any
    type: Optional[ParameterType] = None

    @property
    def typed(self) -> bool:
        return self.type is not None


def normalize_key(key: ParameterKey) -> ParameterKey:
    if isinstance(key, bool):
        raise TypeError("Parameter key must be a string name or a positive integer position")
    if isinstance(key, int):
        if key < 1:
            raise ValueError(f"Positional parameter keys start at 1, got {key}")
        return key
    if not isinstance(key, str):
        raise TypeError("Parameter key must be a string name or a positive integer position")
    name = key[1:] if key.startswith(":") else key
    if not name:
        raise ValueError("Parameter name must not be empty")
    return name


class ParameterStore:
    """Named (``:key``) and positional (``?``) parameter values.

    Entries keep their optional type tag. An entry written without a type is
    still returned by :meth:`values` but is left out of :meth:`types`, so the
    three states "absent", "present untyped" and "present typed" stay distinct
    through :meth:`lookup`.
    """

    def __init__(self, named_prefix: str = "dcValue"):
        self.named_prefix = named_prefix
        self._entries: Dict[ParameterKey, Parameter] = {}
        self._named_counter = 0
        self._positional_counter = 0

    def create_named(
        self,
        value: Any,
        type: Optional[ParameterType] = None,
        placeholder: Optional[str] = None,
    ) -> str:
        if placeholder is None:
            self._named_counter += 1
            placeholder = f":{self.named_prefix}{self._named_counter}"
        self.set(placeholder, value, type)
        return placeholder

    def create_positional(self, value: Any, type: Optional[ParameterType] = None) -> str:
        self._positional_counter += 1
        self.set(self._positional_counter, value, type)
        return "?"

    def set(self, key: ParameterKey, value: Any, type: Optional[ParameterType] = None) -> None:
        if type is not None and not isinstance(type, ParameterType):
            type = ParameterType(type)
        self._entries[normalize_key(key)] = Parameter(value=value, type=type)

    def lookup(self, key: ParameterKey) -> Optional[Parameter]:
        return self._entries.get(normalize_key(key))

    def get(self, key: ParameterKey) -> Any:
        entry = self.lookup(key)
        return entry.value if entry is not None else None

    def get_type(self, key: ParameterKey) -> Optional[ParameterType]:
        entry = self.lookup(key)
        return entry.type if entry is not None else None

    def values(self) -> Dict[ParameterKey, Any]:
        return {key: entry.value for key, entry in self._entries.items()}

    def types(self) -> Dict[ParameterKey, ParameterType]:
        return {key: entry.type for key, entry in self._entries.items() if entry.type is not None}

    def update(
        self,
        values: Mapping[ParameterKey, Any],
        types: Optional[Mapping[ParameterKey, ParameterType]] = None,
    ) -> None:
        normalized_types = {normalize_key(k): t for k, t in (types or {}).items()}
        for key, value in values.items():
            self.set(key, value, normalized_types.get(normalize_key(key)))

    def copy(self) -> "ParameterStore":
        clone = ParameterStore(self.named_prefix)
        # Each value is shallow-copied; a list bound here must not change in the clone.
        clone._entries = {
            key: Parameter(copy.copy(entry.value), entry.type) for key, entry in self._entries.items()
        }
        clone._named_counter = self._named_counter
        clone._positional_counter = self._positional_counter
        return clone

    def __contains__(self, key: object) -> bool:
        try:
            return normalize_key(key) in self._entries  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["ParameterKey", "ParameterType", "Parameter", "ParameterStore", "normalize_key"]

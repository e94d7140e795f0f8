"""Tagged values crossing the IPC boundary.

Child processes send loosely typed JSON arguments.  Before a callback sees
them they are converted into :class:`Value` instances whose ``kind`` says
exactly what they hold; results go back through :meth:`Value.wrap` and
:meth:`Value.to_wire`.  Anything that is not a string, number, boolean,
list, string-keyed map or null is rejected.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

# Lists and maps deeper than this are rejected rather than recursed into.
MAX_DEPTH = 64


class ValueKind(str, Enum):
    NULL = "null"
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    LIST = "list"
    MAP = "map"


class Value(BaseModel):
    """One tagged value.

    ``data`` holds a ``str``, ``int``/``float``, ``bool``, ``None``,
    ``list[Value]`` or ``dict[str, Value]`` according to ``kind``.
    """

    model_config = ConfigDict(frozen=True)

    kind: ValueKind
    data: Any = None

    # ------------------------------------------------------------------
    # Conversion in
    # ------------------------------------------------------------------

    @classmethod
    def wrap(cls, obj: Any, _depth: int = 0) -> Value:
        """Convert a plain Python object into a :class:`Value`.

        Raises
        ------
        TypeError
            If *obj* (or anything nested in it) has no tagged representation,
            or lists and maps nest deeper than :data:`MAX_DEPTH`.
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls(kind=ValueKind.NULL)
        # bool before number: bool is an int subclass
        if isinstance(obj, bool):
            return cls(kind=ValueKind.BOOL, data=obj)
        if isinstance(obj, (int, float)):
            return cls(kind=ValueKind.NUMBER, data=obj)
        if isinstance(obj, str):
            return cls(kind=ValueKind.STRING, data=obj)
        if isinstance(obj, (list, tuple, dict)) and _depth >= MAX_DEPTH:
            raise TypeError(f"value nested deeper than {MAX_DEPTH} levels")
        if isinstance(obj, (list, tuple)):
            return cls(kind=ValueKind.LIST, data=[cls.wrap(v, _depth + 1) for v in obj])
        if isinstance(obj, dict):
            items: dict[str, Value] = {}
            for k, v in obj.items():
                if not isinstance(k, str):
                    raise TypeError(f"map keys must be strings, got {type(k).__name__}")
                items[k] = cls.wrap(v, _depth + 1)
            return cls(kind=ValueKind.MAP, data=items)
        raise TypeError(f"unsupported value type {type(obj).__name__}")

    @classmethod
    def from_wire(cls, decoded: Any) -> Value:
        """Convert a decoded JSON value into a :class:`Value`."""
        return cls.wrap(decoded)

    # ------------------------------------------------------------------
    # Conversion out
    # ------------------------------------------------------------------

    def to_wire(self) -> Any:
        """Plain JSON-serialisable form of this value."""
        if self.kind is ValueKind.LIST:
            return [v.to_wire() for v in self.data]
        if self.kind is ValueKind.MAP:
            return {k: v.to_wire() for k, v in self.data.items()}
        return self.data

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def _expect(self, kind: ValueKind) -> Any:
        if self.kind is not kind:
            raise TypeError(f"expected {kind.value}, got {self.kind.value}")
        return self.data

    def as_str(self) -> str:
        return self._expect(ValueKind.STRING)

    def as_number(self) -> int | float:
        return self._expect(ValueKind.NUMBER)

    def as_bool(self) -> bool:
        return self._expect(ValueKind.BOOL)

    def as_list(self) -> list[Value]:
        return list(self._expect(ValueKind.LIST))

    def as_map(self) -> dict[str, Value]:
        return dict(self._expect(ValueKind.MAP))

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

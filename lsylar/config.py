"""Named configuration variables kept in a process-wide registry."""

from __future__ import annotations

import threading
from typing import Any, Callable, ClassVar, Generic, Optional, TypeVar

T = TypeVar("T")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_like(sample: Any, text: str) -> Any:
    if isinstance(sample, bool):
        lowered = text.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"not a boolean: {text!r}")
    return type(sample)(text)


class ConfigVar(Generic[T]):
    """A named, described value that can be converted to and from text."""

    def __init__(
        self,
        name: str,
        value: T,
        desc: str = " no desc ",
        on_change: Optional[Callable[[T, T], None]] = None,
        from_str: Optional[Callable[[str], T]] = None,
        to_str: Callable[[T], str] = str,
    ) -> None:
        self.name = name
        self.desc = desc
        self._value = value
        self._on_change = on_change
        self._from_str = from_str
        self._to_str = to_str
        self._lock = threading.Lock()

    @property
    def value(self) -> T:
        return self._value

    def set_value(self, value: T) -> None:
        """Replace the value, notifying the change callback with (old, new)."""
        with self._lock:
            if self._on_change is not None:
                self._on_change(self._value, value)
            self._value = value

    def to_string(self) -> str:
        return self._to_str(self._value)

    def from_string(self, text: str) -> None:
        """Parse text into the value; raises ValueError if it does not fit."""
        parsed = self._from_str(text) if self._from_str else _parse_like(self._value, text)
        with self._lock:
            self._value = parsed


class Config:
    """Registry of configuration variables looked up by name."""

    _datas: ClassVar[dict[str, ConfigVar]] = {}
    _lock: ClassVar[threading.Lock] = threading.Lock()

    @classmethod
    def lookup(cls, name: str, default_value: Any, desc: str = " no desc ") -> ConfigVar:
        """Return the variable called name, creating it with default_value if absent."""
        with cls._lock:
            existing = cls._datas.get(name)
            if existing is not None:
                print(f"{name} is exit, value = {existing.to_string()}")
                return existing
            var = ConfigVar(name, default_value, desc)
            cls._datas[name] = var
            return var

    @classmethod
    def clear(cls) -> None:
        with cls._lock:
            cls._datas.clear()
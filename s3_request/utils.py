"""Environment-backed dataclass fields."""

import dataclasses
import os
from typing import Any
from typing import Callable


TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def to_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def env(key: str, convert: Callable[[str], Any] = str, **kwargs: Any) -> Any:
    """
    Dataclass field whose default is read from the environment at instantiation.

    Args:
        key: ``NAME`` or ``NAME:default``; without a default the variable is required
        convert: Applied to the raw string, environment value or default alike
        **kwargs: Passed through to ``dataclasses.field``

    Returns:
        A dataclass field
    """
    name, has_default, default = key.partition(":")

    def read() -> Any:
        raw = os.environ.get(name)
        if raw is None:
            if not has_default:
                raise KeyError(f"Environment variable {name} is required")
            raw = default
        try:
            return convert(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {name}: {raw!r}") from e

    return dataclasses.field(default_factory=read, **kwargs)

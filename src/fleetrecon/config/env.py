"""Typed readers over ``os.environ``.

Blank values count as unset everywhere, so an empty line in ``.env`` never
overrides a default.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


def optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def require_env_vars(names: Iterable[str]) -> dict[str, str]:
    """Read every name at once so the error lists all missing settings together."""

    values = {name: optional_env(name) for name in names}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise MissingConfigurationError(missing)
    return {name: value for name, value in values.items() if value is not None}


def require_env_var(name: str) -> str:
    return require_env_vars([name])[name]


def env_float(name: str, default: float) -> float:
    return _parse(name, default, float, "a number")


def env_int(name: str, default: int) -> int:
    return _parse(name, default, int, "a whole number")


def _parse[T](name: str, default: T, convert: Callable[[str], T], kind: str) -> T:
    raw = optional_env(name)
    if raw is None:
        return default
    try:
        return convert(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be {kind}, got {raw!r}") from exc

"""Process-wide named options.

Lookup order for an option: a value installed with set_options() (or the
options() context manager), then the KNITNB_<NAME> environment variable, then
the built-in default.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator

from ruamel.yaml import YAML

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "KNITNB_"

DEFAULTS: Dict[str, Any] = {
    "title": "A Python Notebook",
    "author": None,
    "json_indent": 2,
    "language": "python",
    "width": 80,
}


def _as_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"Expected an integer, got {value!r}") from None


_COERCE: Dict[str, Callable[[str], Any]] = {
    "json_indent": _as_int,
    "width": _as_int,
}

_options: Dict[str, Any] = {}


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


_UNSET = _Unset()


def _check_name(name: str) -> None:
    if name not in DEFAULTS:
        raise ConfigError(f"Unknown option: {name}")


def get_option(name: str) -> Any:
    _check_name(name)
    if name in _options:
        return _options[name]
    env = os.environ.get(ENV_PREFIX + name.upper())
    if env is not None:
        coerce = _COERCE.get(name)
        return coerce(env) if coerce else env
    return DEFAULTS[name]


def set_options(**values: Any) -> Dict[str, Any]:
    """Install option values; return the previous values for restoring."""
    for name in values:
        _check_name(name)
    previous = {name: _options.get(name, _UNSET) for name in values}
    for name, value in values.items():
        if value is _UNSET:
            _options.pop(name, None)
        else:
            _options[name] = value
    return previous


@contextmanager
def options(**values: Any) -> Iterator[None]:
    previous = set_options(**values)
    try:
        yield
    finally:
        set_options(**previous)


def load_config_file(path: str | Path) -> Dict[str, Any]:
    """Read a YAML mapping of options and install it."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {p}: {e}") from e
    yaml = YAML(typ="safe")
    data = yaml.load(text) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a mapping")
    set_options(**data)
    logger.debug("Loaded options from %s: %s", p, sorted(data))
    return data


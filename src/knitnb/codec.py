"""Canonical JSON reading and writing for .knb notebooks.

In memory every character value is a list of strings. On disk a one-element
list is written as a bare string and longer lists stay arrays, so a notebook
written by hand with plain strings and one written by knitnb read back the
same.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from .config import get_option
from .errors import EncodingError, ParseError

logger = logging.getLogger(__name__)


def to_utf8(text: str) -> str:
    """Return text unchanged if it can be written as UTF-8, else raise."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(
            f"Failed to convert the character string to UTF-8: {e.reason} "
            f"at position {e.start}"
        ) from e
    return text


def unbox(tree: Any) -> Any:
    if isinstance(tree, dict):
        return {k: unbox(v) for k, v in tree.items()}
    if isinstance(tree, list):
        if len(tree) == 1 and isinstance(tree[0], str):
            return tree[0]
        return [unbox(v) for v in tree]
    return tree


def _check_strings(tree: Any) -> None:
    if isinstance(tree, str):
        to_utf8(tree)
    elif isinstance(tree, dict):
        for k, v in tree.items():
            to_utf8(str(k))
            _check_strings(v)
    elif isinstance(tree, list):
        for v in tree:
            _check_strings(v)


def decode(data: Union[bytes, str]) -> Any:
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Notebook is not valid UTF-8: {e}") from e
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Malformed JSON at line {e.lineno} column {e.colno}: {e.msg}"
        ) from e


def encode(tree: Any, indent: Optional[int] = None) -> bytes:
    if indent is None:
        indent = get_option("json_indent")
    _check_strings(tree)
    text = json.dumps(unbox(tree), ensure_ascii=False, indent=indent or None)
    return (text + "\n").encode("utf-8")


def read_file(path: Union[str, Path]) -> Any:
    return decode(Path(path).read_bytes())


def write_file(path: Union[str, Path], tree: Any, indent: Optional[int] = None) -> None:
    data = encode(tree, indent=indent)
    Path(path).write_bytes(data)
    logger.debug("Wrote %d bytes to %s", len(data), path)

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .codec import decode, encode
from .lint import validate


def format_bytes(data: Union[bytes, str], indent: Optional[int] = None) -> bytes:
    """Return the canonical encoding of a notebook: validated, unboxed, indented."""
    nb = validate(decode(data))
    return encode(nb.to_dict(), indent=indent)


def format_file(path: Union[str, Path], indent: Optional[int] = None) -> bool:
    """Rewrite a notebook file in canonical form; return True if it changed."""
    p = Path(path)
    original = p.read_bytes()
    formatted = format_bytes(original, indent=indent)
    if formatted == original:
        return False
    p.write_bytes(formatted)
    return True

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Union

from .codec import read_file
from .errors import ValidationError
from .model import Cell, CodeCell, CodeSource, Notebook, TextCell

_TOP_KEYS = {"frontmatter", "body"}
_CELL_KEYS = {"type", "src", "out"}
_CODE_SRC_KEYS = {"options", "code"}
_SCALARS = (str, int, float, bool, type(None))


def _character(value: Any) -> Optional[List[str]]:
    """Box a string or non-empty string array; None if value is neither."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
        return list(value)
    return None


def _check_frontmatter(fm: Any) -> None:
    if not isinstance(fm, dict):
        raise ValidationError("The notebook frontmatter must be a mapping", field="frontmatter")
    for key, value in fm.items():
        if isinstance(value, _SCALARS):
            continue
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            continue
        raise ValidationError(
            f"The frontmatter value of '{key}' must be a scalar or an array of strings",
            field="frontmatter",
        )


def _validate_out(out: Any, i: int) -> Optional[List[str]]:
    if out is None:
        return None
    boxed = _character(out)
    if boxed is None:
        raise ValidationError(
            f"The output of the chunk #{i} must be either null or a character vector",
            index=i,
            field="out",
        )
    return boxed


def _validate_cell(b: Any, i: int) -> Cell:
    if not isinstance(b, dict) or set(b) != _CELL_KEYS:
        raise ValidationError(
            f"The element #{i} must be a mapping with keys type/src/out", index=i
        )

    ctype = _character(b["type"])
    if ctype is None or len(ctype) != 1 or ctype[0] not in ("text", "code"):
        raise ValidationError(
            f"The type of element #{i} must be either text or code", index=i, field="type"
        )

    if ctype[0] == "text":
        src = _character(b["src"])
        if src is None:
            raise ValidationError(
                f"The source of the text chunk #{i} must be a character vector",
                index=i,
                field="src",
            )
        return TextCell(src=src, out=_validate_out(b["out"], i))

    src = b["src"]
    if not isinstance(src, dict):
        raise ValidationError(
            f"The source of the code chunk #{i} must be a mapping", index=i, field="src"
        )
    if set(src) != _CODE_SRC_KEYS:
        raise ValidationError(
            f"The source of the code chunk #{i} must be a mapping with keys options/code",
            index=i,
            field="src",
        )
    options = _character(src["options"])
    if options is None or len(options) != 1:
        raise ValidationError(
            f"The chunk options for the code chunk #{i} must be a character vector of length 1",
            index=i,
            field="options",
        )
    code = _character(src["code"])
    if code is None:
        raise ValidationError(
            f"The source code of the chunk #{i} must be a character vector",
            index=i,
            field="code",
        )
    return CodeCell(
        src=CodeSource(options=options[0], code=code), out=_validate_out(b["out"], i)
    )


def validate(tree: Any, path: Optional[str] = None) -> Notebook:
    """Check a decoded JSON tree against the notebook schema.

    Stops at the first violation with a ValidationError naming the 1-based
    cell index (None for whole-document problems) and the field.
    """
    if not isinstance(tree, dict):
        raise ValidationError("The notebook source must be a mapping")
    if set(tree) != _TOP_KEYS or len(tree) != 2:
        raise ValidationError(
            "The notebook source must have exactly the keys 'frontmatter' and 'body'"
        )
    _check_frontmatter(tree["frontmatter"])

    body = tree["body"]
    if not isinstance(body, list):
        raise ValidationError("The notebook body must be a list", field="body")

    cells = [_validate_cell(b, i) for i, b in enumerate(body, start=1)]
    return Notebook(frontmatter=dict(tree["frontmatter"]), body=cells, path=path)


def lint_file(path: Union[str, Path]) -> Notebook:
    return validate(read_file(path), path=str(path))

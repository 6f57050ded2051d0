from __future__ import annotations

import logging
import os
import tempfile
from datetime import date as _date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .codec import write_file
from .config import get_option
from .lint import validate
from .model import CodeCell, CodeSource, TextCell

logger = logging.getLogger(__name__)

NOTEBOOK_SUFFIX = ".knb"


def sample_body() -> List[Union[TextCell, CodeCell]]:
    return [
        TextCell(src=["A _sample_ paragraph."]),
        CodeCell(
            src=CodeSource(
                options="tidy = TRUE",
                code=["import math", "x = 1 / math.sqrt(2 * math.pi)", "1 + 1"],
            )
        ),
        TextCell(src=["We know the density of N(0, 1)", "at 0 is `py x`."]),
    ]


def _cell_tree(cell: Any) -> Any:
    if isinstance(cell, (TextCell, CodeCell)):
        return {
            "type": cell.type,
            "src": cell.source_tree(),
            "out": None if cell.out is None else list(cell.out),
        }
    return cell


def create(
    path: Optional[Union[str, Path]] = None,
    title: Optional[str] = None,
    author: Optional[str] = None,
    date: Optional[Union[str, _date]] = None,
    body: Optional[Iterable[Any]] = None,
    **extra: Any,
) -> Path:
    """Write a new notebook file and return its path.

    title and author default to the 'title' and 'author' options, date to
    today. Extra keyword arguments become additional frontmatter keys. When
    body is omitted a three-cell sample is written. Without a path, a new
    notebook*.knb file is created in the current directory.
    """
    frontmatter: Dict[str, Any] = {
        "title": title if title is not None else get_option("title"),
        "author": author if author is not None else get_option("author"),
        "date": str(date if date is not None else _date.today()),
    }
    frontmatter.update(extra)

    cells = sample_body() if body is None else list(body)
    nb = validate({"frontmatter": frontmatter, "body": [_cell_tree(c) for c in cells]})

    if path is None:
        fd, name = tempfile.mkstemp(prefix="notebook", suffix=NOTEBOOK_SUFFIX, dir=".")
        os.close(fd)
        path = name
    path = Path(path)
    nb.path = str(path)
    write_file(path, nb.to_dict())
    logger.info("Created notebook %s with %d cells", path, len(nb.body))
    return path

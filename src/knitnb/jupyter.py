from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import nbformat

from .model import Cell, CodeCell, CodeSource, Notebook, TextCell

logger = logging.getLogger(__name__)

_META_KEY = "knitnb"
_MARKDOWN_MIME = "text/markdown"


def _lines(text: str) -> List[str]:
    return text.rstrip("\n").split("\n")


def _source(lines: List[str]) -> str:
    return "\n".join(lines)


def to_ipynb_dict(nb: Notebook, language: str = "python") -> Dict:
    """Convert a notebook to a Jupyter nbformat v4 dict.

    - Text cells become markdown cells; their rendered output, if any, is kept
      in cell.metadata["knitnb"]["out"].
    - Code cells become code cells; chunk options go in
      cell.metadata["knitnb"]["options"] and the rendered record, if any,
      becomes a text/markdown display_data output.
    - Frontmatter is stored in notebook.metadata["knitnb"]["frontmatter"].
    """

    def _cell_to_nb(c: Cell) -> Dict:
        if isinstance(c, CodeCell):
            outputs = []
            if c.out is not None:
                outputs.append(
                    {
                        "output_type": "display_data",
                        "data": {_MARKDOWN_MIME: _source(c.out)},
                        "metadata": {},
                    }
                )
            return {
                "cell_type": "code",
                "source": c.source_text(),
                "outputs": outputs,
                "execution_count": None,
                "metadata": {_META_KEY: {"options": c.options}},
            }
        meta: Dict[str, Any] = {}
        if c.out is not None:
            meta[_META_KEY] = {"out": _source(c.out)}
        return {
            "cell_type": "markdown",
            "source": c.source_text(),
            "metadata": meta,
        }

    title = nb.frontmatter.get("title")
    return {
        "nbformat": 4,
        "nbformat_minor": 4,
        "metadata": {
            "kernelspec": {
                "name": language,
                "display_name": title if isinstance(title, str) and title else language,
                "language": language,
            },
            "language_info": {"name": language},
            _META_KEY: {"frontmatter": dict(nb.frontmatter)},
        },
        "cells": [_cell_to_nb(c) for c in nb.body],
    }


def _code_out(jc: Dict) -> Optional[List[str]]:
    for o in jc.get("outputs", []) or []:
        data = o.get("data") or {}
        if _MARKDOWN_MIME in data:
            text = data[_MARKDOWN_MIME]
            return _lines("".join(text) if isinstance(text, list) else str(text))
    return None


def from_ipynb_dict(d: Dict, *, path: Optional[str] = None) -> Notebook:
    """Convert a Jupyter nbformat v4 dict to a notebook.

    - markdown and raw cells become text cells
    - code cells become code cells, chunk options restored from metadata
    - cells with an empty source are dropped
    """
    meta = d.get("metadata", {}) if isinstance(d, dict) else {}
    own = meta.get(_META_KEY, {}) if isinstance(meta, dict) else {}
    frontmatter = dict(own.get("frontmatter") or {})
    if not frontmatter:
        ks = meta.get("kernelspec", {}) if isinstance(meta, dict) else {}
        if ks.get("display_name"):
            frontmatter["title"] = ks["display_name"]

    cells: List[Cell] = []
    for jc in d.get("cells", []) if isinstance(d, dict) else []:
        if not isinstance(jc, dict):
            continue
        src = jc.get("source", "")
        body = "".join(src) if isinstance(src, list) else str(src)
        if not body.strip():
            continue
        jmeta = jc.get("metadata", {}) or {}
        cmeta = jmeta.get(_META_KEY, {}) if isinstance(jmeta, dict) else {}
        if jc.get("cell_type") == "code":
            cells.append(
                CodeCell(
                    src=CodeSource(options=str(cmeta.get("options", "")), code=_lines(body)),
                    out=_code_out(jc),
                )
            )
        else:
            out = cmeta.get("out")
            cells.append(TextCell(src=_lines(body), out=_lines(out) if out else None))

    return Notebook(frontmatter=frontmatter, body=cells, path=path)


def export_ipynb_text(nb: Notebook) -> str:
    nbnode = nbformat.from_dict(to_ipynb_dict(nb))
    s = nbformat.writes(nbnode, version=4)
    if not s.endswith("\n"):
        s += "\n"
    return s


def import_ipynb_text(text: str, *, path: Optional[str] = None) -> Notebook:
    nbnode = nbformat.reads(text, as_version=4)
    return from_ipynb_dict(nbnode, path=path)


def export_file_to_ipynb(in_path: str, out_path: Optional[str] = None) -> None:
    from .lint import lint_file

    text = export_ipynb_text(lint_file(in_path))
    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info("Wrote %s", out_path)
    else:
        print(text, end="")


def import_ipynb_file(in_path: str, out_path: Optional[str] = None) -> None:
    from .codec import encode

    with open(in_path, "r", encoding="utf-8") as f:
        nb = import_ipynb_text(f.read(), path=in_path)
    data = encode(nb.to_dict())
    if out_path:
        with open(out_path, "wb") as f:
            f.write(data)
        logger.info("Wrote %s", out_path)
    else:
        print(data.decode("utf-8"), end="")

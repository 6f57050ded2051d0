from __future__ import annotations

import logging
import re
from io import StringIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.scalarstring import LiteralScalarString

from .codec import to_utf8
from .config import get_option
from .lint import lint_file
from .model import CodeCell, Notebook

logger = logging.getLogger(__name__)

RENDERED_SUFFIX = ".md"
RAW_SUFFIX = ".kmd"

_BACKTICKS_RE = re.compile(r"`+")


def _frontmatter_map(fm: Dict[str, Any]) -> CommentedMap:
    m = CommentedMap()
    for k, v in fm.items():
        if isinstance(v, list):
            seq = CommentedSeq(v)
            seq.fa.set_flow_style()
            v = seq
        elif isinstance(v, str) and "\n" in v:
            v = LiteralScalarString(v)
        m[k] = v
    return m


def frontmatter_lines(fm: Dict[str, Any]) -> List[str]:
    """Render frontmatter as a YAML block, one `key: value` entry per key.

    Values stay plain where YAML allows it. Strings that would otherwise read
    back as another type (dates, numbers) or that contain ': ' are quoted, and
    multi-line strings use a literal block.
    """
    lines = ["---"]
    if fm:
        yaml = YAML()
        yaml.default_flow_style = False
        yaml.width = 4096
        out = StringIO()
        yaml.dump(_frontmatter_map(fm), out)
        lines.extend(out.getvalue().splitlines())
    lines.extend(["---", ""])
    return lines


def chunk_fence(code: List[str]) -> str:
    """A backtick fence longer than any backtick run in the code."""
    longest = max((len(run) for line in code for run in _BACKTICKS_RE.findall(line)), default=0)
    return "`" * max(3, longest + 1)


def chunk_header(options: str, language: str, fence: str = "```") -> str:
    options = options.strip()
    return f"{fence}{{{language} {options}}}" if options else f"{fence}{{{language}}}"


def export_lines(nb: Notebook, raw: bool = False, language: Optional[str] = None) -> List[str]:
    """Project a notebook to flat text lines.

    raw=True reproduces sources, code cells as fenced chunks; raw=False shows
    rendered results, falling back to the source for text cells whose output
    is null. Cells with a null or empty output are left out of rendered
    exports.
    """
    language = language or get_option("language")
    lines = frontmatter_lines(nb.frontmatter)
    emitted = False
    for _, cell in nb.cells():
        if isinstance(cell, CodeCell):
            if raw:
                fence = chunk_fence(cell.code)
                block = [chunk_header(cell.options, language, fence), *cell.code, fence]
            elif cell.out is None:
                continue
            else:
                block = list(cell.out)
        else:
            block = list(cell.src if raw or cell.out is None else cell.out)
        if not raw and block == [""]:
            continue
        lines.extend(block)
        lines.append("")
        emitted = True
    if emitted:
        lines.pop()
    return lines


def default_output_path(path: Union[str, Path], raw: bool = False) -> Path:
    return Path(path).with_suffix(RAW_SUFFIX if raw else RENDERED_SUFFIX)


def export(
    path: Union[str, Path],
    output: Optional[Union[str, Path]] = None,
    raw: bool = False,
) -> Path:
    nb = lint_file(path)
    dest = Path(output) if output else default_output_path(path, raw)
    text = to_utf8("\n".join(export_lines(nb, raw=raw)) + "\n")
    dest.write_text(text, encoding="utf-8")
    logger.info("Exported %s to %s (%s)", path, dest, "raw" if raw else "rendered")
    return dest

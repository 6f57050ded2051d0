from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Sequence, Tuple, Union


@dataclass
class TextCell:
    """A markdown cell.

    src: markdown lines, one string per JSON array element.
    out: rendered lines, or None when rendering left the source unchanged
        (or the cell has not been rendered yet).
    """

    src: List[str]
    out: Optional[List[str]] = None
    type: ClassVar[str] = "text"

    def source_text(self) -> str:
        return "\n".join(self.src)

    def source_tree(self) -> Any:
        return list(self.src)


@dataclass
class CodeSource:
    options: str
    code: List[str]


@dataclass
class CodeCell:
    """A code chunk: chunk options plus code lines, and the rendered record."""

    src: CodeSource
    out: Optional[List[str]] = None
    type: ClassVar[str] = "code"

    @property
    def options(self) -> str:
        return self.src.options

    @property
    def code(self) -> List[str]:
        return self.src.code

    def source_text(self) -> str:
        return "\n".join(self.src.code)

    def source_tree(self) -> Any:
        return {"options": self.src.options, "code": list(self.src.code)}


Cell = Union[TextCell, CodeCell]


@dataclass
class Notebook:
    """A validated notebook.

    frontmatter: metadata in file order (title, author, date, extras).
    body: cells in reading order.
    path: optional file path origin.
    """

    frontmatter: Dict[str, Any] = field(default_factory=dict)
    body: List[Cell] = field(default_factory=list)
    path: Optional[str] = None

    def cells(self) -> Iterator[Tuple[int, Cell]]:
        """Yield (index, cell) pairs with 1-based indices."""
        return enumerate(self.body, start=1)

    def cell(self, index: int) -> Cell:
        if index < 1 or index > len(self.body):
            raise IndexError(f"No cell #{index}; notebook has {len(self.body)} cells")
        return self.body[index - 1]

    def with_outputs(self, outs: Sequence[Optional[List[str]]]) -> Notebook:
        if len(outs) != len(self.body):
            raise ValueError("Expected one output per cell")
        body = [replace(c, out=o) for c, o in zip(self.body, outs)]
        return replace(self, body=body)

    def to_dict(self) -> Dict[str, Any]:
        """The JSON tree with every character value boxed as a list."""
        return {
            "frontmatter": dict(self.frontmatter),
            "body": [
                {
                    "type": c.type,
                    "src": c.source_tree(),
                    "out": None if c.out is None else list(c.out),
                }
                for c in self.body
            ],
        }

"""knitnb: single-file notebooks holding text, code and rendered output.

Models, codec, lint, export, refresh through a pluggable rendering engine.
"""

__all__ = [
    "Notebook",
    "TextCell",
    "CodeCell",
    "CodeSource",
    "validate",
    "lint_file",
    "create",
    "refresh",
    "export",
]

__version__ = "0.1.0"

from .model import Notebook, TextCell, CodeCell, CodeSource  # noqa: E402
from .lint import validate, lint_file  # noqa: E402
from .create import create  # noqa: E402
from .refresh import refresh  # noqa: E402
from .export import export  # noqa: E402

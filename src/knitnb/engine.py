"""The rendering engine contract and a reference Python engine.

The refresh orchestrator only talks to a Renderer. A renderer owns some
process-wide state (environment variables, interpreter namespace), installed
with configure() and put back by the rendering() guard.
"""

from __future__ import annotations

import ast
import io
import logging
import os
import pprint
import re
import traceback
from collections import OrderedDict
from contextlib import contextmanager, redirect_stdout
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, OrderedDict as TOrderedDict, Protocol

from .config import get_option
from .errors import EngineError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderConfig:
    """Engine settings held for the duration of one refresh."""

    quote_style: str = "plain"
    width: int = 80
    in_progress: bool = False
    suppress_inline_device: bool = False
    encoding: str = "utf-8"
    progress: bool = True

    @classmethod
    def for_refresh(cls, width: Optional[int] = None) -> RenderConfig:
        return cls(
            quote_style="plain",
            width=width if width is not None else get_option("width"),
            in_progress=True,
            suppress_inline_device=True,
            encoding="utf-8",
            progress=False,
        )


class Renderer(Protocol):
    def configure(self, config: RenderConfig) -> RenderConfig:
        """Install config and return the configuration it replaced."""
        ...

    def render_inline(self, text: str) -> str:
        ...

    def render_block(self, code: str, options: str) -> str:
        ...


@contextmanager
def rendering(renderer: Renderer, config: RenderConfig) -> Iterator[Renderer]:
    previous = renderer.configure(config)
    try:
        yield renderer
    finally:
        renderer.configure(previous)


# ---------- Chunk options ----------

_CHUNK_DEFAULTS: Dict[str, Any] = {
    "echo": True,
    "eval": True,
    "include": True,
    "results": "markup",
    "error": False,
}


def _option_value(raw: str) -> Any:
    v = raw.strip()
    if v in ("TRUE", "True", "true", "T"):
        return True
    if v in ("FALSE", "False", "false", "F"):
        return False
    if len(v) >= 2 and v[0] == v[-1] and v[0] in "'\"":
        return v[1:-1]
    try:
        return int(v)
    except ValueError:
        pass
    try:
        return float(v)
    except ValueError:
        return v


def parse_chunk_options(s: str) -> TOrderedDict[str, Any]:
    """Parse 'label, key=value, key = "x, y"' into an ordered mapping.

    A leading token without '=' is stored under 'label'. Commas inside quoted
    values do not split.
    """
    out: TOrderedDict[str, Any] = OrderedDict()
    parts: list[str] = []
    buf: list[str] = []
    quote = ""
    for ch in s:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = ""
            continue
        if ch in "'\"":
            quote = ch
            buf.append(ch)
        elif ch == ",":
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf))

    for n, part in enumerate(parts):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            if n == 0:
                out["label"] = part
            continue
        key, _, value = part.partition("=")
        out[key.strip()] = _option_value(value)
    return out


# ---------- Reference engine ----------

_INLINE_RE = re.compile(r"`py\s+([^`]+)`")

_ENV_KEYS = ("KNITNB_IN_PROGRESS", "MPLBACKEND", "PYTHONIOENCODING")


def _environ_for(config: RenderConfig) -> Dict[str, str]:
    env = {"KNITNB_IN_PROGRESS": "true", "PYTHONIOENCODING": config.encoding}
    if config.suppress_inline_device:
        env["MPLBACKEND"] = "Agg"
    return env


def _inline_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        return f"{value:.7g}"
    return str(value)


class PythonRenderer:
    """Execute Python chunks in one namespace shared by all cells.

    Code blocks are echoed in a ```python fence; stdout and the repr of a
    trailing expression go in a plain fence. Inline `py expr` spans in text are
    replaced with the value of expr.

    While a refresh configuration is installed, subprocesses started by chunks
    inherit PYTHONIOENCODING=<encoding>, KNITNB_IN_PROGRESS=true and, with
    suppress_inline_device, MPLBACKEND=Agg. quote_style is not used: Python's
    repr has no locale-dependent quoting to switch off.
    """

    language = "python"

    def __init__(self, namespace: Optional[Dict[str, Any]] = None):
        self.namespace: Dict[str, Any] = (
            namespace if namespace is not None else {"__name__": "__main__"}
        )
        self.config = RenderConfig()
        self._saved_env: Dict[str, Optional[str]] = {}

    def configure(self, config: RenderConfig) -> RenderConfig:
        previous = self.config
        if config.in_progress and not previous.in_progress:
            self._saved_env = {k: os.environ.get(k) for k in _ENV_KEYS}
            os.environ.update(_environ_for(config))
        elif previous.in_progress and not config.in_progress:
            for k, v in self._saved_env.items():
                if v is None:
                    os.environ.pop(k, None)
                else:
                    os.environ[k] = v
            self._saved_env = {}
        self.config = config
        return previous

    def _exec(self, code: str, label: str) -> str:
        tree = ast.parse(code, filename=f"<chunk {label}>", mode="exec")
        last = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            last = ast.Expression(tree.body.pop().value)
        buf = io.StringIO()
        with redirect_stdout(buf):
            exec(compile(tree, f"<chunk {label}>", "exec"), self.namespace)  # noqa: S102
            if last is not None:
                value = eval(compile(last, f"<chunk {label}>", "eval"), self.namespace)  # noqa: S307
                if value is not None:
                    print(pprint.pformat(value, width=self.config.width))
        return buf.getvalue().rstrip("\n")

    def render_block(self, code: str, options: str) -> str:
        opts = dict(_CHUNK_DEFAULTS)
        opts.update(parse_chunk_options(options))
        label = str(opts.get("label") or options.strip() or "unnamed")
        if self.config.progress:
            logger.info("Rendering chunk: %s", label)

        output = ""
        if opts["eval"]:
            try:
                output = self._exec(code, label)
            except Exception as e:  # noqa: BLE001
                if not opts["error"]:
                    raise EngineError(
                        f"Error in chunk '{label}': {e.__class__.__name__}: {e}",
                        label=label,
                    ) from e
                tb = traceback.format_exception_only(type(e), e)
                output = "".join(tb).rstrip("\n")

        if not opts["include"]:
            return ""
        parts: list[str] = []
        if opts["echo"]:
            parts.append(f"```{self.language}\n{code}\n```")
        if output and opts["results"] != "hide":
            if opts["results"] == "asis":
                parts.append(output)
            else:
                parts.append(f"```\n{output}\n```")
        return "\n\n".join(parts)

    def render_inline(self, text: str) -> str:
        def _sub(m: re.Match) -> str:
            expr = m.group(1).strip()
            try:
                value = eval(expr, self.namespace)  # noqa: S307
            except Exception as e:  # noqa: BLE001
                raise EngineError(
                    f"Error in inline expression `{expr}`: {e.__class__.__name__}: {e}",
                    label=expr,
                ) from e
            return _inline_value(value)

        return _INLINE_RE.sub(_sub, text)

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

from .codec import write_file
from .engine import PythonRenderer, RenderConfig, Renderer, rendering
from .lint import lint_file
from .model import CodeCell, Notebook

logger = logging.getLogger(__name__)


def refresh_notebook(
    nb: Notebook, renderer: Renderer, config: Optional[RenderConfig] = None
) -> Notebook:
    """Render every cell in order and return a notebook with updated outputs.

    An output equal to the cell's source is stored as None. Engine errors
    propagate unchanged. The renderer's configuration is restored on return,
    whether or not rendering succeeded.

    Only one refresh may run per process at a time: renderers keep
    process-wide state while configured.
    """
    if not nb.body:
        return nb
    config = config or RenderConfig.for_refresh()

    outs: List[Optional[List[str]]] = []
    with rendering(renderer, config):
        for i, cell in nb.cells():
            logger.debug("Rendering cell #%d (%s)", i, cell.type)
            if isinstance(cell, CodeCell):
                res = renderer.render_block(cell.source_text(), cell.options)
            else:
                res = renderer.render_inline(cell.source_text())
            # identical output is not stored twice
            outs.append(None if res == cell.source_text() else res.split("\n"))
    return nb.with_outputs(outs)


def refresh(
    path: Union[str, Path],
    renderer: Optional[Renderer] = None,
    config: Optional[RenderConfig] = None,
) -> Path:
    """Re-render a notebook file and rewrite its outputs in place.

    The file is written only after all cells rendered; an empty body leaves
    it untouched.
    """
    path = Path(path)
    nb = lint_file(path)
    if not nb.body:
        logger.info("Notebook %s has no cells; nothing to refresh", path)
        return path
    nb = refresh_notebook(nb, renderer if renderer is not None else PythonRenderer(), config)
    write_file(path, nb.to_dict())
    logger.info("Refreshed %d cells in %s", len(nb.body), path)
    return path

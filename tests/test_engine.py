import os
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from knitnb.engine import PythonRenderer, RenderConfig, parse_chunk_options, rendering
from knitnb.errors import EngineError


class TestChunkOptions(unittest.TestCase):
    def test_label_and_values(self):
        opts = parse_chunk_options('plot1, echo = FALSE, fig.width=7, results="asis", cap="a, b"')
        self.assertEqual(
            dict(opts),
            {"label": "plot1", "echo": False, "fig.width": 7, "results": "asis", "cap": "a, b"},
        )

    def test_empty(self):
        self.assertEqual(dict(parse_chunk_options("  ")), {})

    def test_bare_token_after_first_ignored(self):
        self.assertEqual(dict(parse_chunk_options("tidy = TRUE, stray")), {"tidy": True})


class TestPythonRenderer(unittest.TestCase):
    def test_echo_and_trailing_expression(self):
        r = PythonRenderer()
        out = r.render_block("x = 2\nx * 21", "")
        self.assertEqual(out, "```python\nx = 2\nx * 21\n```\n\n```\n42\n```")

    def test_namespace_shared_between_chunks(self):
        r = PythonRenderer()
        r.render_block("y = 5", "")
        self.assertEqual(r.render_block("print(y + 1)", "echo=FALSE"), "```\n6\n```")
        self.assertEqual(r.render_inline("y is `py y`, half is `py y / 2`"), "y is 5, half is 2.5")

    def test_eval_include_results(self):
        r = PythonRenderer()
        self.assertEqual(r.render_block("z = 1", "eval=FALSE"), "```python\nz = 1\n```")
        self.assertNotIn("z", r.namespace)
        self.assertEqual(r.render_block("print('hi')", "include=FALSE"), "")
        self.assertEqual(r.render_block("print('**b**')", "echo=FALSE, results='asis'"), "**b**")
        self.assertEqual(r.render_block("print('x')", "echo=FALSE, results='hide'"), "")

    def test_error_raises_engine_error(self):
        r = PythonRenderer()
        with self.assertRaises(EngineError) as cm:
            r.render_block("1 / 0", "div")
        self.assertEqual(cm.exception.label, "div")
        with self.assertRaises(EngineError):
            r.render_inline("`py undefined_name`")

    def test_error_option_records_exception(self):
        r = PythonRenderer()
        out = r.render_block("1 / 0", "echo=FALSE, error=TRUE")
        self.assertIn("ZeroDivisionError", out)

    def test_float_inline_formatting(self):
        r = PythonRenderer()
        r.render_block("import math\nx = 1 / math.sqrt(2 * math.pi)", "")
        self.assertEqual(r.render_inline("`py x`"), "0.3989423")

    def test_width_controls_pretty_printing(self):
        r = PythonRenderer()
        with rendering(r, RenderConfig.for_refresh(width=20)):
            out = r.render_block("list(range(12))", "echo=FALSE")
        self.assertGreater(len(out.splitlines()), 3)

    def test_environment_restored(self):
        os.environ.pop("KNITNB_IN_PROGRESS", None)
        os.environ["MPLBACKEND"] = "TkAgg"
        saved_encoding = os.environ.get("PYTHONIOENCODING")
        try:
            r = PythonRenderer()
            before = r.config
            with rendering(r, RenderConfig.for_refresh()):
                self.assertEqual(os.environ["KNITNB_IN_PROGRESS"], "true")
                self.assertEqual(os.environ["MPLBACKEND"], "Agg")
                self.assertEqual(os.environ["PYTHONIOENCODING"], "utf-8")
            self.assertNotIn("KNITNB_IN_PROGRESS", os.environ)
            self.assertEqual(os.environ["MPLBACKEND"], "TkAgg")
            self.assertEqual(os.environ.get("PYTHONIOENCODING"), saved_encoding)
            self.assertEqual(r.config, before)
        finally:
            os.environ.pop("MPLBACKEND", None)

    def test_subprocess_sees_encoding(self):
        r = PythonRenderer()
        code = (
            "import subprocess, sys\n"
            "subprocess.run([sys.executable, '-c', "
            "'import os; print(os.environ[\"PYTHONIOENCODING\"])'], "
            "capture_output=True, text=True).stdout.strip()"
        )
        with rendering(r, RenderConfig.for_refresh()):
            out = r.render_block(code, "echo=FALSE")
        self.assertEqual(out, "```\n'utf-8'\n```")

    def test_environment_restored_on_error(self):
        os.environ.pop("KNITNB_IN_PROGRESS", None)
        r = PythonRenderer()
        with self.assertRaises(EngineError):
            with rendering(r, RenderConfig.for_refresh()):
                r.render_block("raise ValueError('x')", "")
        self.assertNotIn("KNITNB_IN_PROGRESS", os.environ)
        self.assertFalse(r.config.in_progress)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

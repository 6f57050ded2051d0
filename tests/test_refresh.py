import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from knitnb.codec import read_file, write_file
from knitnb.engine import PythonRenderer, RenderConfig
from knitnb.errors import EngineError, ValidationError
from knitnb.lint import lint_file, validate
from knitnb.refresh import refresh, refresh_notebook

EXAMPLE = Path(__file__).resolve().parents[1] / "examples" / "minimal.knb"


class FakeRenderer:
    """Records calls; renders text upper-cased unless it is 'A', code as '<options>:<code>'."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.config = RenderConfig()
        self.configs = []
        self.fail_on = fail_on

    def configure(self, config):
        previous = self.config
        self.config = config
        self.configs.append(config)
        return previous

    def render_inline(self, text):
        self.calls.append(("inline", text))
        return text if text == "A" else text.upper()

    def render_block(self, code, options):
        self.calls.append(("block", code, options))
        if code == self.fail_on:
            raise EngineError("boom", label=options)
        return f"{options}:{code}"


def make_doc(*cells):
    return {"frontmatter": {"title": "t"}, "body": list(cells)}


class TestRefresh(unittest.TestCase):
    def test_identical_output_stored_as_null(self):
        nb = validate(make_doc({"type": "text", "src": "A", "out": "stale"}))
        r = FakeRenderer()
        out = refresh_notebook(nb, r)
        self.assertIsNone(out.cell(1).out)
        self.assertEqual(r.calls, [("inline", "A")])

    def test_outputs_split_into_lines(self):
        nb = validate(
            make_doc(
                {"type": "text", "src": ["a", "b"], "out": None},
                {"type": "code", "src": {"options": "echo=FALSE", "code": ["x", "y"]}, "out": None},
            )
        )
        r = FakeRenderer()
        out = refresh_notebook(nb, r)
        self.assertEqual(out.cell(1).out, ["A", "B"])
        self.assertEqual(out.cell(2).out, ["echo=FALSE:x", "y"])
        self.assertEqual(r.calls, [("inline", "a\nb"), ("block", "x\ny", "echo=FALSE")])
        # sources untouched
        self.assertEqual(out.cell(2).code, ["x", "y"])

    def test_config_installed_and_restored(self):
        nb = validate(make_doc({"type": "text", "src": "a", "out": None}))
        r = FakeRenderer()
        before = r.config
        refresh_notebook(nb, r)
        self.assertEqual(r.config, before)
        used = r.configs[0]
        self.assertTrue(used.in_progress)
        self.assertTrue(used.suppress_inline_device)
        self.assertFalse(used.progress)
        self.assertEqual(used.encoding, "utf-8")
        self.assertEqual(used.quote_style, "plain")

    def test_engine_error_propagates_and_file_untouched(self):
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "nb.knb"
            write_file(
                p,
                make_doc(
                    {"type": "text", "src": "a", "out": None},
                    {"type": "code", "src": {"options": "", "code": "bad"}, "out": None},
                ),
            )
            original = p.read_bytes()
            r = FakeRenderer(fail_on="bad")
            before = r.config
            with self.assertRaises(EngineError):
                refresh(p, renderer=r)
            self.assertEqual(p.read_bytes(), original)
            self.assertEqual(r.config, before)

    def test_empty_body_is_noop(self):
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "empty.knb"
            p.write_text('{"frontmatter": {"title": "x"}, "body": []}', encoding="utf-8")
            original = p.read_bytes()
            r = FakeRenderer()
            self.assertEqual(refresh(p, renderer=r), p)
            self.assertEqual(r.calls, [])
            self.assertEqual(r.configs, [])
            self.assertEqual(p.read_bytes(), original)

    def test_invalid_file_not_rendered(self):
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "bad.knb"
            p.write_text('{"meta": {}, "content": []}', encoding="utf-8")
            r = FakeRenderer()
            with self.assertRaises(ValidationError):
                refresh(p, renderer=r)
            self.assertEqual(r.calls, [])

    def test_repeated_refresh_is_byte_identical(self):
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "nb.knb"
            p.write_bytes(EXAMPLE.read_bytes())
            refresh(p, renderer=FakeRenderer())
            first = p.read_bytes()
            refresh(p, renderer=FakeRenderer())
            self.assertEqual(p.read_bytes(), first)

    def test_refresh_with_python_engine(self):
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "nb.knb"
            p.write_bytes(EXAMPLE.read_bytes())
            refresh(p, renderer=PythonRenderer())
            tree = read_file(p)
            body = tree["body"]
            self.assertIsNone(body[0]["out"])
            self.assertEqual(body[1]["out"], "")
            self.assertEqual(
                body[2]["out"], ["```python", "print(mean)", "```", "", "```", "2.5", "```"]
            )
            self.assertEqual(body[3]["out"], ["The mean is 2.5.", "That is all."])
            # sources preserved
            self.assertEqual(lint_file(p).body[1].code, lint_file(EXAMPLE).body[1].code)
            first = p.read_bytes()
            refresh(p)
            self.assertEqual(p.read_bytes(), first)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

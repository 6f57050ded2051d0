from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config_file
from .create import create
from .errors import NotebookError
from .export import export
from .fmt import format_file
from .jupyter import export_file_to_ipynb, import_ipynb_file
from .lint import lint_file
from .refresh import refresh


def _cmd_new(args: argparse.Namespace) -> int:
    path = create(args.file, title=args.title, author=args.author, date=args.date)
    print(f"Created: {path}")
    return 0


def _cmd_lint(path: Path) -> int:
    nb = lint_file(path)
    print(f"OK: {len(nb.body)} cells")
    return 0


def _cmd_refresh(path: Path) -> int:
    refresh(path)
    print(f"Refreshed: {path}")
    return 0


def _cmd_export(path: Path, output: str | None, raw: bool) -> int:
    dest = export(path, output, raw=raw)
    print(f"Exported: {dest}")
    return 0


def _cmd_fmt(path: Path) -> int:
    changed = format_file(path)
    print(f"{'Formatted' if changed else 'Unchanged'}: {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="knb", description="knitnb notebook CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    parser.add_argument("--config", help="YAML file of options to load first")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_new = sub.add_parser("new", help="Create a notebook with a sample body")
    p_new.add_argument("file", nargs="?", help="Output .knb file (default: new file in CWD)")
    p_new.add_argument("--title")
    p_new.add_argument("--author")
    p_new.add_argument("--date")

    p_lint = sub.add_parser("lint", help="Validate a .knb file")
    p_lint.add_argument("file")

    p_refresh = sub.add_parser("refresh", help="Render all cells and store outputs")
    p_refresh.add_argument("file")

    p_export = sub.add_parser("export", help="Export to Markdown")
    p_export.add_argument("file")
    p_export.add_argument("-o", "--output", help="Output file (default: .md or .kmd)")
    p_export.add_argument(
        "--raw", action="store_true", help="Export sources with fenced chunks"
    )

    p_fmt = sub.add_parser("fmt", help="Rewrite a .knb file in canonical form")
    p_fmt.add_argument("file")

    p_to = sub.add_parser("to-ipynb", help="Convert .knb to .ipynb")
    p_to.add_argument("file")
    p_to.add_argument("-o", "--output", help="Output .ipynb file (default: stdout)")

    p_from = sub.add_parser("from-ipynb", help="Convert .ipynb to .knb")
    p_from.add_argument("file")
    p_from.add_argument("-o", "--output", help="Output .knb file (default: stdout)")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cmd = args.cmd
    path = Path(args.file) if getattr(args, "file", None) else None
    try:
        if args.config:
            load_config_file(args.config)
        if cmd == "new":
            return _cmd_new(args)
        if cmd == "lint":
            return _cmd_lint(path)
        if cmd == "refresh":
            return _cmd_refresh(path)
        if cmd == "export":
            return _cmd_export(path, args.output, args.raw)
        if cmd == "fmt":
            return _cmd_fmt(path)
        if cmd == "to-ipynb":
            export_file_to_ipynb(str(path), args.output)
            return 0
        if cmd == "from-ipynb":
            import_ipynb_file(str(path), args.output)
            return 0
    except NotebookError as e:
        print(f"ERROR: {e}")
        return 1
    return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

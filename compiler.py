from __future__ import annotations

"""
Compile a Scratch 3 project into a Leopard JavaScript project.

Usage:
python compiler.py game.sb3 out/
python compiler.py game.sb3 game.zip --output-type leopard-zip
python compiler.py game.sb3 out/ --runtime-url ./leopard/index.esm.js --no-autoplay
"""

import argparse
import logging
import zipfile
from pathlib import Path
from typing import Callable
from urllib.parse import urljoin

from assembler import LOCAL_ORIGIN, AssetInfo, ExportOptions, assemble, is_local, url_path
from jsformat import FormattingOptions
from model import Project
from naming import assign_names
from sb3 import load_sb3


LOG = logging.getLogger(__name__)

OUTPUT_TYPES = ("leopard", "leopard-zip")


class OutputError(ValueError):
    """Raised when the requested output type is not supported."""


def compile_project(project: Project, options: ExportOptions | None = None) -> dict[str, str]:
    return assemble(project, options)


def collect_assets(project: Project, options: ExportOptions | None = None) -> dict[str, bytes]:
    """Asset bytes keyed by the output path their resolved URL points at."""
    options = options or ExportOptions()
    names = assign_names(project)
    harness_url = urljoin(LOCAL_ORIGIN, options.harness_url)
    assets: dict[str, bytes] = {}
    for index, target in enumerate(project.targets):
        class_name = names[index].class_name
        items = [("costume", costume) for costume in target.costumes]
        items += [("sound", sound) for sound in target.sounds]
        for kind, item in items:
            if item.data is None:
                continue
            info = AssetInfo(kind, class_name, item.name, item.md5, item.ext)
            url = urljoin(harness_url, options.asset_url_resolver(info))
            if not is_local(url):
                LOG.debug("not writing %s asset %s, it resolves to %s", kind, item.name, url)
                continue
            assets[url_path(url)] = item.data
    return assets


def write_output(
    files: dict[str, str],
    assets: dict[str, bytes],
    output: Path,
    output_type: str = "leopard",
) -> None:
    if output_type == "leopard":
        for name, text in files.items():
            path = output / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        for name, data in assets.items():
            path = output / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
    elif output_type == "leopard-zip":
        output.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, text in files.items():
                zf.writestr(name, text)
            for name, data in assets.items():
                zf.writestr(name, data)
    else:
        raise OutputError(f"Unknown output type '{output_type}', expected one of {', '.join(OUTPUT_TYPES)}")
    LOG.debug("wrote %d files and %d assets to %s", len(files), len(assets), output)


def compile_file(
    input_path: Path,
    output_path: Path,
    output_type: str = "leopard",
    options: ExportOptions | None = None,
) -> dict[str, str]:
    if output_type not in OUTPUT_TYPES:
        raise OutputError(f"Unknown output type '{output_type}', expected one of {', '.join(OUTPUT_TYPES)}")
    options = options or ExportOptions()
    project = load_sb3(input_path)
    files = compile_project(project, options)
    write_output(files, collect_assets(project, options), output_path, output_type)
    return files


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compile a Scratch .sb3 project into Leopard JavaScript")
    parser.add_argument("input", type=Path, help="Path to input .sb3 file")
    parser.add_argument("output", type=Path, help="Output directory, or .zip path with --output-type leopard-zip")
    parser.add_argument("--output-type", choices=OUTPUT_TYPES, default="leopard", help="Write a directory or a zip archive.")
    parser.add_argument("--runtime-url", help="URL of the Leopard ES module imported by the generated code.")
    parser.add_argument("--runtime-style-url", help="URL of the Leopard stylesheet linked from index.html.")
    parser.add_argument("--no-autoplay", action="store_true", help="Do not press the green flag when the page loads.")
    parser.add_argument("--indent", type=int, default=2, help="Spaces per indentation level.")
    parser.add_argument("--tabs", action="store_true", help="Indent with tabs instead of spaces.")
    parser.add_argument("--verbose", action="store_true", help="Log progress and translation warnings.")
    return parser


def _options_from_args(args: argparse.Namespace, on_warning: Callable[[str], None] | None) -> ExportOptions:
    options = ExportOptions(
        autoplay_on_load=not args.no_autoplay,
        formatting_options=FormattingOptions(indent_width=args.indent, use_tabs=args.tabs),
        on_warning=on_warning,
    )
    if args.runtime_url:
        options.runtime_module_url = args.runtime_url
    if args.runtime_style_url:
        options.runtime_style_url = args.runtime_style_url
    return options


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    input_path: Path = args.input
    output_path: Path = args.output

    on_warning = None
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
        on_warning = LOG.warning

    if not input_path.exists() or not input_path.is_file():
        raise FileNotFoundError(f"Input file not found: '{input_path}'")

    compile_file(input_path, output_path, args.output_type, _options_from_args(args, on_warning))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

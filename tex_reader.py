from __future__ import annotations

import argparse
import sys
from pathlib import Path

from config_loader import load_config_or_default
from helper import describe_segment, print_event_gray
from tex_scanner import scan_fragments

BEGIN_DOCUMENT = "\\begin{document}"
END_DOCUMENT = "\\end{document}"


def _check_raw_path(raw: str) -> None:
    if not raw.strip():
        raise ValueError("no source path given")
    if "\x00" in raw:
        raise ValueError("source path contains a NUL byte")
    if ".." in Path(raw).parts:
        raise ValueError(f"'..' is not allowed in a source path: {raw}")


def safe_input_path(raw: str, *, root: Path | None = None) -> Path:
    """
    Turn a command-line source path into an absolute path of a readable file.

    Raises ValueError for malformed paths and for paths that leave `root`,
    FileNotFoundError / IsADirectoryError when nothing readable is there.
    """
    _check_raw_path(raw)
    path = Path(raw).expanduser().resolve(strict=False)

    if root is not None:
        base = root.resolve(strict=True)
        if path != base and base not in path.parents:
            raise ValueError(f"{path} is outside {base}")

    if path.is_dir():
        raise IsADirectoryError(f"{path} is a directory, expected a .tex source")
    if not path.is_file():
        raise FileNotFoundError(f"no such source file: {path}")
    return path


def normalize_newlines(text: str) -> str:
    """Offsets are counted over '\\n'-only text, like the browser editor does."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_preamble(source: str) -> tuple[str, str]:
    """
    Split a full document into (preamble, body).

    The body is the text between \\begin{document} and \\end{document}.
    Sources without \\begin{document} are all body.
    """
    begin = source.find(BEGIN_DOCUMENT)
    if begin == -1:
        return "", source

    preamble = source[:begin].rstrip("\n")
    body_start = begin + len(BEGIN_DOCUMENT)
    if source.startswith("\n", body_start):
        body_start += 1

    end = source.find(END_DOCUMENT, body_start)
    body = source[body_start:] if end == -1 else source[body_start:end]
    return preamble, body.rstrip("\n")


def read_tex_source(path: Path) -> tuple[str, str]:
    """Read a .tex file and return (preamble, body)."""
    text = normalize_newlines(Path(path).read_text(encoding="utf-8"))
    return split_preamble(text)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tex_reader.py",
        description="Print the body of a .tex file, or its fragment stream.",
    )
    parser.add_argument("input", help="LaTeX file to read")
    parser.add_argument(
        "--config",
        default="config.yml",
        help="Path to config.yml (default: config.yml)",
    )
    parser.add_argument(
        "--events",
        action="store_true",
        help="Print one line per scanned segment instead of the body text.",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Optional root directory: input file must be within this directory.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    try:
        cfg = load_config_or_default(Path(args.config))
    except Exception as e:
        print(f"[tex_reader] Failed to load config: {e}", file=sys.stderr)
        return 2

    root_dir: Path | None = None
    if args.root:
        try:
            root_dir = Path(args.root).expanduser().resolve(strict=True)
        except OSError as e:
            print(f"[tex_reader] Invalid --root: {e}", file=sys.stderr)
            return 2

    try:
        input_path = safe_input_path(args.input, root=root_dir)
    except (ValueError, OSError) as e:
        print(f"[tex_reader] Invalid input path: {e}", file=sys.stderr)
        return 2

    try:
        _, body = read_tex_source(input_path)
    except (OSError, UnicodeDecodeError) as e:
        print(f"[tex_reader] Error while reading: {e}", file=sys.stderr)
        return 1

    if not args.events:
        print(body)
        return 0

    for segment in scan_fragments(body, cfg):
        print_event_gray(describe_segment(segment))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

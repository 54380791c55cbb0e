#!/usr/bin/env python3
"""Command line entry point: check the keys in one or more files for duplicates."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Iterator, Sequence
from pathlib import Path

from dupcheck_core.checker import check_keys
from dupcheck_core.config import CheckerConfig, load_config
from dupcheck_core.exceptions import DupcheckError
from dupcheck_core.logging_config import LogContext, add_logging_args, configure_logging
from dupcheck_core.result import DUPLICATE_KEY, IO_ERROR, Err, Result
from dupcheck_core.utils.io import COMPRESSION_SUFFIXES, read_jsonl, read_lines

logger = logging.getLogger("dupcheck_core.cli")

FORMAT_LINES = "lines"
FORMAT_JSONL = "jsonl"

EXIT_OK = 0
EXIT_DUPLICATE = 1
EXIT_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dupcheck",
        description="Check that every key in the input files is unique, using bounded memory.",
    )
    parser.add_argument("inputs", nargs="+", type=Path, help="Input files (.gz and .zst supported).")
    parser.add_argument(
        "--format",
        default=FORMAT_LINES,
        choices=[FORMAT_LINES, FORMAT_JSONL],
        help="Input format: one key per line, or JSON objects per line (default: lines).",
    )
    parser.add_argument(
        "--field",
        default="id",
        help="Record field holding the key in jsonl mode (default: id).",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML checker config.")
    parser.add_argument("--chunk-size", type=int, default=None, help="Keys buffered in memory per chunk.")
    parser.add_argument("--max-streams", type=int, default=None, help="Chunk files merged at once.")
    parser.add_argument("--temp-dir", type=Path, default=None, help="Directory for chunk files.")
    parser.add_argument(
        "--compression",
        default=None,
        choices=sorted(COMPRESSION_SUFFIXES),
        help="Compression for chunk files.",
    )
    parser.add_argument(
        "--disable-check",
        action="store_true",
        help="Accept every key without checking (same as DUPCHECK_DISABLE_CHECK=1).",
    )
    add_logging_args(parser)
    return parser


def iter_keys(paths: Sequence[Path], *, fmt: str, field: str) -> Iterator[str]:
    """Yield keys from ``paths`` in order."""
    for path in paths:
        if fmt == FORMAT_JSONL:
            for record in read_jsonl(path):
                value = record.get(field)
                if value is None:
                    logger.warning("Record in %s has no %r field; skipped", path, field)
                    continue
                yield value if isinstance(value, str) else str(value)
        else:
            yield from read_lines(path)


def _resolve_config(args: argparse.Namespace) -> CheckerConfig:
    config = load_config(args.config)
    if args.disable_check:
        config = config.with_overrides(enabled=False)
    return config.with_overrides(
        chunk_size=args.chunk_size,
        max_streams=args.max_streams,
        temp_dir=args.temp_dir,
        compression=args.compression,
    )


def _exit_code(result: Result) -> int:
    if result.is_err:
        return EXIT_DUPLICATE if result.error == DUPLICATE_KEY else EXIT_ERROR
    return EXIT_OK


def run(args: argparse.Namespace) -> Result:
    try:
        config = _resolve_config(args)
    except DupcheckError as exc:
        return Err(exc.code, exc.message, **exc.context)
    except OSError as exc:
        return Err(IO_ERROR, f"Cannot read config: {exc}")
    keys = iter_keys(args.inputs, fmt=args.format, field=args.field)
    with LogContext(inputs=[str(path) for path in args.inputs], format=args.format):
        try:
            return check_keys(keys, config)
        except UnicodeDecodeError as exc:
            return Err("input_decode_error", str(exc))
        except OSError as exc:
            return Err(IO_ERROR, str(exc))


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=args.log_level, fmt=args.log_format)
    result = run(args)
    sys.stdout.write(json.dumps(result.to_dict(), ensure_ascii=False, default=str) + "\n")
    return _exit_code(result)


if __name__ == "__main__":
    sys.exit(main())

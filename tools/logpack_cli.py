#!/usr/bin/env python3
"""
logpack_cli.py
==============
Compress and restore line-oriented logs with the LogPack line-delta engine.

Commands:
    compress    <input> <output>   Delta-encode lines and wrap them in zstd
    decompress  <input> <output>   Restore the original bytes
    version                        Print build/runtime info
    self-test                      Run built-in roundtrip checks

Usage:
    python tools/logpack_cli.py compress app.log app.log.lpk --verify
    python tools/logpack_cli.py decompress app.log.lpk app.log
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict

from cli_runtime import (
    cleanup_tmp,
    emit_json,
    ensure_api_path,
    file_size,
    resolve_repo_root,
    self_test_core,
    tmp_output_path,
    version_result,
)

REPO_ROOT = resolve_repo_root(__file__)
ensure_api_path(REPO_ROOT)

from logpack_engine import LogPackV1  # noqa: E402
from logpack_primitives import LineTooLongError, LogPackError, MalformedStreamError  # noqa: E402

TOOL = "logpack"


def _error_code_from_exception(exc: BaseException) -> str:
    if isinstance(exc, LineTooLongError):
        return "line_too_long"
    if isinstance(exc, MalformedStreamError):
        return "malformed_stream"
    if isinstance(exc, OSError):
        return "io_error"
    return "failed"


def _fail(args: argparse.Namespace, command: str, code: str, message: str, **extra: Any) -> int:
    if args.json:
        result = {"error_code": code, "error": message}
        result.update(extra)
        emit_json(TOOL, command, False, result)
    else:
        print(f"ERROR: {message}", file=sys.stderr)
    return 1


def _run_atomic(
    src_path: Path,
    dst_path: Path,
    op: Callable[[Any, Any], Dict[str, Any]],
) -> Dict[str, Any]:
    """Run `op(fin, fout)` into a temp file, then move it into place."""
    tmp_path = tmp_output_path(dst_path)
    cleanup_tmp(tmp_path)
    dst_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with src_path.open("rb") as fin, tmp_path.open("wb") as fout:
            stats = op(fin, fout)
        os.replace(tmp_path, dst_path)
    except BaseException:
        cleanup_tmp(tmp_path)
        raise
    return stats


def _paths(args: argparse.Namespace):
    return Path(args.input).expanduser().resolve(), Path(args.output).expanduser().resolve()


def cmd_compress(args: argparse.Namespace) -> int:
    src, dst = _paths(args)
    if not src.is_file():
        return _fail(args, "compress", "input_not_found", f"input not found: {src}")

    engine = LogPackV1(level=args.level)
    try:
        stats = _run_atomic(src, dst, engine.compress_stream)
    except (LogPackError, OSError) as exc:
        return _fail(args, "compress", _error_code_from_exception(exc), str(exc), input=str(src))

    verified = None
    if args.verify:
        with dst.open("rb") as fin:
            verified = engine.verify_stream(fin, stats["input_xxh64"])
        if not verified:
            cleanup_tmp(dst)
            return _fail(args, "compress", "verify_failed",
                         f"roundtrip verification failed for {src}", input=str(src))

    output_bytes = file_size(dst) or 0
    result = {
        "input": str(src),
        "output": str(dst),
        "lines": stats["lines"],
        "input_bytes": stats["input_bytes"],
        "encoded_bytes": stats["encoded_bytes"],
        "output_bytes": output_bytes,
        "ratio": round(stats["input_bytes"] / output_bytes, 2) if output_bytes else 0,
        "input_xxh64": stats["input_xxh64"],
        "verified": verified,
    }
    if args.json:
        emit_json(TOOL, "compress", True, result)
    else:
        print(f"Compressed {result['lines']} lines: {result['input_bytes']} -> {output_bytes} bytes "
              f"(ratio {result['ratio']})")
    return 0


def cmd_decompress(args: argparse.Namespace) -> int:
    src, dst = _paths(args)
    if not src.is_file():
        return _fail(args, "decompress", "input_not_found", f"input not found: {src}")

    engine = LogPackV1()
    try:
        stats = _run_atomic(src, dst, engine.decompress_stream)
    except (LogPackError, OSError) as exc:
        return _fail(args, "decompress", _error_code_from_exception(exc), str(exc), input=str(src))

    result = {
        "input": str(src),
        "output": str(dst),
        "lines": stats["lines"],
        "input_bytes": file_size(src) or 0,
        "output_bytes": stats["output_bytes"],
        "output_xxh64": stats["output_xxh64"],
    }
    if args.json:
        emit_json(TOOL, "decompress", True, result)
    else:
        print(f"Restored {result['lines']} lines ({result['output_bytes']} bytes) to {dst}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    result = version_result(tool=TOOL, repo_root=REPO_ROOT)
    if args.json:
        emit_json(TOOL, "version", True, result)
    else:
        build = result["build"]
        print(f"logpack {build['logpack_version']} (python {build['python']}, "
              f"zstandard {build['components']['zstandard']})")
    return 0


def cmd_self_test(args: argparse.Namespace) -> int:
    result = self_test_core(tool=TOOL, repo_root=REPO_ROOT)
    ok = bool(result["summary"]["ok"])
    if args.json:
        emit_json(TOOL, "self-test", ok, result)
    else:
        for check in result["checks"]:
            print(f"[{'PASS' if check['ok'] else 'FAIL'}] {check['name']}")
    return 0 if ok else 1


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="logpack",
        description="Lossless line-delta compression for text logs",
    )
    sub = ap.add_subparsers(dest="subcmd", required=True)

    p_comp = sub.add_parser("compress", help="Compress a log file")
    p_comp.add_argument("input", help="Log file to compress")
    p_comp.add_argument("output", help="Destination container")
    p_comp.add_argument("--level", type=int, default=None, help="zstd level (default: LOGPACK_LEVEL or 19)")
    p_comp.add_argument("--verify", action="store_true", help="Decode the result and compare hashes")
    p_comp.add_argument("--json", action="store_true")
    p_comp.set_defaults(fn=cmd_compress)

    p_dec = sub.add_parser("decompress", help="Restore a compressed log")
    p_dec.add_argument("input", help="LogPack container")
    p_dec.add_argument("output", help="Destination for restored bytes")
    p_dec.add_argument("--json", action="store_true")
    p_dec.set_defaults(fn=cmd_decompress)

    p_ver = sub.add_parser("version", help="Print build info")
    p_ver.add_argument("--json", action="store_true")
    p_ver.set_defaults(fn=cmd_version)

    p_self = sub.add_parser("self-test", help="Run built-in roundtrip checks")
    p_self.add_argument("--json", action="store_true")
    p_self.set_defaults(fn=cmd_self_test)

    return ap


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.fn(args))


if __name__ == "__main__":
    raise SystemExit(main())

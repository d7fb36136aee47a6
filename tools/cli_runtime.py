#!/usr/bin/env python3
"""Shared runtime helpers for LogPack CLI wrappers."""

from __future__ import annotations

import hashlib
import io
import json
import os
import platform
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

CLI_SCHEMA = "logpack.cli.v1"


def resolve_repo_root(script_file: str) -> Path:
    return Path(script_file).resolve().parent.parent


def ensure_api_path(repo_root: Path) -> None:
    api_dir = str(repo_root / "api")
    if api_dir not in sys.path:
        sys.path.insert(0, api_dir)


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def emit_json(tool: str, command: str, ok: bool, result: Dict[str, Any]) -> None:
    payload = {
        "schema_version": CLI_SCHEMA,
        "tool": tool,
        "command": command,
        "ok": ok,
        "generated_at_utc": utc_now(),
        "result": result,
    }
    print(json.dumps(payload, indent=2))


def get_build_info(tool: str, repo_root: Path) -> Dict[str, Any]:
    try:
        import zstandard as zstd  # type: ignore
        zstd_ver = zstd.__version__
    except Exception:
        zstd_ver = None
    try:
        import xxhash  # type: ignore
        xxhash_ver = getattr(xxhash, "VERSION", None)
    except Exception:
        xxhash_ver = None

    return {
        "tool": tool,
        "logpack_version": os.environ.get("LOGPACK_BUILD_VERSION", "dev"),
        "build_commit": os.environ.get("GITHUB_SHA") or os.environ.get("LOGPACK_BUILD_COMMIT") or "",
        "platform": platform.platform(),
        "python": platform.python_version(),
        "repo_root": str(repo_root),
        "components": {
            "zstandard": zstd_ver,
            "xxhash": xxhash_ver,
        },
    }


def _check(name: str, ok: bool, severity: str = "error", **extra: Any) -> Dict[str, Any]:
    row = {"name": name, "ok": bool(ok), "severity": severity}
    row.update(extra)
    return row


def summarize_checks(checks: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    checks = list(checks)
    errors = sum(1 for c in checks if not c.get("ok") and c.get("severity") == "error")
    warnings = sum(1 for c in checks if not c.get("ok") and c.get("severity") == "warning")
    return {
        "checks_total": len(checks),
        "checks_passed": sum(1 for c in checks if c.get("ok")),
        "errors": errors,
        "warnings": warnings,
        "ok": errors == 0,
    }


SELF_TEST_LINES = (
    b"2026-01-01T00:00:00Z INFO worker-1 started job=0001\n",
    b"2026-01-01T00:00:01Z INFO worker-1 finished job=0001\r\n",
    b"2026-01-01T00:00:01Z WARN worker-2 \x7f escaped control byte\n",
    b"x" * 300 + b"\n",
    b"x" * 300 + b"y\n",
    b"trailing fragment without terminator",
)


def self_test_core(*, tool: str, repo_root: Path) -> Dict[str, Any]:
    checks: List[Dict[str, Any]] = []
    started = time.time()
    payload = b"".join(SELF_TEST_LINES) + os.urandom(16).hex().encode("ascii")

    # zstd roundtrip
    try:
        import zstandard as zstd  # type: ignore
        cctx = zstd.ZstdCompressor(level=3)
        dctx = zstd.ZstdDecompressor()
        comp = cctx.compress(payload)
        out = dctx.decompress(comp)
        checks.append(_check("zstd_roundtrip", out == payload, comp_bytes=len(comp)))
    except Exception as exc:
        checks.append(_check("zstd_roundtrip", False, detail=str(exc)))

    ensure_api_path(repo_root)

    # line delta roundtrip, no container
    try:
        from logpack_delta import DeltaDecoder, DeltaEncoder  # type: ignore
        from logpack_lines import split_lines  # type: ignore

        encoder, decoder = DeltaEncoder(), DeltaDecoder()
        restored = bytearray()
        for line in split_lines(io.BytesIO(payload)):
            restored += decoder.decode(encoder.encode(line))
        checks.append(_check("line_delta_roundtrip", bytes(restored) == payload, lines=encoder.lines))
    except Exception as exc:
        checks.append(_check("line_delta_roundtrip", False, detail=str(exc)))

    # full container roundtrip with verification
    try:
        from logpack_engine import LogPackV1  # type: ignore

        engine = LogPackV1(level=3)
        src, blob = io.BytesIO(payload), io.BytesIO()
        stats = engine.compress_stream(src, blob)
        ok = engine.decompress(blob.getvalue()) == payload
        checks.append(_check("container_roundtrip", ok, comp_bytes=len(blob.getvalue())))
        checks.append(_check("container_verify", engine.verify(blob.getvalue(), stats["input_xxh64"])))
    except Exception as exc:
        checks.append(_check("container_roundtrip", False, detail=str(exc)))

    return {
        "version": "logpack-cli-self-test-v1",
        "build": get_build_info(tool, repo_root),
        "summary": summarize_checks(checks),
        "checks": checks,
        "duration_seconds": round(time.time() - started, 3),
        "fingerprint_sha256": hashlib.sha256(payload).hexdigest(),
    }


def version_result(*, tool: str, repo_root: Path) -> Dict[str, Any]:
    return {
        "version": "logpack-cli-version-v1",
        "build": get_build_info(tool, repo_root),
    }


def tmp_output_path(target_path: Path) -> Path:
    return target_path.parent / f"{target_path.name}.tmp.logpack"


def cleanup_tmp(path: Path) -> None:
    try:
        if path.exists():
            path.unlink()
    except OSError:
        pass


def file_size(path: Path) -> Optional[int]:
    try:
        return path.stat().st_size
    except OSError:
        return None

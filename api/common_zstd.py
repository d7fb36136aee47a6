#!/usr/bin/env python3
"""
Shared zstd factory for the LogPack container.

The delta stream is always wrapped in a single zstd frame written and read
in streaming mode, so compressor settings live here rather than in each
caller.
"""

from __future__ import annotations

import os
from typing import Optional

import zstandard as zstd

DEFAULT_LEVEL = 19
LDM_MIN_LEVEL = 9


def default_level() -> int:
    """Level from LOGPACK_LEVEL, clamped to zstd's range."""
    raw = os.environ.get("LOGPACK_LEVEL", "").strip()
    if not raw:
        return DEFAULT_LEVEL
    try:
        level = int(raw)
    except ValueError:
        return DEFAULT_LEVEL
    return max(1, min(zstd.MAX_COMPRESSION_LEVEL, level))


def make_cctx(
    *,
    level: Optional[int] = None,
    threads: Optional[int] = -1,
    write_checksum: bool = True,
    text_like: bool = True,
    enable_ldm: Optional[bool] = None,
):
    """
    Build a streaming zstd compressor.

    - `threads=-1` means "all cores"; 0/None collapse to the same default.
    - Text-like streams at level >= 9 get long-distance matching unless
      LOGPACK_DISABLE_LDM=1.
    - Content size is never written: the stream length is unknown up front.
    """
    eff_level = default_level() if level is None else int(level)
    eff_threads = -1 if threads in (None, 0) else int(threads)

    want_ldm = text_like and eff_level >= LDM_MIN_LEVEL
    if enable_ldm is not None:
        want_ldm = bool(enable_ldm)
    if os.getenv("LOGPACK_DISABLE_LDM", "").strip() == "1":
        want_ldm = False

    if want_ldm:
        params = zstd.ZstdCompressionParameters.from_level(
            eff_level,
            enable_ldm=True,
            threads=eff_threads,
            write_checksum=int(write_checksum),
            write_content_size=0,
        )
        return zstd.ZstdCompressor(compression_params=params)

    return zstd.ZstdCompressor(
        level=eff_level,
        threads=eff_threads,
        write_content_size=False,
        write_checksum=write_checksum,
    )


def make_dctx():
    return zstd.ZstdDecompressor()

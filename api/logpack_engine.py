#!/usr/bin/env python3
"""
LogPackV1 - [LINE DELTA v1]
===========================
TARGET: 100% Lossless, line-oriented text logs.
TECH:   Previous-line delta (copy/literal instructions) + streaming zstd.

Container layout:
    b"LPK\\x01" + one zstd frame holding the concatenated instruction streams

Lines are never length-prefixed inside the frame. Every encoded line still
ends with LF (terminators are always literals, copy lengths are >= 130 and
the control byte is 0x7F), so the decoder recovers line boundaries by
splitting the decompressed stream the same way the encoder split its input.
"""

from __future__ import annotations

import io
import sys
from typing import Any, BinaryIO, Dict, Optional

import xxhash
import zstandard as zstd

from common_zstd import make_cctx, make_dctx
from logpack_delta import DeltaDecoder, DeltaEncoder
from logpack_lines import split_lines
from logpack_primitives import (
    DEFAULT_CONFIG,
    PROTOCOL_ID,
    DeltaConfig,
    LineTooLongError,
    LogPackError,
    MalformedStreamError,
)


class _DiscardSink:
    def write(self, data) -> int:
        return len(data)


class _FrameReader:
    """read() over one zstd frame; running out of input before the frame end is an error."""

    def __init__(self, dobj, src: BinaryIO, read_size: int = 1 << 16):
        self._dobj = dobj
        self._src = src
        self._read_size = read_size
        self._buffer = bytearray()

    def read(self, size: int = -1) -> bytes:
        while not self._buffer and not self._dobj.eof:
            chunk = self._src.read(self._read_size)
            if not chunk:
                raise MalformedStreamError("truncated zstd frame")
            self._buffer += self._dobj.decompress(chunk)
        n = len(self._buffer) if size < 0 else size
        out = bytes(self._buffer[:n])
        del self._buffer[:n]
        return out


class LogPackV1:
    def __init__(
        self,
        level: Optional[int] = None,
        threads: Optional[int] = -1,
        config: DeltaConfig = DEFAULT_CONFIG,
    ):
        self.config = config
        self.cctx = make_cctx(level=level, threads=threads, text_like=True)
        self.dctx = make_dctx()

    def compress_stream(self, src: BinaryIO, dst: BinaryIO) -> Dict[str, Any]:
        encoder = DeltaEncoder(self.config)
        digest = xxhash.xxh64()
        input_bytes = 0
        encoded_bytes = 0

        dst.write(PROTOCOL_ID)
        with self.cctx.stream_writer(dst, closefd=False) as writer:
            for line in split_lines(src, self.config.capacity):
                digest.update(line)
                input_bytes += len(line)
                encoded = encoder.encode(line)
                encoded_bytes += len(encoded)
                writer.write(encoded)

        return {
            "lines": encoder.lines,
            "input_bytes": input_bytes,
            "encoded_bytes": encoded_bytes,
            "input_xxh64": digest.hexdigest(),
        }

    def decompress_stream(self, src: BinaryIO, dst: BinaryIO) -> Dict[str, Any]:
        magic = src.read(len(PROTOCOL_ID))
        if magic != PROTOCOL_ID:
            raise MalformedStreamError(f"not a LogPack container (magic {bytes(magic)!r})")

        decoder = DeltaDecoder(self.config)
        digest = xxhash.xxh64()
        output_bytes = 0

        reader = _FrameReader(self.dctx.decompressobj(), src)
        try:
            for encoded in split_lines(reader, self.config.encoded_capacity):
                line = decoder.decode(encoded)
                digest.update(line)
                output_bytes += len(line)
                dst.write(line)
        except zstd.ZstdError as exc:
            raise MalformedStreamError(f"zstd frame rejected: {exc}", decoder.lines + 1) from exc
        except LineTooLongError as exc:
            raise MalformedStreamError(
                f"encoded line of at least {exc.length} bytes exceeds {exc.capacity}",
                decoder.lines + 1,
            ) from exc

        return {
            "lines": decoder.lines,
            "output_bytes": output_bytes,
            "output_xxh64": digest.hexdigest(),
        }

    def compress(self, raw: bytes) -> bytes:
        out = io.BytesIO()
        self.compress_stream(io.BytesIO(raw), out)
        return out.getvalue()

    def decompress(self, blob: bytes) -> bytes:
        out = io.BytesIO()
        self.decompress_stream(io.BytesIO(blob), out)
        return out.getvalue()

    def verify_stream(self, src: BinaryIO, expected_xxh64: str) -> bool:
        """Mandatory round-trip check: decode without writing and compare hashes."""
        try:
            stats = self.decompress_stream(src, _DiscardSink())
        except LogPackError:
            return False
        return stats["output_xxh64"] == expected_xxh64

    def verify(self, blob: bytes, expected_xxh64: str) -> bool:
        return self.verify_stream(io.BytesIO(blob), expected_xxh64)


if __name__ == "__main__":
    if len(sys.argv) < 4 or sys.argv[1] not in ("compress", "decompress"):
        print("Usage: python logpack_engine.py [compress|decompress] <in> <out>")
        sys.exit(1)
    codec = LogPackV1()
    with open(sys.argv[2], "rb") as fin, open(sys.argv[3], "wb") as fout:
        if sys.argv[1] == "compress":
            codec.compress_stream(fin, fout)
        else:
            codec.decompress_stream(fin, fout)

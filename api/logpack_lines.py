#!/usr/bin/env python3
"""
LogPack Line Splitter
=====================
Turns a readable byte source into a lazy sequence of lines. A line ends at
the first LF (inclusive) or at end of source. Lines over the working-buffer
capacity are rejected with LineTooLongError instead of being truncated.
"""

from __future__ import annotations

from typing import BinaryIO, Iterator

from logpack_primitives import DEFAULT_CAPACITY, LineTooLongError

DEFAULT_READ_SIZE = 1 << 16


def split_lines(
    source: BinaryIO,
    capacity: int = DEFAULT_CAPACITY,
    read_size: int = DEFAULT_READ_SIZE,
) -> Iterator[bytes]:
    """
    Yield lines from `source` in order, terminators included.

    Single pass: the source is only read, never rewound. A final fragment
    without LF is yielded as-is; an empty source yields nothing.
    """
    read_size = max(1, int(read_size))
    pending = bytearray()
    line_number = 1

    while True:
        chunk = source.read(read_size)
        if not chunk:
            break
        start = 0
        while start < len(chunk):
            nl = chunk.find(b"\n", start)
            end = len(chunk) if nl < 0 else nl + 1
            pending += chunk[start:end]
            if len(pending) > capacity:
                raise LineTooLongError(line_number, len(pending), capacity)
            start = end
            if nl < 0:
                break
            yield bytes(pending)
            pending.clear()
            line_number += 1

    if pending:
        yield bytes(pending)

#!/usr/bin/env python3
"""
LogPack Line Delta Codec
========================
Rewrites each line as instructions against the line before it.

Instruction stream (one per non-first line):
  <byte>                 literal byte (any value except the control byte)
  CTRL CTRL              literal control byte
  CTRL (COPY_BASE + n)   copy n bytes from the previous line, 2 <= n <= 127

Both sides keep a read cursor into the previous line that advances by one
per literal and by n per copy, so copies are always aligned at the same
column as the current output position.
"""

from __future__ import annotations

from typing import Optional

from logpack_primitives import (
    DEFAULT_CONFIG,
    TERMINATORS,
    DeltaConfig,
    LineTooLongError,
    MalformedStreamError,
)


def _emit_literal(out: bytearray, byte: int, control: int) -> None:
    if byte == control:
        out.append(control)
    out.append(byte)


def _flush_run(out: bytearray, current: bytes, end: int, run: int, config: DeltaConfig) -> None:
    if run >= config.min_run:
        out.append(config.control_byte)
        out.append(config.copy_base + run)
    elif run:
        # Runs shorter than min_run cost more as a copy than as literals.
        for byte in current[end - run:end]:
            _emit_literal(out, byte, config.control_byte)


def encode_first(line: bytes, config: DeltaConfig = DEFAULT_CONFIG) -> bytes:
    return bytes(line)


def encode_next(previous: bytes, current: bytes, config: DeltaConfig = DEFAULT_CONFIG) -> bytes:
    """Encode `current` as literals and copies against `previous`."""
    control = config.control_byte
    out = bytearray()
    common = min(len(previous), len(current))
    run = 0

    for j in range(common):
        byte = current[j]
        if byte == previous[j] and byte not in TERMINATORS:
            run += 1
            if run == config.max_run:
                _flush_run(out, current, j + 1, run, config)
                run = 0
            continue
        _flush_run(out, current, j, run, config)
        run = 0
        _emit_literal(out, byte, control)

    _flush_run(out, current, common, run, config)

    for byte in current[common:]:
        _emit_literal(out, byte, control)
    return bytes(out)


def decode_first(data: bytes, config: DeltaConfig = DEFAULT_CONFIG) -> bytes:
    return bytes(data)


def decode_next(previous: bytes, data: bytes, config: DeltaConfig = DEFAULT_CONFIG) -> bytes:
    """Replay the instructions in `data` against `previous`."""
    control = config.control_byte
    copy_base = config.copy_base
    out = bytearray()
    cursor = 0
    escaped = False

    for byte in data:
        if not escaped:
            if byte == control:
                escaped = True
            else:
                out.append(byte)
                cursor += 1
            continue

        escaped = False
        if byte == control:
            out.append(byte)
            cursor += 1
        elif byte > copy_base:
            end = cursor + (byte - copy_base)
            if end > len(previous):
                raise MalformedStreamError(
                    f"copy of {byte - copy_base} bytes at offset {cursor} "
                    f"overruns previous line of {len(previous)} bytes"
                )
            out += previous[cursor:end]
            cursor = end
        else:
            raise MalformedStreamError(f"control byte followed by invalid byte 0x{byte:02x}")

    if escaped:
        raise MalformedStreamError("instruction stream ends after a bare control byte")
    return bytes(out)


class DeltaEncoder:
    """Encodes one stream of lines; owns the previous-line buffer."""

    def __init__(self, config: DeltaConfig = DEFAULT_CONFIG):
        self.config = config
        self._previous: Optional[bytes] = None
        self.lines = 0

    @property
    def previous(self) -> Optional[bytes]:
        return self._previous

    def reset(self) -> None:
        self._previous = None
        self.lines = 0

    def encode(self, line: bytes) -> bytes:
        line = bytes(line)
        if len(line) > self.config.capacity:
            raise LineTooLongError(self.lines + 1, len(line), self.config.capacity)
        if self._previous is None:
            encoded = encode_first(line, self.config)
        else:
            encoded = encode_next(self._previous, line, self.config)
        self._previous = line
        self.lines += 1
        return encoded


class DeltaDecoder:
    """Decodes one stream of instruction runs; owns the reconstructed previous line."""

    def __init__(self, config: DeltaConfig = DEFAULT_CONFIG):
        self.config = config
        self._previous: Optional[bytes] = None
        self.lines = 0

    @property
    def previous(self) -> Optional[bytes]:
        return self._previous

    def reset(self) -> None:
        self._previous = None
        self.lines = 0

    def decode(self, data: bytes) -> bytes:
        try:
            if self._previous is None:
                line = decode_first(data, self.config)
            else:
                line = decode_next(self._previous, data, self.config)
        except MalformedStreamError as exc:
            raise MalformedStreamError(exc.detail, self.lines + 1) from None
        if len(line) > self.config.capacity:
            raise MalformedStreamError(
                f"reconstructed line of {len(line)} bytes exceeds capacity {self.config.capacity}",
                self.lines + 1,
            )
        self._previous = line
        self.lines += 1
        return line

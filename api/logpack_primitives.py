#!/usr/bin/env python3
"""
LogPack Shared Primitives
=========================
Canonical definitions shared by the splitter, the delta codec and the engine:
  - CONTROL_BYTE / COPY_BASE / MAX_RUN  (instruction format constants)
  - LF / CR / TERMINATORS               (line boundary bytes)
  - DeltaConfig                         (one object both codec sides agree on)
  - LogPackError and subclasses         (error taxonomy)
  - PROTOCOL_ID / ZSTD_MAGIC            (container magic bytes)
"""

from __future__ import annotations

from dataclasses import dataclass


PROTOCOL_ID = b"LPK\x01"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

LF = 0x0A
CR = 0x0D
TERMINATORS = frozenset((LF, CR))

CONTROL_BYTE = 0x7F
COPY_BASE = 128
MIN_RUN = 2
MAX_RUN = 127
DEFAULT_CAPACITY = 8192 * 2


class LogPackError(RuntimeError):
    ...


class LineTooLongError(LogPackError):
    def __init__(self, line_number: int, length: int, capacity: int):
        self.line_number = int(line_number)
        self.length = int(length)
        self.capacity = int(capacity)
        super().__init__(
            "LINE_TOO_LONG: "
            f"line {self.line_number} has at least {self.length} bytes, "
            f"working buffer holds {self.capacity}."
        )


class MalformedStreamError(LogPackError):
    def __init__(self, detail: str, line_number: int = 0):
        self.detail = detail
        self.line_number = int(line_number)
        where = f" (line {self.line_number})" if self.line_number else ""
        super().__init__(f"MALFORMED_STREAM: {detail}{where}")


@dataclass(frozen=True)
class DeltaConfig:
    """Instruction-format constants passed to both encoder and decoder."""

    control_byte: int = CONTROL_BYTE
    copy_base: int = COPY_BASE
    min_run: int = MIN_RUN
    max_run: int = MAX_RUN
    capacity: int = DEFAULT_CAPACITY

    def __post_init__(self):
        if not 0 <= self.control_byte <= 0xFF:
            raise ValueError("control_byte must fit in one byte")
        if self.control_byte in TERMINATORS:
            raise ValueError("control_byte cannot be a line terminator")
        # A doubled control byte must never read as a copy command.
        if self.control_byte >= self.copy_base:
            raise ValueError("control_byte must be below copy_base")
        if self.min_run < 2:
            raise ValueError("min_run must be at least 2")
        if self.max_run < self.min_run or self.copy_base + self.max_run > 0xFF:
            raise ValueError("copy_base + max_run must fit in one byte")
        if self.capacity < 1:
            raise ValueError("capacity must be positive")

    @property
    def encoded_capacity(self) -> int:
        # Worst case: every literal is the escaped control byte.
        return self.capacity * 2


DEFAULT_CONFIG = DeltaConfig()

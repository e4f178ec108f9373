"""Parsing of the kernel's extra boot information and the records found in it."""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass

_HEADER_LEN = 16


class BootInfoId(enum.IntEnum):
    """Identifiers of extra boot-information chunks."""

    PADDING = 0
    X86_VBE = 1
    X86_MBMMAP = 2
    X86_ACPI_RSDP = 3
    X86_FRAMEBUFFER = 4
    X86_TSC_FREQ = 5
    FDT = 6


def iter_bootinfo_entries(extra: bytes) -> Iterator[tuple[int, bytes]]:
    """Yield ``(id, data)`` for each chunk, stopping at a truncated one."""
    view = memoryview(extra)
    while len(view) >= _HEADER_LEN:
        chunk_id = int.from_bytes(view[:8], "little")
        length = int.from_bytes(view[8:16], "little")
        if length < _HEADER_LEN or length > len(view):
            break
        yield chunk_id, bytes(view[_HEADER_LEN:length])
        view = view[length:]


def find_bootinfo_entry(extra: bytes, requested_id: int) -> bytes | None:
    """Data of the first chunk with ``requested_id``, or None."""
    return next((data for cid, data in iter_bootinfo_entries(extra) if cid == requested_id), None)


def tsc_freq_mhz_from_bootinfo(extra: bytes) -> int:
    data = find_bootinfo_entry(extra, BootInfoId.X86_TSC_FREQ)
    if data is None:
        raise LookupError("Failed to find TSC frequency in bootinfo")
    if len(data) != 4:
        raise ValueError(f"TSC frequency entry has {len(data)} bytes, expected 4")
    return int.from_bytes(data, "little")


@dataclass(frozen=True)
class Rsdp:
    rsdt_address: int
    revision: int


def parse_rsdp(data: bytes) -> Rsdp:
    """Read the RSDT address and revision from an ACPI RSDP record."""
    if len(data) < 20:
        raise ValueError("RSDP record too short")
    return Rsdp(rsdt_address=int.from_bytes(data[16:20], "little"), revision=data[15])


def micros_from_cycles(cycles: int, tsc_freq_mhz: int) -> int:
    """Convert a TSC cycle count into whole microseconds."""
    if tsc_freq_mhz <= 0:
        raise ValueError("TSC frequency must be positive")
    return cycles // tsc_freq_mhz
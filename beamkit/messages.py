"""Requests sent to the hypervisor control channel and the replies it gives."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

U32_MAX = 0xFFFFFFFF
# An index of U32_MAX addresses the virtual machine that sent the request.
SELF_INDEX = U32_MAX


def _check_u32(name: str, value: int) -> None:
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"{name} out of 32-bit range: {value}")


class VmPagingMode(enum.Enum):
    """How guest memory is translated."""

    PV = "pv"
    EPT_LARGE_PAGE = "ept_large_page"
    EPT_SMALL_PAGE = "ept_small_page"


def parse_paging_mode(name: str) -> VmPagingMode:
    """Paging mode for its command-line name; ValueError if unknown."""
    try:
        return VmPagingMode(name)
    except ValueError:
        raise ValueError(f"unknown mode: {name!r}") from None


@dataclass(frozen=True)
class Reboot:
    """Restart the virtual machine at ``index``."""

    index: int

    def __post_init__(self) -> None:
        _check_u32("index", self.index)


@dataclass(frozen=True)
class Kill:
    """Stop the virtual machine at ``index`` for good."""

    index: int

    def __post_init__(self) -> None:
        _check_u32("index", self.index)


@dataclass(frozen=True)
class IpcBench:
    """Measure round-trip IPC latency."""


@dataclass(frozen=True)
class SetMode:
    """Choose the paging mode used when the machine next starts."""

    index: int
    mode: VmPagingMode

    def __post_init__(self) -> None:
        _check_u32("index", self.index)
        if not isinstance(self.mode, VmPagingMode):
            raise TypeError("mode must be a VmPagingMode")


@dataclass(frozen=True)
class SetAffinity:
    """Choose the CPU the machine runs on when it next starts."""

    index: int
    affinity: int

    def __post_init__(self) -> None:
        _check_u32("index", self.index)
        _check_u32("affinity", self.affinity)


@dataclass(frozen=True)
class GpaLargeUnmap:
    """Give back the large page of guest memory at physical address ``paddr``."""

    paddr: int

    def __post_init__(self) -> None:
        if not 0 <= self.paddr < 1 << 64:
            raise ValueError(f"paddr out of 64-bit range: {self.paddr}")


@dataclass(frozen=True)
class Reply:
    """Answer to a request: label 1 means success; registers carry results."""

    label: int = 0
    registers: tuple[int, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.label == 1

    @property
    def length(self) -> int:
        return len(self.registers)
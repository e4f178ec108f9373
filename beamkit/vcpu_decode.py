"""Decoding of VM-exit qualifications for control-register and I/O-port exits."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .vcpu import VcpuFault, VcpuState, VcpuStateMask

_GPR_TABLE: tuple[tuple[str, VcpuStateMask], ...] = (
    ("eax", VcpuStateMask.EAX),
    ("ecx", VcpuStateMask.ECX),
    ("edx", VcpuStateMask.EDX),
    ("ebx", VcpuStateMask.EBX),
    ("esp", VcpuStateMask.ESP),
    ("ebp", VcpuStateMask.EBP),
    ("esi", VcpuStateMask.ESI),
    ("edi", VcpuStateMask.EDI),
    ("r8", VcpuStateMask.R8),
    ("r9", VcpuStateMask.R9),
    ("r10", VcpuStateMask.R10),
    ("r11", VcpuStateMask.R11),
    ("r12", VcpuStateMask.R12),
    ("r13", VcpuStateMask.R13),
    ("r14", VcpuStateMask.R14),
    ("r15", VcpuStateMask.R15),
)

_BITNESS = {0: 8, 1: 16, 3: 32}


@dataclass(frozen=True)
class CrAccess:
    cr_idx: int
    access_type: int
    gpr: int


class IoDirection(enum.Enum):
    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class IoPortAccess:
    bitness: int
    direction: IoDirection
    str_ins: bool
    rep_prefixed: bool
    port_number: int


def decode_control_register_access(fault: VcpuFault) -> CrAccess:
    q = fault.qualification
    return CrAccess(cr_idx=q & 0b1111, access_type=(q >> 4) & 0b11, gpr=(q >> 8) & 0b1111)


def cr_access_register(acc: CrAccess) -> tuple[str, VcpuStateMask]:
    """Name of the :class:`VcpuState` field and mask bit addressed by ``acc``."""
    if not 0 <= acc.gpr < len(_GPR_TABLE):
        raise ValueError(f"invalid gpr: {acc.gpr}")
    return _GPR_TABLE[acc.gpr]


def read_cr_access_register(state: VcpuState, acc: CrAccess) -> tuple[int, VcpuStateMask]:
    name, mask = cr_access_register(acc)
    return getattr(state, name), mask


def write_cr_access_register(state: VcpuState, acc: CrAccess, value: int) -> VcpuStateMask:
    name, mask = cr_access_register(acc)
    setattr(state, name, value)
    return mask


def decode_io_port_access(fault: VcpuFault) -> IoPortAccess:
    q = fault.qualification
    direction = IoDirection.IN if (q >> 3) & 1 else IoDirection.OUT
    try:
        bitness = _BITNESS[q & 0b11]
    except KeyError:
        raise ValueError("invalid bitness in IO port access") from None
    return IoPortAccess(
        bitness=bitness,
        direction=direction,
        str_ins=bool((q >> 4) & 1),
        rep_prefixed=bool((q >> 5) & 1),
        port_number=(q >> 16) & 0xFFFF,
    )
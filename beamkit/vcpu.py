"""Virtual CPU state, fault records and the abstract vCPU interface."""

from __future__ import annotations

import enum
import functools
import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


class VcpuStateMask(enum.IntFlag):
    """Which fields of a :class:`VcpuState` hold valid values."""

    EIP = 1 << 0
    ESP = 1 << 1
    RFLAGS = 1 << 2
    EAX = 1 << 3
    EBX = 1 << 4
    ECX = 1 << 5
    EDX = 1 << 6
    ESI = 1 << 7
    EDI = 1 << 8
    EBP = 1 << 9
    R8 = 1 << 10
    R9 = 1 << 11
    R10 = 1 << 12
    R11 = 1 << 13
    R12 = 1 << 14
    R13 = 1 << 15
    R14 = 1 << 16
    R15 = 1 << 17
    CR0 = 1 << 18
    CR3 = 1 << 19
    CR4 = 1 << 20
    CS_ACCESS_RIGHTS = 1 << 21
    ACTIVITY_STATE = 1 << 22

    @classmethod
    def _all_value(cls) -> int:
        return functools.reduce(operator.or_, (int(m) for m in cls), 0)

    @classmethod
    def all_writable(cls) -> "VcpuStateMask":
        excluded = int(cls.CS_ACCESS_RIGHTS) | int(cls.ACTIVITY_STATE)
        return cls(cls._all_value() & ~excluded)

    @classmethod
    def reg_state(cls) -> "VcpuStateMask":
        return cls.all_writable()


@dataclass
class VcpuFault:
    reason: int = 0
    qualification: int = 0
    instruction_len: int = 0
    guest_physical: int = 0
    guest_int: int = 0


@dataclass
class VcpuState:
    valid: VcpuStateMask = VcpuStateMask(0)

    eip: int = 0
    esp: int = 0
    rflags: int = 0
    eax: int = 0
    ebx: int = 0
    ecx: int = 0
    edx: int = 0
    esi: int = 0
    edi: int = 0
    ebp: int = 0
    r8: int = 0
    r9: int = 0
    r10: int = 0
    r11: int = 0
    r12: int = 0
    r13: int = 0
    r14: int = 0
    r15: int = 0

    cr0: int = 0
    cr3: int = 0
    cr4: int = 0

    cs_access_rights: int = 0
    activity_state: int = 0

    def cs_access_rights_dpl(self) -> int:
        """Descriptor privilege level of the code segment."""
        return (self.cs_access_rights >> 5) & 0b11


def _check_vector(intr: int) -> None:
    if not 0 <= intr <= 255:
        raise ValueError(f"interrupt vector out of range: {intr}")


def _lowest_bit(value: int) -> int:
    return (value & -value).bit_length() - 1


@dataclass
class InterruptBitmap:
    """A set of 256 interrupt vectors kept as two 128-bit halves."""

    lo: int = 0
    hi: int = 0

    def is_empty(self) -> bool:
        return self.lo == 0 and self.hi == 0

    def first(self) -> int:
        """Lowest pending vector."""
        if self.lo:
            return _lowest_bit(self.lo)
        if self.hi:
            return _lowest_bit(self.hi) + 128
        raise ValueError("first() called on empty InterruptBitmap")

    def activate(self, intr: int) -> None:
        _check_vector(intr)
        if intr < 128:
            self.lo |= 1 << intr
        else:
            self.hi |= 1 << (intr - 128)

    def deactivate(self, intr: int) -> None:
        _check_vector(intr)
        if intr < 128:
            self.lo &= ~(1 << intr)
        else:
            self.hi &= ~(1 << (intr - 128))


@dataclass(frozen=True)
class VcpuException:
    """An exception to be injected into a guest."""


@dataclass(frozen=True)
class InvalidOpcode(VcpuException):
    pass


@dataclass(frozen=True)
class GeneralProtectionFault(VcpuException):
    error_code: int = 0


class AbstractVcpu(ABC):
    """Interface every virtual CPU backend implements."""

    @property
    @abstractmethod
    def state(self) -> VcpuState: ...

    @property
    @abstractmethod
    def fault(self) -> VcpuFault: ...

    @abstractmethod
    def load_state(self, context: Any, regs: VcpuStateMask) -> None: ...

    @abstractmethod
    def commit_state(self, context: Any, regs: VcpuStateMask) -> None: ...

    @abstractmethod
    def inject_exception(self, context: Any, exc: VcpuException) -> None: ...

    @abstractmethod
    def inject_external_interrupt(self, context: Any, intr: int) -> None: ...

    @abstractmethod
    def external_interrupt_pending(self) -> bool: ...

    @abstractmethod
    def read_msr(self, context: Any, msr: int) -> int | None: ...

    @abstractmethod
    def write_msr(self, context: Any, msr: int, value: int) -> int | None: ...

    @abstractmethod
    def lgdt(self, context: Any, base: int, limit: int) -> None: ...

    @abstractmethod
    def enter(self, context: Any) -> tuple[bool, int]: ...
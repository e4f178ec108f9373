"""Start-up configuration of the system service processes."""

from __future__ import annotations

from dataclasses import dataclass, field

from .messages import VmPagingMode

SEL4_MAX_PRIO = 255
SEL4_MIN_PRIO = 0
SERVICE_PRIORITY = SEL4_MAX_PRIO - 1
VMM_PRIORITY = SEL4_MIN_PRIO + 2

MAX_VIRTIO_DEVICES = 32

VGA_MMIO_START = 0xA0000
VGA_MMIO_END = 0xC0000
_SMALL_PAGE_SIZE = 0x1000
# ring, notification, serial I/O port and thread TCB sit before the VGA pages.
_LOGSERVER_FIXED_CAPS = 4
_VGA_PAGES = (VGA_MMIO_END - VGA_MMIO_START) // _SMALL_PAGE_SIZE


def _check_bits(name: str, value: int, bits: int) -> None:
    if not 0 <= value < 1 << bits:
        raise ValueError(f"{name} out of {bits}-bit range: {value}")


@dataclass(frozen=True)
class SubprocessConfig:
    cnode_bits: int
    priority: int
    badge: int
    expose_tcb: bool

    def __post_init__(self) -> None:
        if not 0 < self.cnode_bits < 32:
            raise ValueError(f"cnode_bits must be in 1..31: {self.cnode_bits}")
        _check_bits("priority", self.priority, 8)
        _check_bits("badge", self.badge, 64)


def logserver_config() -> SubprocessConfig:
    return SubprocessConfig(cnode_bits=8, priority=SERVICE_PRIORITY, badge=0, expose_tcb=True)


def timeserver_config() -> SubprocessConfig:
    return SubprocessConfig(cnode_bits=8, priority=SERVICE_PRIORITY, badge=1, expose_tcb=False)


def virtioserver_config() -> SubprocessConfig:
    return SubprocessConfig(cnode_bits=14, priority=SERVICE_PRIORITY, badge=1, expose_tcb=True)


def dbgserver_config() -> SubprocessConfig:
    return SubprocessConfig(cnode_bits=8, priority=SERVICE_PRIORITY, badge=0, expose_tcb=True)


def vmmserver_config(cnode_bits: int) -> SubprocessConfig:
    return SubprocessConfig(cnode_bits=cnode_bits, priority=VMM_PRIORITY, badge=0, expose_tcb=True)


def virtio_description(virtio_device_id: int, gsi: int) -> str:
    """Name a virtio server by device type and interrupt line."""
    return f"{virtio_device_id}/{gsi}"


@dataclass(frozen=True, kw_only=True)
class LogserverStartInfo:
    ring_cap: int = 0
    notif_rx_cap: int = 1
    serial_ioport_cap: int = 2
    thread_tcb_cap: int = 3
    page_cap_start: int = _LOGSERVER_FIXED_CAPS
    page_cap_end: int = _LOGSERVER_FIXED_CAPS + _VGA_PAGES
    priority: int = SERVICE_PRIORITY
    writer_thread_priority: int = SEL4_MIN_PRIO

    def __post_init__(self) -> None:
        if self.page_cap_end < self.page_cap_start:
            raise ValueError("page_cap_end precedes page_cap_start")
        _check_bits("priority", self.priority, 8)
        _check_bits("writer_thread_priority", self.writer_thread_priority, 8)


@dataclass(frozen=True, kw_only=True)
class TimeserverStartInfo:
    tsc_frequency_mhz: int
    pit_ioport_cap: int = 0
    pit_interrupt_cap: int = 1
    notif_cap: int = 2
    logserver_endpoint_cap: int = 3
    endpoint_badge: int = 1
    notif_badge: int = 2

    def __post_init__(self) -> None:
        _check_bits("tsc_frequency_mhz", self.tsc_frequency_mhz, 32)
        if self.endpoint_badge == self.notif_badge:
            raise ValueError("endpoint and notification badges must differ")


@dataclass(frozen=True, kw_only=True)
class DbgserverStartInfo:
    tsc_freq_mhz: int
    logserver_endpoint_cap: int = 0
    timeserver_endpoint_cap: int = 1
    i8042_ioport_cap: int = 2
    i8042_interrupt_cap: int = 3
    serial_ioport_cap: int = 4
    serial_interrupt_cap: int = 5
    notif_rx_cap: int = 6
    hypervisor_channel_cap: int = 7
    priority: int = SERVICE_PRIORITY
    root_cnode_bits: int = 8

    def __post_init__(self) -> None:
        _check_bits("tsc_freq_mhz", self.tsc_freq_mhz, 32)
        _check_bits("priority", self.priority, 8)
        _check_bits("root_cnode_bits", self.root_cnode_bits, 8)


@dataclass(frozen=True, kw_only=True)
class VirtioServerStartInfo:
    tsc_frequency_mhz: int
    description: str
    notify_off_multiplier: int
    virtio_device_id: int
    logserver_endpoint_cap: int = 0
    timeserver_endpoint_cap: int = 1
    irq_notif_cap: int = 2
    userfault_tcb_cap: int = 3
    p_common_cfg_4kb_frame_cap: int = 4
    p_notify_cfg_4kb_frame_cap: int = 5
    p_isr_cfg_4kb_frame_cap: int = 6
    p_device_cfg_4kb_frame_cap: int = 7
    endpoint_caps: tuple[int, ...] = (8,)
    untyped_2mb_caps: tuple[int, ...] = (9, 10)
    irq_notif_cap_badge: int = 2
    endpoint_badge: int = 1
    priority: int = SERVICE_PRIORITY
    root_cnode_bits: int = 14

    def __post_init__(self) -> None:
        if self.endpoint_badge == self.irq_notif_cap_badge:
            raise ValueError("endpoint and interrupt notification badges must differ")
        _check_bits("irq_notif_cap_badge", self.irq_notif_cap_badge, 8)
        _check_bits("endpoint_badge", self.endpoint_badge, 8)
        _check_bits("priority", self.priority, 8)
        _check_bits("virtio_device_id", self.virtio_device_id, 16)
        _check_bits("notify_off_multiplier", self.notify_off_multiplier, 32)
        _check_bits("tsc_frequency_mhz", self.tsc_frequency_mhz, 32)


@dataclass(frozen=True, kw_only=True)
class VmmServerStartInfo:
    num_kernel_pages: int
    num_untyped: int
    has_rtc_ioport_cap: bool
    num_virtio_devices: int
    tsc_frequency_mhz: int
    cnode_bits: int
    paging_mode: VmPagingMode
    affinity: int
    logserver_endpoint_cap: int = 0
    timeserver_endpoint_cap: int = 1
    kernel_bucket_cap: int = 2
    untyped_bucket_cap: int = 3
    asid_pool_cap: int = 4
    rtc_ioport_cap: int = 5
    hypervisor_channel_cap: int = 6
    virtio_device_endpoint_cap_start: int = 7
    description: str = field(default="test")
    priority: int = VMM_PRIORITY

    def __post_init__(self) -> None:
        if not 0 <= self.num_virtio_devices <= MAX_VIRTIO_DEVICES:
            raise ValueError(f"too many virtio devices: {self.num_virtio_devices}")
        if not 0 < self.cnode_bits < 32:
            raise ValueError(f"cnode_bits must be in 1..31: {self.cnode_bits}")
        _check_bits("num_kernel_pages", self.num_kernel_pages, 32)
        _check_bits("num_untyped", self.num_untyped, 32)
        _check_bits("affinity", self.affinity, 32)
        _check_bits("priority", self.priority, 8)
        if not isinstance(self.paging_mode, VmPagingMode):
            raise TypeError("paging_mode must be a VmPagingMode")
"""Discovery of virtio devices behind PCI and the mapping of their config regions."""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .pci import Pci, PciDevice

log = logging.getLogger(__name__)

VIRTIO_VENDOR_ID = 0x1AF4
_VIRTIO_DEVICE_IDS = range(0x1000, 0x1080)
_MODERN_DEVICE_ID_BASE = 0x1040
_TRANSITIONAL_IDS = {0x1000: 1, 0x1001: 2, 0x1004: 8}

_PCI_STATUS = 0x06
_STATUS_CAP_LIST = 1 << 4
_PCI_CAP_PTR = 0x34
_PCI_BAR0 = 0x10
_VENDOR_SPECIFIC_CAP = 9
_CAP_FORMAT = struct.Struct("<BBBBBB2xII")

CFG_TYPE_COMMON = 1
CFG_TYPE_NOTIFY = 2
CFG_TYPE_ISR = 3
CFG_TYPE_DEVICE = 4

_PAGE_SIZE = 0x1000
_MAX_QUEUE_SIZE = 256
# Offsets within the common configuration structure.
_QUEUE_SELECT = 22
_QUEUE_SIZE = 24


@dataclass(frozen=True)
class VirtioPciCap:
    cap_vndr: int = 0
    cap_next: int = 0
    cap_len: int = 0
    cfg_type: int = 0
    bar: int = 0
    id: int = 0
    offset: int = 0
    length: int = 0

    @classmethod
    def from_bytes(cls, raw: bytes) -> "VirtioPciCap":
        return cls(*_CAP_FORMAT.unpack(raw))


@dataclass(frozen=True)
class MemBar:
    base: int
    prefetchable: bool
    length: int


@dataclass(frozen=True)
class IoBar:
    base: int
    length: int


@dataclass
class VirtioPciDevice:
    """A virtio device and the mapped regions of its configuration structures.

    Mapped regions are whatever the ``map_page`` callable handed to
    :func:`probe_device` returned.
    """

    inner: PciDevice
    virtio_device_id: int
    gsi: int
    common_cfg: Any = None
    notify_cfg: Any = None
    notify_off_multiplier: int = 0
    isr_cfg: Any = None
    device_cfg: Any = None
    queue_size_max: int = 0


def virtio_device_id(pci_device_id: int) -> int:
    """Virtio device type for a PCI device id; 0 if unknown."""
    if pci_device_id >= _MODERN_DEVICE_ID_BASE:
        return pci_device_id - _MODERN_DEVICE_ID_BASE
    return _TRANSITIONAL_IDS.get(pci_device_id, 0)


def is_virtio_device(device: PciDevice) -> bool:
    return device.vendor_id == VIRTIO_VENDOR_ID and device.device_id in _VIRTIO_DEVICE_IDS


def read_capability(pci: Pci, device: PciDevice, cap_ptr: int) -> tuple[VirtioPciCap, int]:
    """Read the capability at ``cap_ptr``; also return the offset just past what was read.

    Only the first dword is read when it is not a vendor-specific capability
    long enough to hold a virtio capability; the rest is then zero.
    """
    raw = bytearray(_CAP_FORMAT.size)
    ptr = cap_ptr
    for i in range(_CAP_FORMAT.size // 4):
        word = pci.config_read_dword(device, ptr)
        raw[i * 4 : i * 4 + 4] = word.to_bytes(4, "little")
        ptr = (ptr + 4) & 0xFF
        if i == 0 and (word & 0xFF != _VENDOR_SPECIFIC_CAP or (word >> 16) & 0xFF < _CAP_FORMAT.size):
            break
    return VirtioPciCap.from_bytes(bytes(raw)), ptr


def decode_bar(pci: Pci, device: PciDevice, cap: VirtioPciCap) -> MemBar | IoBar | None:
    """Resolve the region a capability points to, or None if it cannot be used."""
    if cap.bar > 5:
        return None
    bar = pci.config_read_dword(device, _PCI_BAR0 + cap.bar * 4)
    if bar & 1:
        return IoBar(base=((bar & 0xFFFF_FFFC) + cap.offset) & 0xFFFF_FFFF, length=cap.length)

    bar_type = (bar >> 1) & 0b11
    prefetchable = bool((bar >> 3) & 1)
    base = bar & 0xFFFF_FFF0
    if bar_type == 2:
        high = pci.config_read_dword(device, _PCI_BAR0 + 4 + cap.bar * 4)
        base |= high << 32
    elif bar_type != 0:
        log.warning("Unknown BAR type %#x", bar_type)
        return None
    return MemBar(
        base=(base + cap.offset) & 0xFFFF_FFFF_FFFF_FFFF,
        prefetchable=prefetchable,
        length=cap.length,
    )


def probe_device(
    pci: Pci,
    device: PciDevice,
    irq_to_gsi: Mapping[int, int],
    map_page: Callable[[int], Any],
) -> VirtioPciDevice | None:
    """Probe one PCI device as virtio; None if it is not a usable virtio device.

    ``map_page`` maps the page at a physical address and returns a region, or
    None on failure. The region of the common configuration must offer
    ``read_u16(offset)`` and ``write_u16(offset, value)``.
    """
    if not is_virtio_device(device):
        return None
    if not pci.config_read_word(device, _PCI_STATUS) & _STATUS_CAP_LIST:
        return None
    device_type = virtio_device_id(device.device_id)
    if device_type == 0:
        return None

    newdev = VirtioPciDevice(
        inner=device,
        virtio_device_id=device_type,
        gsi=irq_to_gsi.get(device.interrupt_line, device.interrupt_line),
    )

    cap_ptr = pci.config_read_word(device, _PCI_CAP_PTR) & 0xFF
    while cap_ptr != 0:
        cap, end_ptr = read_capability(pci, device, cap_ptr)
        cap_ptr = cap.cap_next
        bar = decode_bar(pci, device, cap)
        if not isinstance(bar, MemBar) or bar.length != _PAGE_SIZE:
            continue

        if cap.cfg_type == CFG_TYPE_COMMON:
            newdev.common_cfg = _map(map_page, bar.base)
        elif cap.cfg_type == CFG_TYPE_NOTIFY:
            newdev.notify_cfg = _map(map_page, bar.base)
            if newdev.notify_cfg is not None:
                newdev.notify_off_multiplier = pci.config_read_dword(device, end_ptr)
        elif cap.cfg_type == CFG_TYPE_ISR:
            newdev.isr_cfg = _map(map_page, bar.base)
        elif cap.cfg_type == CFG_TYPE_DEVICE:
            newdev.device_cfg = _map(map_page, bar.base)

    for name in ("common", "notify", "isr"):
        if getattr(newdev, f"{name}_cfg") is None:
            log.warning("ignoring virtio device without %s cfg: %r", name, newdev)
            return None

    newdev.common_cfg.write_u16(_QUEUE_SELECT, 0)
    newdev.queue_size_max = newdev.common_cfg.read_u16(_QUEUE_SIZE)
    if newdev.queue_size_max > _MAX_QUEUE_SIZE:
        log.info("clamping virtio device queue size to %d: %r", _MAX_QUEUE_SIZE, newdev)
        newdev.queue_size_max = _MAX_QUEUE_SIZE
    return newdev


def _map(map_page: Callable[[int], Any], base: int) -> Any:
    region = map_page(base)
    if region is None:
        log.warning("Failed to allocate virtio device MMIO page at %#x", base)
    return region


def probe_all(
    pci: Pci,
    irq_to_gsi: Mapping[int, int],
    map_page: Callable[[int], Any],
) -> list[VirtioPciDevice]:
    """Probe every scanned PCI device and keep the usable virtio ones."""
    devices: Iterable[PciDevice] = pci.devices
    found = (probe_device(pci, device, irq_to_gsi, map_page) for device in devices)
    return [dev for dev in found if dev is not None]
"""PCI configuration-space access through the legacy 0xCF8/0xCFC port pair."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

CONFIG_ADDRESS_PORT = 0xCF8
CONFIG_DATA_PORT = 0xCFC
NUM_BUSES = 256
NUM_SLOTS = 32
_ENABLE_BIT = 0x80000000
_NO_DEVICE_VENDOR = 0xFFFF
_INTERRUPT_LINE_OFFSET = 0x3C


class PortIo(ABC):
    """32-bit access to x86 I/O ports."""

    @abstractmethod
    def inl(self, port: int) -> int:
        """Read a 32-bit value from ``port``."""

    @abstractmethod
    def outl(self, port: int, value: int) -> None:
        """Write a 32-bit ``value`` to ``port``."""


@dataclass(frozen=True)
class PciDevice:
    bus: int
    slot: int
    func: int
    device_id: int
    vendor_id: int
    interrupt_line: int
    interrupt_pin: int


def config_address(bus: int, slot: int, func: int, offset: int) -> int:
    """Value written to the address port to select a configuration dword."""
    if not 0 <= bus < NUM_BUSES:
        raise ValueError(f"bus out of range: {bus}")
    if not 0 <= slot < NUM_SLOTS:
        raise ValueError(f"slot out of range: {slot}")
    if not 0 <= func < 8:
        raise ValueError(f"function out of range: {func}")
    if not 0 <= offset <= 0xFF:
        raise ValueError(f"offset out of range: {offset}")
    return (bus << 16) | (slot << 11) | (func << 8) | (offset & 0xFC) | _ENABLE_BIT


def pci_config_read_dword(io: PortIo, bus: int, slot: int, func: int, offset: int) -> int:
    io.outl(CONFIG_ADDRESS_PORT, config_address(bus, slot, func, offset))
    return io.inl(CONFIG_DATA_PORT) & 0xFFFFFFFF


def pci_config_read_word(io: PortIo, bus: int, slot: int, func: int, offset: int) -> int:
    dword = pci_config_read_dword(io, bus, slot, func, offset)
    return (dword >> ((offset & 2) * 8)) & 0xFFFF


def pci_config_write_dword(io: PortIo, bus: int, slot: int, func: int, offset: int, value: int) -> None:
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"value out of 32-bit range: {value}")
    io.outl(CONFIG_ADDRESS_PORT, config_address(bus, slot, func, offset))
    io.outl(CONFIG_DATA_PORT, value)


def check_device(io: PortIo, bus: int, slot: int) -> PciDevice | None:
    """Describe function 0 at ``bus``/``slot``, or None if nothing is there."""
    dword = pci_config_read_dword(io, bus, slot, 0, 0)
    vendor_id = dword & 0xFFFF
    device_id = (dword >> 16) & 0xFFFF
    if vendor_id == _NO_DEVICE_VENDOR:
        return None
    line_and_pin = pci_config_read_word(io, bus, slot, 0, _INTERRUPT_LINE_OFFSET)
    return PciDevice(
        bus=bus,
        slot=slot,
        func=0,
        device_id=device_id,
        vendor_id=vendor_id,
        interrupt_line=line_and_pin & 0xFF,
        interrupt_pin=(line_and_pin >> 8) & 0xFF,
    )


@dataclass
class Pci:
    """Configuration-space access plus the devices found by a scan."""

    io: PortIo
    devices: list[PciDevice] = field(default_factory=list)

    def config_read_dword(self, device: PciDevice, offset: int) -> int:
        return pci_config_read_dword(self.io, device.bus, device.slot, device.func, offset)

    def config_read_word(self, device: PciDevice, offset: int) -> int:
        return pci_config_read_word(self.io, device.bus, device.slot, device.func, offset)

    def config_write_dword(self, device: PciDevice, offset: int, value: int) -> None:
        pci_config_write_dword(self.io, device.bus, device.slot, device.func, offset, value)


def pci_scan(io: PortIo) -> Pci:
    """Probe function 0 of every slot on every bus."""
    devices = []
    for bus in range(NUM_BUSES):
        for slot in range(NUM_SLOTS):
            device = check_device(io, bus, slot)
            if device is None:
                continue
            log.info(
                "Found PCI device: bus %#x, slot %#x, vendor %#x, device %#x",
                bus,
                slot,
                device.vendor_id,
                device.device_id,
            )
            devices.append(device)
    return Pci(io=io, devices=devices)
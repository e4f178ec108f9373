# beamkit

`beamkit` holds pieces of the logic of a small hypervisor root task that runs
on a capability microkernel: decoding virtual-CPU exits, reading the kernel's
boot information, probing PCI and virtio devices, laying out child processes
and virtual machine monitors, describing the start-up of the system servers,
and the messages of the hypervisor control channel.

Everything here is plain Python with no runtime dependencies. Port I/O and
page mapping are reached through small interfaces (`PortIo`, a `map_page`
callable) that you supply, so the code can be driven by a real system, a
simulator or tests.

## Modules

| Module | What it does |
| --- | --- |
| `beamkit.vcpu` | vCPU register state (`VcpuState`), valid-field masks (`VcpuStateMask`), fault records (`VcpuFault`), the 256-vector `InterruptBitmap`, injectable exceptions and the `AbstractVcpu` interface |
| `beamkit.vcpu_decode` | Decoding of control-register (`decode_control_register_access`) and I/O-port (`decode_io_port_access`) exit qualifications, and reading/writing the register a control-register access names |
| `beamkit.bootinfo` | Walking boot-info extra chunks (`iter_bootinfo_entries`, `find_bootinfo_entry`), reading the TSC frequency and the ACPI RSDP, converting cycles to microseconds |
| `beamkit.static_config` | Fixed addresses and `IntrVectorAllocator` / `allocate_intr_vector` for interrupt vectors 0..255 |
| `beamkit.messages` | Control requests (`Reboot`, `Kill`, `IpcBench`, `SetMode`, `SetAffinity`, `GpaLargeUnmap`), `Reply`, `VmPagingMode` and `parse_paging_mode` |
| `beamkit.services` | `SubprocessConfig` for each server and the start-info records of the log, time, debug, virtio and VMM servers |
| `beamkit.pci` | Legacy 0xCF8/0xCFC configuration-space access and a full bus scan (`pci_scan`) |
| `beamkit.virtio_pci` | Virtio device identification, capability reading, BAR decoding and device probing |
| `beamkit.layout` | Page estimates for a process and placement of ELF segment data into pages |
| `beamkit.vmm_layout` | Sizing of a VM monitor's capability node and untyped memory, and frame-slot ranges of an embedded image |
| `beamkit.blobs` | Running `objcopy` to turn server images into linkable objects |

## Examples

Decoding an I/O port exit:

```python
from beamkit.vcpu import VcpuFault
from beamkit.vcpu_decode import IoDirection, decode_io_port_access

access = decode_io_port_access(VcpuFault(qualification=0x03F8_0000))
assert access.port_number == 0x3F8
assert access.bitness == 8
assert access.direction is IoDirection.OUT
```

Building a PCI configuration address:

```python
from beamkit.pci import config_address

hex(config_address(0, 3, 0, 0x10))   # '0x80001810'
```

Finding records in the boot-info extra area:

```python
from beamkit.bootinfo import BootInfoId, find_bootinfo_entry, parse_rsdp, tsc_freq_mhz_from_bootinfo

mhz = tsc_freq_mhz_from_bootinfo(extra_bytes)
rsdp = parse_rsdp(find_bootinfo_entry(extra_bytes, BootInfoId.X86_ACPI_RSDP))
```

Sizing a process and a VM monitor:

```python
from beamkit.layout import estimate_process_pages, page_bucket_bits
from beamkit.vmm_layout import vmm_cnode_bits, vmm_untyped_pages

page_bucket_bits(estimate_process_pages([]))   # 7
vmm_cnode_bits(1 << 30)                        # 10
vmm_untyped_pages(1 << 30)                     # 511
```

Probing virtio devices takes a `Pci` from `pci_scan`, a mapping of legacy
IRQs to global system interrupts, and a `map_page(paddr)` callable that
returns a mapped region (the common-configuration region must provide
`read_u16` and `write_u16`) or `None`:

```python
from beamkit.pci import pci_scan
from beamkit.virtio_pci import probe_all

devices = probe_all(pci_scan(port_io), {0: 2}, map_page)
```

`build_blobs(workspace_root)` runs `objcopy` for the guest kernel image and
each server image and raises `subprocess.CalledProcessError` if one fails.

Errors are raised as exceptions: `ValueError` for out-of-range or malformed
input, `LookupError` when a boot-info record is missing, `OverflowError` when
interrupt vectors run out.

## What this package does not do

It does not allocate capability slots or split untyped memory, does not keep
track of paging structures, and has no debug shell and no control loop that
starts, reboots or reconfigures virtual machines. The request and reply
records in `beamkit.messages` describe that channel, but nothing here serves
it. It makes no kernel calls of its own.
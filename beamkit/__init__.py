"""vCPU exit decoding, boot-info parsing, PCI/virtio probing and process layout for a microkernel hypervisor root task."""

__version__ = "0.1.0"
"""Sizing of the capability nodes and memory handed to a virtual machine monitor."""

from __future__ import annotations

LARGE_PAGE_BITS = 21
LARGE_PAGE_SIZE = 1 << LARGE_PAGE_BITS
GRANULE_SIZE = 0x1000
# Slots the monitor needs besides one per untyped large page.
_BASE_CNODE_SLOTS = 512
# Bytes of kernel memory taken by each capability slot.
_SLOT_BYTES = 32


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def _next_power_of_two_bits(value: int) -> int:
    """Exponent of the smallest power of two that is at least ``value`` (0 for 0 and 1)."""
    if value <= 1:
        return 0
    return (value - 1).bit_length()


def _requested_large_pages(requested_memory_bytes: int) -> int:
    if requested_memory_bytes < 0:
        raise ValueError("requested_memory_bytes must not be negative")
    return _ceil_div(requested_memory_bytes, LARGE_PAGE_SIZE)


def vmm_cnode_bits(requested_memory_bytes: int) -> int:
    """Size bits of the monitor's root capability node, with room for every untyped page."""
    pages = _requested_large_pages(requested_memory_bytes)
    return _next_power_of_two_bits(_BASE_CNODE_SLOTS + pages)


def vmm_untyped_pages(requested_memory_bytes: int) -> int:
    """Large pages of untyped memory given to the monitor.

    The pages the root capability node itself takes are subtracted, never
    going below zero.
    """
    pages = _requested_large_pages(requested_memory_bytes)
    cnode_bits = vmm_cnode_bits(requested_memory_bytes)
    cnode_pages = _ceil_div((1 << cnode_bits) * _SLOT_BYTES, LARGE_PAGE_SIZE)
    return max(pages - cnode_pages, 0)


def untyped_bucket_bits(requested_large_pages: int) -> int:
    """Size bits of the node that carries the untyped pages to the monitor."""
    if requested_large_pages < 0:
        raise ValueError("requested_large_pages must not be negative")
    return _next_power_of_two_bits(requested_large_pages)


def frame_cap_range(
    frames_start: int,
    frames_end: int,
    blob_addr: int,
    blob_len: int,
    self_start: int,
) -> range:
    """Frame capability slots that cover the image at ``blob_addr`` of ``blob_len`` bytes.

    ``frames_start``..``frames_end`` are the slots of the loaded image's frames,
    which begins at ``self_start``.
    """
    if blob_addr % GRANULE_SIZE:
        raise ValueError(f"blob address {blob_addr:#x} is not page aligned")
    if blob_addr < self_start or blob_len < 0:
        raise ValueError("blob lies before the start of the image")
    cap_start = frames_start + (blob_addr - self_start) // GRANULE_SIZE
    if cap_start >= frames_end:
        raise ValueError("blob starts beyond the image frames")
    cap_end = frames_start + _ceil_div(blob_addr + blob_len - self_start, GRANULE_SIZE)
    if cap_end > frames_end:
        raise ValueError("blob ends beyond the image frames")
    return range(cap_start, cap_end)
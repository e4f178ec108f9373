"""Memory layout of a freshly loaded process: page estimates and ELF segment placement."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

SMALL_PAGE_SIZE_BITS = 12
SMALL_PAGE_SIZE = 1 << SMALL_PAGE_SIZE_BITS
PT_LOAD = 1

STACK_ADDR = 0x1FFF_0000_0000
STACK_SIZE = 65536
IPC_BUFFER_ADDR = 0x1000
# Slack for partially filled pages and paging structures.
_EXTRA_PAGES = 16


@dataclass(frozen=True)
class Segment:
    """A program header of an ELF image."""

    vaddr: int
    offset: int
    filesz: int
    memsz: int
    p_type: int = PT_LOAD

    @property
    def is_loadable(self) -> bool:
        """Whether the segment occupies memory in the process."""
        return self.p_type == PT_LOAD and self.memsz != 0


@dataclass(frozen=True)
class PageWrite:
    """Bytes ``[start, end)`` of the page at ``page_vaddr`` come from file data at ``data_offset``."""

    page_vaddr: int
    start: int
    end: int
    data_offset: int

    @property
    def length(self) -> int:
        return self.end - self.start


def _pages_for(size: int) -> int:
    return -(-size // SMALL_PAGE_SIZE)


def estimate_process_pages(segments: Iterable[Segment], stack_size: int = STACK_SIZE) -> int:
    """Pages a process needs: IPC buffer, stack, segment memory, per-segment overhead and slack."""
    if stack_size < 0:
        raise ValueError("stack_size must not be negative")
    segments = list(segments)
    total_memsz = sum(seg.memsz for seg in segments)
    return 1 + _pages_for(stack_size) + _pages_for(total_memsz) + len(segments) + _EXTRA_PAGES


def page_bucket_bits(estimated_pages: int) -> int:
    """Size bits of a capability node holding twice the pages rounded up to a power of two."""
    if estimated_pages < 0:
        raise ValueError("estimated_pages must not be negative")
    if estimated_pages <= 1:
        return 1
    return (estimated_pages - 1).bit_length() + 1


def segment_page_writes(vaddr: int, filesz: int, memsz: int) -> list[PageWrite]:
    """Split a segment's file data across the pages its memory spans.

    Every page in the segment gets an entry, possibly empty. Raises
    ValueError if the file data does not fit in those pages.
    """
    if vaddr < 0 or filesz < 0 or memsz < 0:
        raise ValueError("segment fields must not be negative")
    if memsz == 0:
        return []

    first_page = vaddr >> SMALL_PAGE_SIZE_BITS
    last_page = (vaddr + memsz - 1) >> SMALL_PAGE_SIZE_BITS
    file_end = vaddr + filesz
    writes = []
    data_offset = 0
    for page in range(first_page, last_page + 1):
        page_start = page << SMALL_PAGE_SIZE_BITS
        page_end = page_start + SMALL_PAGE_SIZE
        write_start = min(max(vaddr, page_start), page_end)
        write_end = min(max(file_end, page_start), page_end)
        writes.append(
            PageWrite(
                page_vaddr=page_start,
                start=write_start - page_start,
                end=write_end - page_start,
                data_offset=data_offset,
            )
        )
        data_offset += write_end - write_start

    if data_offset != filesz:
        raise ValueError(f"segment file data does not fit its memory at {vaddr:#x}")
    return writes


def load_segments(segments: Iterable[Segment], data: bytes) -> dict[int, bytearray]:
    """Build the zero-filled pages of all loadable segments with their file data copied in."""
    pages: dict[int, bytearray] = {}
    for seg in segments:
        if not seg.is_loadable:
            continue
        if seg.offset < 0 or seg.offset + seg.filesz > len(data):
            raise ValueError(f"segment at {seg.vaddr:#x} lies outside the image")
        for write in segment_page_writes(seg.vaddr, seg.filesz, seg.memsz):
            page = pages.setdefault(write.page_vaddr, bytearray(SMALL_PAGE_SIZE))
            src = seg.offset + write.data_offset
            page[write.start : write.end] = data[src : src + write.length]
    return dict(sorted(pages.items()))
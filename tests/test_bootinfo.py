import pytest

from beamkit.bootinfo import (
    BootInfoId,
    Rsdp,
    find_bootinfo_entry,
    iter_bootinfo_entries,
    micros_from_cycles,
    parse_rsdp,
    tsc_freq_mhz_from_bootinfo,
)


def entry(chunk_id, data):
    return chunk_id.to_bytes(8, "little") + (16 + len(data)).to_bytes(8, "little") + data


def test_iter_round_trip():
    chunks = [(BootInfoId.PADDING, b"\x00" * 8), (BootInfoId.X86_ACPI_RSDP, b"abcdef"), (9, b"")]
    extra = b"".join(entry(cid, data) for cid, data in chunks)
    assert list(iter_bootinfo_entries(extra)) == [(int(c), d) for c, d in chunks]


def test_find_present_and_missing():
    extra = entry(BootInfoId.X86_VBE, b"vbe") + entry(BootInfoId.FDT, b"tree")
    assert find_bootinfo_entry(extra, BootInfoId.FDT) == b"tree"
    assert find_bootinfo_entry(extra, BootInfoId.X86_TSC_FREQ) is None


def test_truncated_entry_stops_scan():
    good = entry(BootInfoId.X86_VBE, b"ok")
    truncated = entry(BootInfoId.FDT, b"long data here")[:-4]
    extra = good + truncated
    assert find_bootinfo_entry(extra, BootInfoId.X86_VBE) == b"ok"
    assert find_bootinfo_entry(extra, BootInfoId.FDT) is None


def test_short_tail_ignored():
    extra = entry(BootInfoId.X86_VBE, b"x") + b"\x01\x02\x03"
    assert list(iter_bootinfo_entries(extra)) == [(int(BootInfoId.X86_VBE), b"x")]


def test_tsc_frequency_round_trip():
    freq = 2400
    extra = entry(BootInfoId.X86_TSC_FREQ, freq.to_bytes(4, "little"))
    assert tsc_freq_mhz_from_bootinfo(extra) == freq


def test_tsc_frequency_missing_or_malformed():
    with pytest.raises(LookupError):
        tsc_freq_mhz_from_bootinfo(b"")
    with pytest.raises(ValueError):
        tsc_freq_mhz_from_bootinfo(entry(BootInfoId.X86_TSC_FREQ, b"\x01\x02"))


def test_parse_rsdp():
    rsdt = 0x7FE14F2
    data = b"RSD PTR " + b"\x00" + b"OEMID " + bytes([2]) + rsdt.to_bytes(4, "little")
    assert parse_rsdp(data) == Rsdp(rsdt_address=rsdt, revision=2)


def test_parse_rsdp_too_short():
    with pytest.raises(ValueError):
        parse_rsdp(b"RSD PTR ")


def test_micros_from_cycles():
    freq = 3000
    assert micros_from_cycles(freq * 123 + 7, freq) == 123
    with pytest.raises(ValueError):
        micros_from_cycles(10, 0)
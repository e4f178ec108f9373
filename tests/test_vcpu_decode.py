import pytest

from beamkit.vcpu import VcpuFault, VcpuState, VcpuStateMask
from beamkit.vcpu_decode import (
    CrAccess,
    IoDirection,
    cr_access_register,
    decode_control_register_access,
    decode_io_port_access,
    read_cr_access_register,
    write_cr_access_register,
)


@pytest.mark.parametrize("cr, access, gpr", [(0, 0, 0), (3, 1, 7), (4, 2, 15)])
def test_decode_control_register_access(cr, access, gpr):
    fault = VcpuFault(qualification=(gpr << 8) | (access << 4) | cr)
    acc = decode_control_register_access(fault)
    assert acc == CrAccess(cr_idx=cr, access_type=access, gpr=gpr)


def test_gpr_encoding_order():
    assert cr_access_register(CrAccess(0, 0, 0)) == ("eax", VcpuStateMask.EAX)
    assert cr_access_register(CrAccess(0, 0, 1)) == ("ecx", VcpuStateMask.ECX)
    assert cr_access_register(CrAccess(0, 0, 3)) == ("ebx", VcpuStateMask.EBX)
    assert cr_access_register(CrAccess(0, 0, 4)) == ("esp", VcpuStateMask.ESP)


def test_write_then_read_every_register():
    state = VcpuState()
    masks = set()
    for gpr in range(16):
        acc = CrAccess(cr_idx=0, access_type=0, gpr=gpr)
        mask = write_cr_access_register(state, acc, gpr * 1000 + 1)
        value, read_mask = read_cr_access_register(state, acc)
        assert value == gpr * 1000 + 1
        assert read_mask == mask
        masks.add(mask)
    assert len(masks) == 16


def test_invalid_gpr_rejected():
    with pytest.raises(ValueError):
        cr_access_register(CrAccess(0, 0, 16))


def test_decode_io_port_access_all_flags():
    port = 0x3F8
    fault = VcpuFault(qualification=(port << 16) | (1 << 5) | (1 << 4) | (1 << 3) | 1)
    acc = decode_io_port_access(fault)
    assert acc.bitness == 16
    assert acc.direction is IoDirection.IN
    assert acc.str_ins and acc.rep_prefixed
    assert acc.port_number == port


@pytest.mark.parametrize("code, bits", [(0, 8), (1, 16), (3, 32)])
def test_decode_io_port_bitness(code, bits):
    acc = decode_io_port_access(VcpuFault(qualification=code))
    assert acc.bitness == bits
    assert acc.direction is IoDirection.OUT
    assert not acc.str_ins


def test_decode_io_port_invalid_bitness():
    with pytest.raises(ValueError):
        decode_io_port_access(VcpuFault(qualification=2))
import pytest

from beamkit.vcpu import (
    AbstractVcpu,
    GeneralProtectionFault,
    InterruptBitmap,
    InvalidOpcode,
    VcpuException,
    VcpuState,
    VcpuStateMask,
)


def test_all_writable_excludes_read_only_fields():
    mask = VcpuStateMask.all_writable()
    assert not mask & VcpuStateMask.CS_ACCESS_RIGHTS
    assert not mask & VcpuStateMask.ACTIVITY_STATE
    for member in (VcpuStateMask.EIP, VcpuStateMask.R15, VcpuStateMask.CR4):
        assert mask & member == member


def test_reg_state_matches_all_writable():
    assert VcpuStateMask.reg_state() == VcpuStateMask.all_writable()


@pytest.mark.parametrize("dpl", [0, 1, 2, 3])
def test_cs_access_rights_dpl(dpl):
    state = VcpuState(cs_access_rights=(dpl << 5) | 0x1b | (1 << 7))
    assert state.cs_access_rights_dpl() == dpl


def test_state_defaults_invalid():
    state = VcpuState()
    assert state.valid == VcpuStateMask(0)
    assert state.eax == 0


def test_bitmap_empty_first_raises():
    bitmap = InterruptBitmap()
    assert bitmap.is_empty()
    with pytest.raises(ValueError):
        bitmap.first()


def test_bitmap_low_and_high_halves():
    bitmap = InterruptBitmap()
    bitmap.activate(200)
    bitmap.activate(40)
    assert bitmap.first() == 40
    bitmap.deactivate(40)
    assert bitmap.first() == 200
    assert bitmap.lo == 0
    assert bitmap.hi == 1 << (200 - 128)
    bitmap.deactivate(200)
    assert bitmap.is_empty()


@pytest.mark.parametrize("vector", [0, 127, 128, 255])
def test_bitmap_round_trip(vector):
    bitmap = InterruptBitmap()
    bitmap.activate(vector)
    assert not bitmap.is_empty()
    assert bitmap.first() == vector


def test_bitmap_rejects_out_of_range():
    with pytest.raises(ValueError):
        InterruptBitmap().activate(256)


def test_exceptions_carry_data():
    gp = GeneralProtectionFault(13)
    assert isinstance(gp, VcpuException)
    assert gp.error_code == 13
    assert InvalidOpcode() == InvalidOpcode()


def test_abstract_vcpu_cannot_be_instantiated():
    with pytest.raises(TypeError):
        AbstractVcpu()
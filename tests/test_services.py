import pytest

from beamkit.messages import VmPagingMode
from beamkit.services import (
    MAX_VIRTIO_DEVICES,
    SEL4_MAX_PRIO,
    SEL4_MIN_PRIO,
    DbgserverStartInfo,
    LogserverStartInfo,
    SubprocessConfig,
    TimeserverStartInfo,
    VirtioServerStartInfo,
    VmmServerStartInfo,
    dbgserver_config,
    logserver_config,
    timeserver_config,
    virtio_description,
    virtioserver_config,
    vmmserver_config,
)


def test_service_configs():
    for cfg in (logserver_config(), timeserver_config(), virtioserver_config(), dbgserver_config()):
        assert cfg.priority == SEL4_MAX_PRIO - 1
    assert logserver_config().cnode_bits == 8
    assert virtioserver_config().cnode_bits == 14
    assert timeserver_config().badge == 1
    assert timeserver_config().expose_tcb is False
    assert dbgserver_config().expose_tcb is True


def test_vmmserver_config():
    cfg = vmmserver_config(10)
    assert cfg.cnode_bits == 10
    assert cfg.priority == SEL4_MIN_PRIO + 2
    assert cfg.badge == 0 and cfg.expose_tcb


@pytest.mark.parametrize("bits", [0, 32, -1])
def test_cnode_bits_bounds(bits):
    with pytest.raises(ValueError):
        SubprocessConfig(cnode_bits=bits, priority=1, badge=0, expose_tcb=False)


def test_virtio_description():
    assert virtio_description(2, 11) == "2/11"


def test_logserver_page_range():
    info = LogserverStartInfo()
    assert info.page_cap_start == 4
    assert info.page_cap_end - info.page_cap_start == (0xC0000 - 0xA0000) // 0x1000
    assert info.writer_thread_priority == SEL4_MIN_PRIO
    with pytest.raises(ValueError):
        LogserverStartInfo(page_cap_start=10, page_cap_end=5)


def test_timeserver_badges_differ():
    info = TimeserverStartInfo(tsc_frequency_mhz=3000)
    assert info.endpoint_badge != info.notif_badge
    with pytest.raises(ValueError):
        TimeserverStartInfo(tsc_frequency_mhz=3000, endpoint_badge=2, notif_badge=2)


def test_dbgserver_slot_order():
    info = DbgserverStartInfo(tsc_freq_mhz=2000)
    slots = [
        info.logserver_endpoint_cap,
        info.timeserver_endpoint_cap,
        info.i8042_ioport_cap,
        info.i8042_interrupt_cap,
        info.serial_ioport_cap,
        info.serial_interrupt_cap,
        info.notif_rx_cap,
        info.hypervisor_channel_cap,
    ]
    assert slots == list(range(8))


def test_virtio_start_info():
    info = VirtioServerStartInfo(
        tsc_frequency_mhz=2000,
        description=virtio_description(1, 10),
        notify_off_multiplier=4,
        virtio_device_id=1,
    )
    assert info.endpoint_caps == (8,)
    assert info.untyped_2mb_caps == (9, 10)
    assert info.root_cnode_bits == virtioserver_config().cnode_bits
    with pytest.raises(ValueError):
        VirtioServerStartInfo(
            tsc_frequency_mhz=2000,
            description="x",
            notify_off_multiplier=4,
            virtio_device_id=1,
            endpoint_badge=2,
        )


def _vmm_info(**overrides):
    kwargs = dict(
        num_kernel_pages=5,
        num_untyped=3,
        has_rtc_ioport_cap=True,
        num_virtio_devices=2,
        tsc_frequency_mhz=2000,
        cnode_bits=10,
        paging_mode=VmPagingMode.PV,
        affinity=0,
    )
    kwargs.update(overrides)
    return VmmServerStartInfo(**kwargs)


def test_vmm_start_info_defaults():
    info = _vmm_info()
    assert info.description == "test"
    assert info.virtio_device_endpoint_cap_start == 7
    assert info.priority == vmmserver_config(10).priority


def test_vmm_start_info_limits():
    assert _vmm_info(num_virtio_devices=MAX_VIRTIO_DEVICES).num_virtio_devices == MAX_VIRTIO_DEVICES
    with pytest.raises(ValueError):
        _vmm_info(num_virtio_devices=MAX_VIRTIO_DEVICES + 1)
    with pytest.raises(TypeError):
        _vmm_info(paging_mode="pv")
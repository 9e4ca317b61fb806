import logging
import socket

import pytest

from ndp_solicit.core.errors import (
    DiscoveryError,
    InterfaceNotFound,
    PermissionDenied,
    SendFailure,
)
from ndp_solicit.core.ndp_forger import NDPForger
from ndp_solicit.core.raw_socket import MemoryRawSender, SocketRawSender
from ndp_solicit.core.solicitor import NeighborSolicitor
from ndp_solicit.core import network_utils

from conftest import GATEWAY, HW_ADDR, INTERFACE_ADDRESSES


def pton(addr):
    return socket.inet_pton(socket.AF_INET6, addr)


def test_unknown_interface_fails_before_socket_is_opened():
    def factory(*args):
        pytest.fail("socket opened for a missing interface")

    with pytest.raises(InterfaceNotFound):
        NeighborSolicitor('ndpnoexist0', sender=SocketRawSender(socket_factory=factory))


def test_solicit(fake_interface, memory_sender):
    solicitor = NeighborSolicitor(fake_interface, sender=memory_sender)

    result = solicitor.solicit('2001:db8::1', '2001:db8::abcd:ef01:2345')

    assert result.success
    assert result.destination == 'ff02::1:ff01:2345'
    assert result.bytes_sent == 32
    packet, context = memory_sender.sent[0]
    assert packet == NDPForger().build_neighbor_solicitation(
        '2001:db8::1', '2001:db8::abcd:ef01:2345', HW_ADDR)
    assert context.interface == 'eth0'
    assert context.interface_index == 2
    assert context.source == pton('2001:db8::1')
    assert context.hop_limit == 255


def test_timeout_reaches_context(fake_interface, memory_sender):
    solicitor = NeighborSolicitor(fake_interface, sender=memory_sender, timeout=1.5)
    solicitor.solicit('2001:db8::1', '2001:db8::2')
    assert memory_sender.sent[0][1].timeout == 1.5


def test_hardware_address_override(fake_interface, memory_sender):
    solicitor = NeighborSolicitor(fake_interface, sender=memory_sender,
                                  hardware_address=b'\x02\x00\x00\x00\x00\x01')
    solicitor.solicit('2001:db8::1', '2001:db8::2')
    packet, _ = memory_sender.sent[0]
    assert packet[26:32] == b'\x02\x00\x00\x00\x00\x01'


def test_manual_mode_propagates_failure(fake_interface):
    sender = MemoryRawSender(fail_with=PermissionDenied("no raw sockets"))
    solicitor = NeighborSolicitor(fake_interface, sender=sender)
    with pytest.raises(PermissionDenied):
        solicitor.run_manual('2001:db8::1', '2001:db8::2')


def test_auto_mode_sends_once_per_address(fake_interface, memory_sender):
    reported = []
    solicitor = NeighborSolicitor(fake_interface, sender=memory_sender, on_result=reported.append)

    results = solicitor.run_auto()

    assert len(results) == 3
    assert memory_sender.attempts == 3
    assert all(result.success for result in results)
    assert [result.target for result in results] == [GATEWAY] * 3
    assert [ctx.source_str for _, ctx in memory_sender.sent] == INTERFACE_ADDRESSES
    assert {ctx.destination_str for _, ctx in memory_sender.sent} == {'ff02::1:ff00:1'}
    assert reported == results


def test_auto_mode_isolates_failures(fake_interface):
    def fail_second(context):
        if context.source_str == '2001:db8::10':
            return SendFailure("write failed")
        return None

    sender = MemoryRawSender(fail_with=fail_second)
    solicitor = NeighborSolicitor(fake_interface, sender=sender)

    results = solicitor.run_auto()

    assert sender.attempts == 3
    assert [result.success for result in results] == [True, False, True]
    assert isinstance(results[1].error, SendFailure)
    assert results[1].source == '2001:db8::10'


def test_auto_mode_continues_after_bad_source(fake_interface, memory_sender):
    solicitor = NeighborSolicitor(fake_interface, sender=memory_sender)
    results = solicitor.solicit_many(['bogus', '2001:db8::10'], GATEWAY)
    assert [result.success for result in results] == [False, True]


def test_failures_reported_once_through_on_result(fake_interface, caplog):
    reported = []
    sender = MemoryRawSender(fail_with=SendFailure("write failed"))
    solicitor = NeighborSolicitor(fake_interface, sender=sender, on_result=reported.append)

    with caplog.at_level(logging.DEBUG, logger="ndp_solicit"):
        results = solicitor.solicit_many(["2001:db8::10"], GATEWAY)

    assert reported == results
    assert not [record for record in caplog.records if record.levelno >= logging.WARNING]
    assert "Failed to send NS request from 2001:db8::10" in caplog.text


def test_auto_mode_without_addresses(fake_interface, memory_sender, monkeypatch):
    monkeypatch.setattr(network_utils, 'get_ipv6_addresses', lambda name: [])
    solicitor = NeighborSolicitor(fake_interface, sender=memory_sender)
    with pytest.raises(DiscoveryError):
        solicitor.run_auto()
    assert memory_sender.attempts == 0


def test_auto_mode_without_gateway(fake_interface, memory_sender, monkeypatch):
    def no_gateway(interface=None, routes=None):
        raise DiscoveryError("No IPv6 default route with a gateway found")

    monkeypatch.setattr(network_utils, 'find_default_gateway', no_gateway)
    solicitor = NeighborSolicitor(fake_interface, sender=memory_sender)
    with pytest.raises(DiscoveryError):
        solicitor.run_auto()
    assert memory_sender.attempts == 0

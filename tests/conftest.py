import pytest

from ndp_solicit.core import network_utils
from ndp_solicit.core.raw_socket import MemoryRawSender


HW_ADDR = bytes.fromhex('aabbccddeeff')
INTERFACE_ADDRESSES = ['fe80::a8bb:ccff:fedd:eeff', '2001:db8::10', '2001:db8::20']
GATEWAY = 'fe80::1'


class FakeSocket:
    """Stands in for a raw ICMPv6 socket."""

    def __init__(self, *args):
        self.args = args
        self.options = {}
        self.timeout = None
        self.sent = []
        self.closed = False
        self.send_error = None
        self.setsockopt_error = None

    def factory(self, *args):
        self.args = args
        return self

    def setsockopt(self, level, optname, value):
        if self.setsockopt_error is not None:
            raise self.setsockopt_error
        self.options[(level, optname)] = value

    def settimeout(self, timeout):
        self.timeout = timeout

    def sendmsg(self, buffers, ancdata=(), flags=0, address=None):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((b''.join(buffers), list(ancdata), flags, address))
        return sum(len(b) for b in buffers)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def memory_sender():
    return MemoryRawSender()


@pytest.fixture
def fake_interface(monkeypatch):
    """Pretend eth0 exists with three IPv6 addresses and a default gateway."""
    def get_interface_index(name):
        if name != 'eth0':
            raise network_utils.InterfaceNotFound(name, "No such device")
        return 2

    monkeypatch.setattr(network_utils, 'get_interface_index', get_interface_index)
    monkeypatch.setattr(network_utils, 'get_hardware_address', lambda name: HW_ADDR)
    monkeypatch.setattr(network_utils, 'get_ipv6_addresses',
                        lambda name: list(INTERFACE_ADDRESSES))
    monkeypatch.setattr(network_utils, 'find_default_gateway',
                        lambda interface=None, routes=None: GATEWAY)
    return 'eth0'

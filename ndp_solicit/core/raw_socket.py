"""
Raw Socket Module - Raw ICMPv6 transmission for ndp-solicit.

Features:
- Raw ICMPv6 socket creation (kernel builds the IPv6 header)
- Mandatory hop limit of 255 for Neighbor Discovery (RFC 4861 section 7.1.1)
- Per-packet source address and outgoing interface via IPV6_PKTINFO
- Socket opened and closed within every send
- In-memory sender for tests and dry runs
"""

import abc
import logging
import os
import socket
import struct
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .errors import PermissionDenied, SendFailure
from .ndp_forger import NDP_HOP_LIMIT, NDPForger, solicited_node_mac

logger = logging.getLogger(__name__)

# Linux values, missing from the socket module on some platforms
IPV6_PKTINFO = getattr(socket, 'IPV6_PKTINFO', 50)
IPV6_MULTICAST_HOPS = getattr(socket, 'IPV6_MULTICAST_HOPS', 18)
IPV6_MULTICAST_IF = getattr(socket, 'IPV6_MULTICAST_IF', 17)
IPPROTO_ICMPV6 = getattr(socket, 'IPPROTO_ICMPV6', 58)

ETH_P_IPV6 = 0x86DD


@dataclass(frozen=True)
class SendContext:
    """
    Everything the transport needs for a single write.

    hop_limit is not tunable: receivers discard NDP packets whose hop
    limit is not 255.
    """
    interface: str
    interface_index: int
    source: bytes
    destination: bytes
    hop_limit: int = NDP_HOP_LIMIT
    timeout: Optional[float] = None

    def __post_init__(self):
        if self.hop_limit != NDP_HOP_LIMIT:
            raise ValueError(
                f"Neighbor Discovery requires hop limit {NDP_HOP_LIMIT}, got {self.hop_limit}"
            )
        if len(self.source) != 16 or len(self.destination) != 16:
            raise ValueError("Source and destination must be 16-byte IPv6 addresses")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")

    @property
    def source_str(self) -> str:
        return NDPForger.ipv6_to_string(self.source)

    @property
    def destination_str(self) -> str:
        return NDPForger.ipv6_to_string(self.destination)

    def pktinfo(self) -> bytes:
        """struct in6_pktinfo { struct in6_addr ipi6_addr; unsigned int ipi6_ifindex; }"""
        return self.source + struct.pack('@I', self.interface_index)


def is_root() -> bool:
    """
    Check if running as root.

    Returns:
        bool: True if running with root privileges
    """
    return hasattr(os, 'geteuid') and os.geteuid() == 0


class RawSender(abc.ABC):
    """Capability to put one serialized ICMPv6 message on the wire."""

    @abc.abstractmethod
    def send(self, packet: bytes, context: SendContext) -> int:
        """
        Send packet according to context.

        Returns:
            int: Number of bytes sent

        Raises:
            PermissionDenied: If the raw socket cannot be opened
            SendFailure: If the write fails
        """


class SocketRawSender(RawSender):
    """
    Sends through a real raw ICMPv6 socket.

    One socket per call; it is closed on every exit path.
    """

    def __init__(self, socket_factory: Callable[..., socket.socket] = socket.socket):
        self._socket_factory = socket_factory

    def create_icmpv6_socket(self, context: SendContext) -> socket.socket:
        """
        Create a raw ICMPv6 socket configured for Neighbor Discovery.

        Raises:
            PermissionDenied: If not running with CAP_NET_RAW
            SendFailure: If the socket cannot be created or configured
        """
        try:
            sock = self._socket_factory(socket.AF_INET6, socket.SOCK_RAW, IPPROTO_ICMPV6)
        except PermissionError as exc:
            raise PermissionDenied(
                f"Cannot open raw ICMPv6 socket on {context.interface}: {exc}. "
                f"Check for root privileges"
            ) from exc
        except OSError as exc:
            raise SendFailure(
                f"Cannot open raw ICMPv6 socket on {context.interface}: {exc}"
            ) from exc

        try:
            sock.setsockopt(socket.IPPROTO_IPV6, IPV6_MULTICAST_HOPS, context.hop_limit)
            sock.setsockopt(socket.IPPROTO_IPV6, IPV6_MULTICAST_IF, context.interface_index)
            if context.timeout is not None:
                sock.settimeout(context.timeout)
        except OSError as exc:
            sock.close()
            raise SendFailure(
                f"Failed to configure raw socket on {context.interface}: {exc}"
            ) from exc
        return sock

    def send(self, packet: bytes, context: SendContext) -> int:
        sock = self.create_icmpv6_socket(context)
        with sock:
            ancillary = [(socket.IPPROTO_IPV6, IPV6_PKTINFO, context.pktinfo())]
            address = (context.destination_str, 0, 0, context.interface_index)
            try:
                sent = sock.sendmsg([packet], ancillary, 0, address)
            except OSError as exc:
                raise SendFailure(
                    f"Failed to write packet from {context.source_str} to "
                    f"{context.destination_str} on {context.interface}: {exc}"
                ) from exc

        logger.debug("Wrote %d bytes to %s via %s (ifindex %d)",
                     sent, context.destination_str, context.interface, context.interface_index)
        return sent


class MemoryRawSender(RawSender):
    """
    In-memory sender.

    Records every (packet, context) pair instead of touching the network.
    If fail_with is set, it is raised for every send; if it is a callable,
    it is called with the context and may return an exception to raise.
    """

    def __init__(self, fail_with=None):
        self.sent: List[Tuple[bytes, SendContext]] = []
        self.attempts = 0
        self.fail_with = fail_with

    def send(self, packet: bytes, context: SendContext) -> int:
        self.attempts += 1
        error = self.fail_with
        if error is not None and not isinstance(error, BaseException):
            error = error(context)
        if error is not None:
            raise error

        self.sent.append((bytes(packet), context))
        return len(packet)


class CapturingRawSender(RawSender):
    """
    Wraps another sender and records each delivered packet to a capture
    writer as an Ethernet + IPv6 frame.
    """

    def __init__(self, inner: RawSender, writer, hardware_address: bytes,
                 forger: Optional[NDPForger] = None):
        self.inner = inner
        self.writer = writer
        self.hardware_address = hardware_address
        self.forger = forger or NDPForger()

    def frame(self, packet: bytes, context: SendContext) -> bytes:
        """Rebuild the frame the kernel puts on the wire."""
        ethernet = (
            solicited_node_mac(context.destination) +
            self.hardware_address[:6].ljust(6, b'\x00') +
            struct.pack('!H', ETH_P_IPV6)
        )
        ipv6 = self.forger.build_ipv6_header(
            src_addr=context.source,
            dst_addr=context.destination,
            payload_length=len(packet),
            hop_limit=context.hop_limit,
        )
        return ethernet + ipv6 + packet

    def send(self, packet: bytes, context: SendContext) -> int:
        sent = self.inner.send(packet, context)
        try:
            self.writer.write_packet(self.frame(packet, context))
        except OSError as exc:
            # The packet is already on the wire; only the capture is lost
            logger.warning("Could not record packet from %s: %s", context.source_str, exc)
        return sent

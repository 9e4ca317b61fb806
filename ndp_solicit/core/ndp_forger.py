"""
NDP Packet Forger - ICMPv6 Neighbor Solicitation crafting module.

Provides Neighbor Discovery (RFC 4861) packet building:
- Solicited-Node multicast address derivation (RFC 4291 section 2.7.1)
- Neighbor Solicitation message construction (RFC 4861 section 4.3)
- Source Link-Layer Address option encoding (RFC 4861 section 4.6.1)
- ICMPv6 checksum over the IPv6 pseudo-header
- IPv6 header construction for packet captures

All builders are pure: identical inputs always produce identical bytes.
"""

import re
import socket
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Union

from .checksum import OptimizedChecksum, ChecksumInputError, ICMPV6_NEXT_HEADER
from .errors import InvalidAddressLength, SerializationError


AddressLike = Union[bytes, bytearray, str]

# ff02::1:ff00:0/104
SOLICITED_NODE_PREFIX = bytes.fromhex('ff0200000000000000000001ff')

NDP_HOP_LIMIT = 255


class ICMPv6Type(IntEnum):
    """ICMPv6 message types sent by this tool."""
    NEIGHBOR_SOLICITATION = 135


class NDPOptionType(IntEnum):
    """Neighbor Discovery option types (RFC 4861 section 4.6) this tool emits."""
    SOURCE_LINK_LAYER_ADDRESS = 1


def solicited_node_address(target: bytes) -> bytes:
    """
    Derive the Solicited-Node multicast address for a unicast target.

    The result is ff02::1:ffXX:XXXX where XX:XXXX are the low 24 bits of
    the target.

    Raises:
        InvalidAddressLength: If target is not exactly 16 bytes
    """
    if len(target) != 16:
        raise InvalidAddressLength(target, "target address")
    return SOLICITED_NODE_PREFIX + bytes(target[13:])


def solicited_node_address_str(target: str) -> str:
    """Textual variant of solicited_node_address()."""
    return NDPForger.ipv6_to_string(
        solicited_node_address(NDPForger.parse_ipv6_address(target))
    )


def solicited_node_mac(multicast: bytes) -> bytes:
    """Ethernet multicast MAC for an IPv6 multicast address (RFC 2464 section 7)."""
    if len(multicast) != 16:
        raise InvalidAddressLength(multicast, "multicast address")
    return b'\x33\x33' + bytes(multicast[12:])


def parse_hardware_address(value: Union[bytes, bytearray, str]) -> bytes:
    """
    Parse a link-layer address.

    Accepts raw bytes or the textual 'aa:bb:cc:dd:ee:ff' / 'aa-bb-...' forms.

    Raises:
        SerializationError: If the text is not a valid hex address
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)

    cleaned = value.strip()
    if not cleaned:
        return b''
    if not re.match(r'^[0-9a-fA-F]{1,2}([:-][0-9a-fA-F]{1,2})*$', cleaned):
        raise SerializationError(f"Invalid hardware address: {value!r}")
    return bytes(int(octet, 16) for octet in re.split(r'[:-]', cleaned))


def format_hardware_address(value: bytes) -> str:
    """Format a link-layer address as aa:bb:cc:dd:ee:ff."""
    return ':'.join(f'{octet:02x}' for octet in value)


@dataclass
class NDPOption:
    """
    A Neighbor Discovery option.

    Option Format:
    +---------------+---------------+-------------------------------+
    |     Type      |    Length     |              ...              |
    +---------------+---------------+-------------------------------+
    ~                            Value                              ~
    +---------------------------------------------------------------+

    Length is expressed in units of 8 octets and covers the type and
    length fields. The value is zero padded to the unit boundary.
    """
    option_type: int
    data: bytes

    MAX_UNITS = 255

    @property
    def length_units(self) -> int:
        return (2 + len(self.data) + 7) // 8

    def to_bytes(self) -> bytes:
        """Serialize option to bytes."""
        units = self.length_units
        if units > self.MAX_UNITS:
            raise SerializationError(
                f"Option type {self.option_type} too long: {len(self.data)} bytes "
                f"needs {units} units (max {self.MAX_UNITS})"
            )
        padding = units * 8 - 2 - len(self.data)
        return struct.pack('>BB', self.option_type, units) + self.data + bytes(padding)

    @classmethod
    def source_link_layer_address(cls, hardware_address: bytes) -> 'NDPOption':
        """Build a Source Link-Layer Address option."""
        if not hardware_address:
            raise SerializationError("Hardware address must not be empty")
        return cls(NDPOptionType.SOURCE_LINK_LAYER_ADDRESS, bytes(hardware_address))


@dataclass
class NeighborSolicitation:
    """
    ICMPv6 Neighbor Solicitation message (RFC 4861 section 4.3).

    Message Format:
    +---------------+---------------+-------------------------------+
    |     Type      |     Code      |          Checksum             |
    +---------------+---------------+-------------------------------+
    |                           Reserved                            |
    +---------------------------------------------------------------+
    |                                                               |
    +                       Target Address                          +
    |                          (128 bits)                           |
    +---------------------------------------------------------------+
    |   Options ...
    +-----------------------
    """
    target: bytes
    options: List[NDPOption] = field(default_factory=list)
    icmp_type: int = ICMPv6Type.NEIGHBOR_SOLICITATION
    code: int = 0
    reserved: int = 0
    checksum: int = 0

    HEADER_SIZE = 24

    def to_bytes(self, checksum: int = None) -> bytes:
        """
        Serialize the message.

        Args:
            checksum: Checksum to write (defaults to self.checksum)
        """
        if len(self.target) != 16:
            raise InvalidAddressLength(self.target, "target address")
        if checksum is None:
            checksum = self.checksum

        header = struct.pack('>BBHI', self.icmp_type, self.code, checksum, self.reserved)
        return header + bytes(self.target) + b''.join(opt.to_bytes() for opt in self.options)


class NDPForger:
    """
    Neighbor Discovery packet forger.

    Features:
    - Neighbor Solicitation construction with Source Link-Layer option
    - Solicited-Node destination derivation
    - ICMPv6 checksum over the IPv6 pseudo-header
    - IPv6 header construction (hop limit 255) for captures
    """

    IPV6_VERSION = 6
    IPV6_HEADER_SIZE = 40

    @classmethod
    def validate_ipv6_address(cls, addr: str) -> bool:
        """Check textual IPv6 address format."""
        try:
            socket.inet_pton(socket.AF_INET6, addr)
            return True
        except (OSError, ValueError, TypeError):
            return False

    @classmethod
    def parse_ipv6_address(cls, addr: AddressLike) -> bytes:
        """
        Parse an IPv6 address to 16-byte binary format.

        Args:
            addr: IPv6 address string or bytes

        Returns:
            16-byte representation

        Raises:
            SerializationError: If the string is not a valid IPv6 address
        """
        if isinstance(addr, (bytes, bytearray)):
            return bytes(addr)
        # Strip zone index (fe80::1%eth0)
        text = addr.split('%', 1)[0]
        if not cls.validate_ipv6_address(text):
            raise SerializationError(f"Invalid IPv6 address: {addr}")
        return socket.inet_pton(socket.AF_INET6, text)

    @classmethod
    def ipv6_to_string(cls, addr: bytes) -> str:
        """
        Convert 16-byte IPv6 address to string format.

        Raises:
            InvalidAddressLength: If address length is invalid
        """
        if len(addr) != 16:
            raise InvalidAddressLength(addr)
        return socket.inet_ntop(socket.AF_INET6, bytes(addr))

    def build_neighbor_solicitation(self,
                                    source: AddressLike,
                                    target: AddressLike,
                                    hardware_address: bytes) -> bytes:
        """
        Build a serialized ICMPv6 Neighbor Solicitation.

        The checksum is computed over the pseudo-header
        (source, solicited-node(target), length, 58) and the message with
        its checksum field zeroed.

        Args:
            source: Source IPv6 address
            target: Target IPv6 address
            hardware_address: Link-layer address of the sending interface

        Returns:
            ICMPv6 message bytes (no IPv6 header)

        Raises:
            SerializationError: If the hardware address is empty or too long
            ChecksumInputError: If an address is not 16 bytes
        """
        src_addr = self.parse_ipv6_address(source)
        tgt_addr = self.parse_ipv6_address(target)
        if len(src_addr) != 16 or len(tgt_addr) != 16:
            raise ChecksumInputError(
                f"IPv6 addresses must be 16 bytes each "
                f"(source={len(src_addr)}, target={len(tgt_addr)})"
            )

        message = NeighborSolicitation(
            target=tgt_addr,
            options=[
                NDPOption.source_link_layer_address(
                    parse_hardware_address(hardware_address)
                )
            ],
        )

        message.checksum = OptimizedChecksum.icmpv6_checksum(
            src_ip=src_addr,
            dst_ip=solicited_node_address(tgt_addr),
            icmp_message=message.to_bytes(checksum=0),
        )
        return message.to_bytes()

    @staticmethod
    def verify_checksum(source: bytes, destination: bytes, message: bytes) -> bool:
        """Return True if the ones-complement sum over pseudo-header + message is zero."""
        pseudo = OptimizedChecksum.ipv6_pseudo_header(source, destination, len(message))
        return OptimizedChecksum.in_cksum(pseudo + bytes(message)) == 0

    def build_ipv6_header(self,
                          src_addr: bytes,
                          dst_addr: bytes,
                          payload_length: int,
                          next_header: int = ICMPV6_NEXT_HEADER,
                          hop_limit: int = NDP_HOP_LIMIT) -> bytes:
        """
        Build IPv6 header (40 bytes).

        Only used to wrap solicitations for packet captures; on the wire the
        kernel builds the header for the raw ICMPv6 socket.

        Raises:
            InvalidAddressLength: If addresses are not 16 bytes
            SerializationError: If parameters are out of range
        """
        if len(src_addr) != 16:
            raise InvalidAddressLength(src_addr, "source address")
        if len(dst_addr) != 16:
            raise InvalidAddressLength(dst_addr, "destination address")
        if not 0 <= payload_length <= 0xFFFF:
            raise SerializationError("Payload length must be 0-65535")
        if not 1 <= hop_limit <= 255:
            raise SerializationError("Hop limit must be 1-255")

        # Version(4) | Traffic Class(8) | Flow Label(20)
        version_tc_fl = self.IPV6_VERSION << 28

        header = struct.pack('>IHBB', version_tc_fl, payload_length, next_header, hop_limit)
        return header + bytes(src_addr) + bytes(dst_addr)

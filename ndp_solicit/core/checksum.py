"""
Checksum Module - RFC 1071 compliant checksum calculations for ICMPv6.

Provides correct ones-complement checksum computation for:
- Arbitrary byte strings (RFC 1071)
- IPv6 pseudo-headers (RFC 8200 section 8.1)
- ICMPv6 messages (RFC 4443 section 2.3)

Implementation follows RFC 1071 "Computing the Internet Checksum" exactly.

All functions are pure and thread-safe.
"""

import struct

from .errors import SerializationError


# Next Header value for ICMPv6
ICMPV6_NEXT_HEADER = 58


class ChecksumError(Exception):
    """Raised when checksum calculation fails."""
    pass


class ChecksumInputError(ChecksumError, SerializationError):
    """Raised when pseudo-header addresses are not 16 bytes."""
    pass


def icmpv6_checksum(src_ip: bytes, dst_ip: bytes, icmp_message: bytes) -> int:
    """
    Calculate ICMPv6 checksum.

    Args:
        src_ip: Source IPv6 address (16 bytes)
        dst_ip: Destination IPv6 address (16 bytes)
        icmp_message: ICMPv6 message with the checksum field zeroed

    Returns:
        16-bit checksum value
    """
    return OptimizedChecksum.icmpv6_checksum(src_ip, dst_ip, icmp_message)


class OptimizedChecksum:
    """
    RFC 1071 compliant ones-complement checksum calculator.

    This implementation follows RFC 1071 "Computing the Internet Checksum" exactly:
    1. Sum all 16-bit words with 32-bit accumulator
    2. Fold 32-bit sum to 16-bit (propagate carry)
    3. Return ones-complement (bitwise NOT)

    Example:
        >>> src = bytes.fromhex('20010db8000000000000000000000001')
        >>> dst = bytes.fromhex('ff0200000000000000000001ff012345')
        >>> csum = OptimizedChecksum.icmpv6_checksum(src, dst, ns_message)
    """

    @staticmethod
    def _fold_32_to_16(sum32: int) -> int:
        """
        Fold 32-bit sum to 16-bit with carry propagation per RFC 1071.

        The accumulator may have overflowed. The overflow bits are added
        back into the lower 16 bits until no more overflow remains.

        Args:
            sum32: 32-bit integer sum

        Returns:
            16-bit folded sum
        """
        while sum32 >> 16:
            sum32 = (sum32 & 0xFFFF) + (sum32 >> 16)
        return sum32 & 0xFFFF

    @staticmethod
    def _ones_complement_16(value: int) -> int:
        """Return the ones-complement of a 16-bit value."""
        return (~value) & 0xFFFF

    @staticmethod
    def in_cksum(data: bytes) -> int:
        """
        Compute Internet checksum per RFC 1071.

        Algorithm:
            1. Pad data to even number of bytes if needed
            2. Sum all 16-bit words using 32-bit accumulator
            3. Fold 32-bit sum to 16-bit
            4. Return ones-complement

        Args:
            data: Bytes to checksum

        Returns:
            16-bit ones-complement checksum

        Raises:
            ChecksumError: If data is not bytes

        Example:
            >>> OptimizedChecksum.in_cksum(b'\\x00\\x01\\x00\\x02')
            65532
        """
        if not isinstance(data, (bytes, bytearray)):
            raise ChecksumError("Data must be bytes")

        if len(data) % 2:
            # Pad to even length with zero byte
            data = bytes(data) + b'\x00'

        total = 0
        for i in range(0, len(data), 2):
            # Read 16-bit word (big-endian/network byte order)
            total += (data[i] << 8) | data[i + 1]

        total = OptimizedChecksum._fold_32_to_16(total)
        return OptimizedChecksum._ones_complement_16(total)

    @classmethod
    def ipv6_pseudo_header(cls,
                           src_ip: bytes,
                           dst_ip: bytes,
                           upper_layer_length: int,
                           next_header: int = ICMPV6_NEXT_HEADER) -> bytes:
        """
        Build the IPv6 pseudo-header used for upper-layer checksums.

        IPv6 pseudo-header format (40 bytes):
            - Source Address: 16 bytes
            - Destination Address: 16 bytes
            - Upper-Layer Packet Length: 4 bytes (32-bit, big-endian)
            - Zero: 3 bytes
            - Next Header: 1 byte (ICMPv6 = 58)

        The pseudo-header is never transmitted.

        Raises:
            ChecksumInputError: If IP addresses are not 16 bytes each
        """
        if len(src_ip) != 16 or len(dst_ip) != 16:
            raise ChecksumInputError(
                f"IPv6 addresses must be 16 bytes each "
                f"(source={len(src_ip)}, destination={len(dst_ip)})"
            )

        return (
            bytes(src_ip) + bytes(dst_ip) +
            struct.pack('>I', upper_layer_length) +
            bytes(3) +
            bytes([next_header])
        )

    @classmethod
    def icmpv6_checksum(cls,
                        src_ip: bytes,
                        dst_ip: bytes,
                        icmp_message: bytes) -> int:
        """
        Calculate ICMPv6 checksum per RFC 4443.

        The checksum covers the IPv6 pseudo-header (next header 58) followed
        by the whole ICMPv6 message. The checksum field of the message must
        be zero before calculation.

        Args:
            src_ip: Source IPv6 address (16 bytes)
            dst_ip: Destination IPv6 address (16 bytes)
            icmp_message: ICMPv6 message bytes

        Returns:
            16-bit checksum value

        Raises:
            ChecksumInputError: If IP addresses are not 16 bytes each
        """
        pseudo = cls.ipv6_pseudo_header(src_ip, dst_ip, len(icmp_message))
        return cls.in_cksum(pseudo + bytes(icmp_message))

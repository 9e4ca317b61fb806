"""
Core module initialization for ndp-solicit.
"""

from .checksum import (
    OptimizedChecksum,
    ChecksumError,
    ChecksumInputError,
    icmpv6_checksum,
)
from .errors import (
    NDPError,
    ConfigurationError,
    InterfaceNotFound,
    DiscoveryError,
    SerializationError,
    InvalidAddressLength,
    TransportError,
    PermissionDenied,
    SendFailure,
)
from .ndp_forger import (
    NDPForger,
    NDPOption,
    NeighborSolicitation,
    solicited_node_address,
    solicited_node_address_str,
)
from .raw_socket import (
    RawSender,
    SocketRawSender,
    MemoryRawSender,
    CapturingRawSender,
    SendContext,
)

__all__ = [
    'OptimizedChecksum',
    'ChecksumError',
    'ChecksumInputError',
    'icmpv6_checksum',
    'NDPError',
    'ConfigurationError',
    'InterfaceNotFound',
    'DiscoveryError',
    'SerializationError',
    'InvalidAddressLength',
    'TransportError',
    'PermissionDenied',
    'SendFailure',
    'NDPForger',
    'NDPOption',
    'NeighborSolicitation',
    'solicited_node_address',
    'solicited_node_address_str',
    'RawSender',
    'SocketRawSender',
    'MemoryRawSender',
    'CapturingRawSender',
    'SendContext',
]

"""
Error taxonomy for ndp-solicit.

Every exception carries enough context (interface name, addresses) to be
diagnosed from the message alone.

    NDPError
    ├── ConfigurationError
    │   └── InterfaceNotFound
    ├── DiscoveryError
    ├── SerializationError
    │   ├── InvalidAddressLength
    │   └── ChecksumInputError   (core.checksum)
    └── TransportError
        ├── PermissionDenied
        └── SendFailure
"""


class NDPError(Exception):
    """Base class for all ndp-solicit errors."""
    pass


class ConfigurationError(NDPError):
    """Raised when required input is missing or invalid."""
    pass


class InterfaceNotFound(ConfigurationError):
    """Raised when the named network interface does not exist."""

    def __init__(self, interface: str, reason: str = ""):
        self.interface = interface
        message = f"Interface '{interface}' not found"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class DiscoveryError(NDPError):
    """Raised when interface addresses or the default gateway cannot be resolved."""
    pass


class SerializationError(NDPError):
    """Raised when a Neighbor Solicitation cannot be encoded."""
    pass


class InvalidAddressLength(SerializationError, ValueError):
    """Raised when an IPv6 address is not exactly 16 bytes."""

    def __init__(self, address: bytes, field: str = "address"):
        self.address = address
        super().__init__(
            f"IPv6 {field} must be 16 bytes, got {len(address)} ({address!r})"
        )


class TransportError(NDPError):
    """Base class for raw socket failures."""
    pass


class PermissionDenied(TransportError):
    """Raised when the raw ICMPv6 socket cannot be opened for lack of privilege."""
    pass


class SendFailure(TransportError):
    """Raised when writing the packet to the raw socket fails."""
    pass

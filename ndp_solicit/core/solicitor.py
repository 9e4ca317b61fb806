"""
Neighbor Solicitor - drives build and transmission of Neighbor Solicitations.

Manual mode sends one solicitation from an explicit source to an explicit
target. Auto mode discovers the IPv6 default gateway and solicits it once
from every IPv6 address on the interface. Pairs are processed
sequentially; a failing pair never stops the others.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from . import network_utils
from .errors import DiscoveryError, NDPError
from .ndp_forger import AddressLike, NDPForger, solicited_node_address
from .raw_socket import RawSender, SendContext, SocketRawSender

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Outcome of one (source, target) solicitation."""
    source: str
    target: str
    destination: Optional[str] = None
    success: bool = False
    bytes_sent: int = 0
    error: Optional[NDPError] = None


class NeighborSolicitor:
    """
    Sends Neighbor Solicitations out of one interface.

    The interface is resolved at construction, before any socket is
    opened, so a bad name fails fast with InterfaceNotFound.

    Usage:
        solicitor = NeighborSolicitor("eth0")
        solicitor.solicit("fe80::1", "fe80::2")
        results = solicitor.run_auto()
    """

    def __init__(self,
                 interface: str,
                 sender: Optional[RawSender] = None,
                 timeout: Optional[float] = None,
                 forger: Optional[NDPForger] = None,
                 hardware_address: Optional[bytes] = None,
                 on_result: Optional[Callable[[SendResult], None]] = None):
        """
        Args:
            interface: Outgoing interface name
            sender: Transport (defaults to a real raw socket sender)
            timeout: Optional send timeout in seconds
            forger: Packet builder
            hardware_address: Override the interface's link-layer address
            on_result: Called with every SendResult as it is produced
        """
        self.interface = interface
        self.interface_index = network_utils.get_interface_index(interface)
        if hardware_address is None:
            hardware_address = network_utils.get_hardware_address(interface)
        self.hardware_address = hardware_address
        self.sender = sender or SocketRawSender()
        self.timeout = timeout
        self.forger = forger or NDPForger()
        self.on_result = on_result

    def solicit(self, source: AddressLike, target: AddressLike) -> SendResult:
        """
        Build and send one Neighbor Solicitation.

        Raises:
            SerializationError: If the packet cannot be built
            PermissionDenied: If the raw socket cannot be opened
            SendFailure: If the write fails
        """
        src_addr = self.forger.parse_ipv6_address(source)
        tgt_addr = self.forger.parse_ipv6_address(target)

        packet = self.forger.build_neighbor_solicitation(src_addr, tgt_addr, self.hardware_address)
        destination = solicited_node_address(tgt_addr)

        context = SendContext(
            interface=self.interface,
            interface_index=self.interface_index,
            source=src_addr,
            destination=destination,
            timeout=self.timeout,
        )
        sent = self.sender.send(packet, context)

        result = SendResult(
            source=context.source_str,
            target=self.forger.ipv6_to_string(tgt_addr),
            destination=context.destination_str,
            success=True,
            bytes_sent=sent,
        )
        logger.info("Sent Neighbor Solicitation for %s to %s from %s (%d bytes)",
                    result.target, result.destination, result.source, sent)
        return result

    def solicit_many(self, sources: List[AddressLike], target: AddressLike) -> List[SendResult]:
        """
        Solicit target once from each source.

        Failures are recorded in the returned results and handed to
        on_result for reporting; they never stop the remaining sources.
        """
        results = []
        for source in sources:
            try:
                result = self.solicit(source, target)
            except NDPError as exc:
                logger.debug("Failed to send NS request from %s: %s", source, exc)
                result = SendResult(source=str(source), target=str(target), error=exc)
            results.append(result)
            if self.on_result is not None:
                self.on_result(result)
        return results

    def run_manual(self, source: AddressLike, target: AddressLike) -> SendResult:
        """Manual mode: a single solicitation; errors propagate."""
        result = self.solicit(source, target)
        if self.on_result is not None:
            self.on_result(result)
        return result

    def discover(self) -> tuple:
        """
        Resolve the default gateway and the interface's IPv6 addresses.

        Returns:
            (gateway, sources)

        Raises:
            DiscoveryError: If there is no gateway or no IPv6 address
        """
        gateway = network_utils.find_default_gateway(self.interface)
        sources = network_utils.get_ipv6_addresses(self.interface)
        if not sources:
            raise DiscoveryError(f"No IPv6 addresses found on interface '{self.interface}'")
        return gateway, sources

    def run_auto(self) -> List[SendResult]:
        """Auto mode: solicit the default gateway from every address on the interface."""
        gateway, sources = self.discover()
        logger.info("Soliciting gateway %s from %d addresses on %s",
                    gateway, len(sources), self.interface)
        return self.solicit_many(sources, gateway)

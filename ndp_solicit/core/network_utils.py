"""
Network Utilities Module
========================

Interface and routing introspection for ndp-solicit, backed by scapy's
interface list and IPv6 routing table.
"""

import logging
import socket
from typing import Iterable, List, Optional, Tuple

from scapy.arch import get_if_hwaddr
from scapy.config import conf
from scapy.error import Scapy_Exception

from .errors import DiscoveryError, InterfaceNotFound
from .ndp_forger import parse_hardware_address

if conf.route6 is None:
    # only to initialize conf.route6
    import scapy.route6  # noqa: F401

logger = logging.getLogger(__name__)

UNSPECIFIED = '::'


def get_interface_index(name: str) -> int:
    """
    Resolve an interface name to its kernel index.

    Raises:
        InterfaceNotFound: If no interface has that name
    """
    if not name:
        raise InterfaceNotFound(name, "empty interface name")
    try:
        return socket.if_nametoindex(name)
    except (OSError, ValueError) as exc:
        raise InterfaceNotFound(name, str(exc)) from exc


def get_hardware_address(name: str) -> bytes:
    """
    Link-layer address of an interface.

    Raises:
        DiscoveryError: If the address cannot be read
    """
    try:
        return parse_hardware_address(get_if_hwaddr(name))
    except (OSError, ValueError, Scapy_Exception) as exc:
        raise DiscoveryError(f"Failed to read hardware address of '{name}': {exc}") from exc


def get_ipv6_addresses(name: str) -> List[str]:
    """
    Every IPv6 address configured on an interface, in kernel order.

    Raises:
        InterfaceNotFound: If scapy does not know the interface
    """
    try:
        iface = conf.ifaces.dev_from_name(name)
    except ValueError as exc:
        raise InterfaceNotFound(name, str(exc)) from exc
    return list(iface.ips[6])


def list_ipv6_interfaces() -> List[Tuple[str, List[str]]]:
    """List (name, IPv6 addresses) for every interface scapy knows about."""
    return [
        (iface.name, list(iface.ips[6]))
        for iface in conf.ifaces.values()
    ]


def find_default_gateway(interface: Optional[str] = None,
                         routes: Optional[Iterable[tuple]] = None) -> str:
    """
    Find the IPv6 default gateway from the routing table.

    Default routes (prefix length 0 with a next hop) on the given interface
    are preferred; otherwise the best default route on any interface is
    used. Ties are broken by metric.

    Args:
        interface: Preferred outgoing interface
        routes: Route entries (prefix, plen, gw, iface, candidates, metric);
                defaults to scapy's IPv6 routing table

    Raises:
        DiscoveryError: If no default route with a gateway exists
    """
    if routes is None:
        routes = conf.route6.routes

    defaults = []
    for entry in routes:
        _prefix, plen, gateway, iface = entry[:4]
        metric = entry[5] if len(entry) > 5 else 0
        if plen != 0 or not gateway or gateway == UNSPECIFIED:
            continue
        defaults.append((iface != interface, metric, gateway, iface))

    if not defaults:
        raise DiscoveryError("No IPv6 default route with a gateway found")

    defaults.sort(key=lambda item: (item[0], item[1]))
    _, metric, gateway, iface = defaults[0]
    if interface and iface != interface:
        logger.warning("No default route via %s, using gateway %s on %s",
                       interface, gateway, iface)
    logger.debug("Default gateway %s via %s (metric %s)", gateway, iface, metric)
    return gateway

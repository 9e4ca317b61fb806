"""
ndp-solicit - IPv6 Neighbor Solicitation sender
===============================================

Crafts and sends a single ICMPv6 Neighbor Solicitation, either to an
explicit target or from every address of an interface to the default
gateway.

Usage:
    from ndp_solicit import NeighborSolicitor
    NeighborSolicitor("eth0").run_auto()
"""

__version__ = "1.0.0"

from ndp_solicit.core.solicitor import NeighborSolicitor, SendResult

__all__ = [
    'NeighborSolicitor',
    'SendResult',
    '__version__',
]

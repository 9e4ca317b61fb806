#!/usr/bin/env python3
"""
ndp-solicit - IPv6 Neighbor Solicitation sender
===============================================

Sends an ICMPv6 Neighbor Solicitation (RFC 4861) out of one interface.

USAGE:
    ndp-solicit -i <iface> -s <source> -d <target>     Manual mode
    ndp-solicit -i <iface> --gateway                   Auto gateway mode

OPTIONS:
    -i, --iface <name>        Network interface (required)
    -s, --src <addr>          Source IPv6 address (manual mode)
    -d, --dst <addr>          Target IPv6 address (manual mode)
    -g, --gateway             Discover the default gateway and solicit it
                              from every IPv6 address on the interface
    --timeout <sec>           Send timeout (default: none)
    --strict                  Exit 1 in auto mode if any send failed
    --pcap <file>             Record sent solicitations to a pcap file
    --dry-run                 Build packets without sending them
    -c, --config <file>       JSON configuration file
    --init-config <file>      Write a default configuration file
    --list-interfaces         List interfaces and their IPv6 addresses
    -v, --verbose             Debug logging
    -q, --quiet               Errors only
    --no-color                Disable colors

EXIT CODES:
    0   Solicitation(s) sent; in auto mode also when some sources failed
    1   Missing/invalid parameters, discovery failure, or manual send failure
    2   Command-line syntax error

Raw ICMPv6 sockets require root (or CAP_NET_RAW).
"""

import argparse
import logging
import re
import sys
from typing import List, Optional

from . import __version__
from .config.config_manager import ConfigManager, create_default_config
from .core import network_utils
from .core.errors import ConfigurationError, NDPError
from .core.ndp_forger import NDPForger, format_hardware_address
from .core.raw_socket import CapturingRawSender, MemoryRawSender, SocketRawSender, is_root
from .core.solicitor import NeighborSolicitor, SendResult
from .output.console import ConsoleFormatter
from .output.pcap_writer import PCAPWriter

logger = logging.getLogger(__name__)

MAX_TIMEOUT = 300


# =============================================================================
# ARGUMENT PARSER
# =============================================================================

class SolicitParser(argparse.ArgumentParser):
    def __init__(self, *args, **kwargs):
        super().__init__(
            *args,
            prog="ndp-solicit",
            description="Send an IPv6 Neighbor Solicitation (NS) packet.",
            epilog=(
                "Modes:\n"
                "  1. Manual Mode:       ndp-solicit -i <interface> -s <source_ip> -d <target_ip>\n"
                "  2. Auto Gateway Mode: ndp-solicit -i <interface> --gateway\n"
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            **kwargs
        )

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(2, ConsoleFormatter.error(message) + "\n")


# =============================================================================
# INPUT VALIDATION FUNCTIONS
# =============================================================================

def validate_timeout_value(value) -> float:
    try:
        timeout = float(value)
    except (ValueError, TypeError):
        raise argparse.ArgumentTypeError(f"Timeout must be a number, got '{value}'")

    if not 0 < timeout <= MAX_TIMEOUT:
        raise argparse.ArgumentTypeError(
            f"Timeout must be greater than 0 and at most {MAX_TIMEOUT}, got {timeout}"
        )
    return timeout


def validate_interface_name(name: str) -> str:
    if not name or not name.strip():
        raise ConfigurationError("Interface name cannot be empty")

    stripped = name.strip()
    if not re.match(r'^[a-zA-Z0-9_.:@-]+$', stripped):
        raise ConfigurationError(f"Invalid interface name: {name}")
    return stripped


def validate_ipv6_value(value: str, field_name: str) -> str:
    if not NDPForger.validate_ipv6_address(value.split('%', 1)[0]):
        raise ConfigurationError(f"Invalid {field_name} IP address: {value}")
    return value


# =============================================================================
# OUTPUT
# =============================================================================

def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
    )


def output_error(message: str) -> None:
    print(ConsoleFormatter.error(message), file=sys.stderr)


def output_warning(message: str) -> None:
    print(ConsoleFormatter.warning(message), file=sys.stderr)


def output_info(message: str) -> None:
    print(ConsoleFormatter.info(message))


def output_success(message: str) -> None:
    print(ConsoleFormatter.success(message))


def report_result(result: SendResult) -> None:
    """Print one per-source outcome."""
    if result.success:
        print(ConsoleFormatter.packet_sent(
            result.target, result.destination, result.source, result.bytes_sent
        ))
    else:
        output_error(f"Failed to send NS request from {result.source}: {result.error}")


def list_interfaces() -> None:
    for name, addresses in network_utils.list_ipv6_interfaces():
        print(f"{name}")
        for address in addresses:
            print(f"    {address}")
        if not addresses:
            print("    (no IPv6 addresses)")


def dump_packets(sender: MemoryRawSender) -> None:
    for packet, context in sender.sent:
        output_info(
            f"[dry-run] {context.source_str} -> {context.destination_str} "
            f"on {context.interface} (ifindex {context.interface_index}, "
            f"hop limit {context.hop_limit})"
        )
        print(f"    {packet.hex()}")


# =============================================================================
# MODES
# =============================================================================

def run_auto(solicitor: NeighborSolicitor, strict: bool) -> int:
    output_info(f"Entering Auto Gateway Mode for interface: {solicitor.interface}")

    gateway, sources = solicitor.discover()
    output_success(f"Successfully discovered IPv6 gateway: {gateway}")
    output_success(f"Found {len(sources)} IPv6 addresses on interface '{solicitor.interface}'")

    results = []
    for source in sources:
        print(ConsoleFormatter.separator())
        results.extend(solicitor.solicit_many([source], gateway))

    failed = [result for result in results if not result.success]
    if failed:
        output_warning(f"{len(failed)} of {len(results)} solicitations failed")
        if strict:
            return 1
    return 0


def run_manual(solicitor: NeighborSolicitor, source: str, target: str) -> int:
    solicitor.run_manual(source, target)
    return 0


# =============================================================================
# MAIN
# =============================================================================

def create_parser() -> SolicitParser:
    """Create the argument parser."""
    parser = SolicitParser()

    parser.add_argument('-i', '--iface',
                        default=None,
                        help='(Required) Name of the network interface to use (e.g., eth0)')
    parser.add_argument('-s', '--src',
                        default=None,
                        help='(Manual Mode) Source IPv6 address')
    parser.add_argument('-d', '--dst',
                        default=None,
                        help='(Manual Mode) Target IPv6 address to query')
    parser.add_argument('-g', '--gateway',
                        action='store_true',
                        help='(Auto Mode) Discover the gateway and send NS requests '
                             'from all IPv6 addresses on the interface')

    parser.add_argument('--timeout',
                        type=validate_timeout_value,
                        default=None,
                        help='Send timeout in seconds (default: none)')
    parser.add_argument('--strict',
                        action='store_true',
                        help='Auto mode: exit 1 if any solicitation failed')
    parser.add_argument('--pcap',
                        default=None,
                        metavar='FILE',
                        help='Record sent solicitations to a pcap file')
    parser.add_argument('--dry-run',
                        action='store_true',
                        help='Build the packets and print them instead of sending')

    parser.add_argument('-c', '--config',
                        default=None,
                        help='JSON configuration file')
    parser.add_argument('--init-config',
                        default=None,
                        metavar='FILE',
                        help='Write a default configuration file and exit')
    parser.add_argument('--list-interfaces',
                        action='store_true',
                        help='List interfaces and their IPv6 addresses')

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose',
                           action='store_true',
                           help='Verbose output')
    verbosity.add_argument('-q', '--quiet',
                           action='store_true',
                           help='Errors only')
    parser.add_argument('--no-color',
                        action='store_true',
                        help='Disable colored output')
    parser.add_argument('--version',
                        action='version',
                        version=f'%(prog)s {__version__}')

    return parser


def load_config(args) -> ConfigManager:
    config = ConfigManager(args.config)
    config.load(required=args.config is not None)
    return config


def resolve_timeout(args, config: ConfigManager) -> Optional[float]:
    if args.timeout is not None:
        return args.timeout
    configured = config.get("network.timeout")
    if configured is None:
        return None
    try:
        return validate_timeout_value(configured)
    except argparse.ArgumentTypeError as e:
        raise ConfigurationError(f"network.timeout: {e}") from e


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.init_config:
        try:
            create_default_config(args.init_config)
        except ConfigurationError as e:
            output_error(str(e))
            return 1
        output_success(f"Default configuration written to {args.init_config}")
        return 0

    try:
        config = load_config(args)
        settings = config.export_for_cli()
    except ConfigurationError as e:
        output_error(str(e))
        return 1

    level = settings["log_level"]
    if args.verbose:
        level = "DEBUG"
    elif args.quiet:
        level = "ERROR"
    setup_logging(level)
    ConsoleFormatter.configure(
        enabled=bool(settings["colors_enabled"]) and not args.no_color and sys.stdout.isatty()
    )

    if args.list_interfaces:
        list_interfaces()
        return 0

    # --- Preconditions: any failure here exits 1 before a socket is opened ---
    try:
        interface = args.iface or settings["interface"]
        if not interface:
            raise ConfigurationError("-i/--iface parameter is required.")
        interface = validate_interface_name(interface)
        timeout = resolve_timeout(args, config)

        if args.gateway:
            if args.src or args.dst:
                output_warning("Auto Gateway Mode: ignoring -s/-d")
        else:
            if not args.src or not args.dst:
                raise ConfigurationError("In manual mode, -s/--src and -d/--dst parameters are required.")
            validate_ipv6_value(args.src, "source")
            validate_ipv6_value(args.dst, "target")
    except ConfigurationError as e:
        output_error(str(e))
        parser.print_usage(sys.stderr)
        return 1

    if args.dry_run:
        sender = MemoryRawSender()
    else:
        sender = SocketRawSender()
        if not is_root():
            output_warning("Not running as root: opening a raw ICMPv6 socket will likely fail")

    pcap_file = args.pcap or settings["pcap_file"]
    writer = None
    try:
        solicitor = NeighborSolicitor(
            interface,
            sender=sender,
            timeout=timeout,
            on_result=report_result,
        )
        logger.debug("Interface %s: index %d, hardware address %s",
                     interface, solicitor.interface_index,
                     format_hardware_address(solicitor.hardware_address))

        if pcap_file:
            try:
                writer = PCAPWriter(pcap_file)
            except (OSError, ValueError) as e:
                raise ConfigurationError(f"Cannot open pcap file {pcap_file}: {e}") from e
            solicitor.sender = CapturingRawSender(sender, writer, solicitor.hardware_address)

        if args.gateway:
            code = run_auto(solicitor, args.strict)
        else:
            code = run_manual(solicitor, args.src, args.dst)
    except NDPError as e:
        # Interface/gateway discovery in either mode, or the send itself in manual mode
        output_error(str(e))
        return 1
    finally:
        if writer is not None:
            writer.close()

    if args.dry_run:
        dump_packets(sender)
    return code


if __name__ == "__main__":
    sys.exit(main())

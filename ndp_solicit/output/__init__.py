from .pcap_writer import PCAPWriter
from .console import ConsoleFormatter

__all__ = [
    'PCAPWriter',
    'ConsoleFormatter',
]

import fcntl
import logging
import os
import struct
import threading
import time
from typing import Optional

logger = logging.getLogger(__name__)


class PCAPWriter:
    """
    Native PCAP file writer.

    Records the Neighbor Solicitations that were handed to the kernel, as
    Ethernet frames, so they can be inspected with tcpdump or Wireshark.

    PCAP Global Header (24 bytes):
    - magic_number: 0xa1b2c3d4 (in the writer's byte order)
    - version_major: 2
    - version_minor: 4
    - thiszone: 0 (timezone correction)
    - sigfigs: 0 (timestamp accuracy)
    - snaplen: 65535 (max packet length)
    - network: 1 (Ethernet)

    PCAP Packet Header (16 bytes):
    - ts_sec: seconds since epoch
    - ts_usec: microseconds
    - incl_len: bytes saved in file
    - orig_len: actual length of packet
    """

    PCAP_MAGIC = 0xa1b2c3d4
    VERSION_MAJOR = 2
    VERSION_MINOR = 4
    THISZONE = 0
    SIGFIGS = 0
    SNAPLEN = 65535
    NETWORK_ETHERNET = 1

    # Maximum file size (prevent disk exhaustion)
    MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB

    def __init__(self, filename: str) -> None:
        """
        Initialize PCAP writer.

        Args:
            filename: Output file path

        Raises:
            ValueError: If path is invalid
            OSError: If file cannot be created
        """
        self.filename = filename
        self.packet_count = 0
        self._file_size = 0
        self._file = None
        self._lock = threading.Lock()

        self._validate_path(filename)
        self._write_global_header()

    def _validate_path(self, path: str) -> None:
        """Reject null bytes and directories that do not exist."""
        if '\x00' in path:
            raise ValueError("Null byte in PCAP path")

        directory = os.path.dirname(os.path.abspath(path))
        if not os.path.isdir(directory):
            raise ValueError(f"PCAP directory does not exist: {directory}")

    def _write_global_header(self) -> None:
        """Write PCAP global header (native byte order)."""
        header = struct.pack('=IHHiIII',
            self.PCAP_MAGIC,
            self.VERSION_MAJOR,
            self.VERSION_MINOR,
            self.THISZONE,
            self.SIGFIGS,
            self.SNAPLEN,
            self.NETWORK_ETHERNET
        )

        with self._lock:
            self._file = open(self.filename, 'wb')
            self._file.write(header)
            self._file_size = len(header)

    def write_packet(self, packet: bytes, timestamp: Optional[float] = None) -> None:
        """
        Write packet to PCAP file.

        Args:
            packet: Ethernet frame bytes
            timestamp: Optional timestamp (default: current time)

        Raises:
            OSError: If the file is closed or the size limit is reached
        """
        if timestamp is None:
            timestamp = time.time()

        ts_sec = int(timestamp)
        ts_usec = int((timestamp - ts_sec) * 1000000)

        incl_len = min(len(packet), self.SNAPLEN)
        packet_header = struct.pack('=IIII', ts_sec, ts_usec, incl_len, len(packet))

        with self._lock:
            if self._file is None:
                raise OSError(f"PCAP file {self.filename} is closed")

            if self._file_size + len(packet_header) + incl_len > self.MAX_FILE_SIZE:
                logger.warning("PCAP file size limit (%d bytes) reached", self.MAX_FILE_SIZE)
                raise OSError("PCAP file size limit reached")

            # Advisory lock for cross-process safety
            fcntl.flock(self._file.fileno(), fcntl.LOCK_EX)
            try:
                self._file.write(packet_header)
                self._file.write(packet[:incl_len])
                self._file.flush()
                self._file_size += len(packet_header) + incl_len
            finally:
                fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)

        self.packet_count += 1

    def close(self) -> None:
        """Close the PCAP file."""
        with self._lock:
            if self._file:
                self._file.close()
                self._file = None

    def __enter__(self) -> 'PCAPWriter':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

"""
Connected peer state.

Holds the identity, nickname and input buffer of a single client, and
writes lines to its connection.
"""

import logging

from relay.line_assembler import DEFAULT_MAX_LINE_LENGTH, LineAssembler

logger = logging.getLogger(__name__)


def default_nickname(handle):
    """Nickname given to a peer before it sends /nick."""
    return f"user:{handle}"


class Peer:
    """
    Represents a single connected client.

    Manages:
    - Identity (peer id) and nickname
    - Partial input buffered by its LineAssembler
    - Network connection
    """

    def __init__(self, handle, writer, addr=None, max_line_length=DEFAULT_MAX_LINE_LENGTH):
        """
        Initialize peer.

        Args:
            handle: Peer id, unique among registered peers
            writer: asyncio StreamWriter for this peer (None in tests)
            addr: Client address tuple (host, port)
            max_line_length: Longest line accepted from this peer
        """
        self.handle = handle
        self.writer = writer
        self.addr = addr
        self.nickname = default_nickname(handle)
        self.assembler = LineAssembler(max_line_length)

    def __repr__(self):
        return f"Peer(handle={self.handle}, nickname={self.nickname!r})"

    def format_addr(self):
        """Format address as IP:Port string."""
        if not self.addr:
            return "unknown"
        return f"{self.addr[0]}:{self.addr[1]}"

    def send_line(self, text):
        """
        Write one line to the peer.

        Delivery is best-effort: the transport buffers the data and write
        failures are only logged. A broken peer is torn down when its own
        read fails.
        """
        if self.writer is None:
            return
        try:
            self.writer.write(text.encode() + b'\n')
        except (ConnectionResetError, BrokenPipeError, ConnectionAbortedError, OSError) as e:
            logger.debug(f"Write to {self.format_addr()} failed: {e}")

    def close(self):
        """Close the connection. Safe to call more than once."""
        if self.writer is None:
            return
        if not self.writer.is_closing():
            self.writer.close()

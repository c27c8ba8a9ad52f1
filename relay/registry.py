"""
Registry of connected peers.
"""

import logging

from relay.errors import DuplicateHandle
from relay.line_assembler import DEFAULT_MAX_LINE_LENGTH
from relay.peer import Peer

logger = logging.getLogger(__name__)

EMPTY = -1


class PeerRegistry:
    """
    The authoritative set of connected peers, keyed by peer id.

    Only the server's control coroutine mutates it, so it needs no locking.
    Iteration is always in ascending peer id order.
    """

    def __init__(self, max_line_length=DEFAULT_MAX_LINE_LENGTH):
        self.max_line_length = max_line_length
        self._peers = {}
        self.count = 0
        self.high_water_mark = EMPTY

    def __len__(self):
        return self.count

    def __contains__(self, handle):
        return handle in self._peers

    def get(self, handle):
        return self._peers.get(handle)

    def add(self, handle, writer=None, addr=None):
        """Register a new peer under handle and return it."""
        if handle in self._peers:
            raise DuplicateHandle(handle)
        peer = Peer(handle, writer, addr, self.max_line_length)
        self._peers[handle] = peer
        self.count += 1
        if handle > self.high_water_mark:
            self.high_water_mark = handle
        logger.debug(f"Registered {peer}, {self.count} connected")
        return peer

    def remove(self, handle):
        """
        Tear down the peer registered under handle.

        Closes its connection and drops it from the registry. Unknown
        handles are ignored.
        """
        peer = self._peers.pop(handle, None)
        if peer is None:
            return None
        peer.close()
        self.count -= 1
        if handle == self.high_water_mark:
            self.high_water_mark = self._next_live_below(handle)
        logger.debug(f"Removed {peer}, {self.count} connected")
        return peer

    def _next_live_below(self, handle):
        for candidate in sorted(self._peers, reverse=True):
            if candidate < handle:
                return candidate
        return EMPTY

    def for_each_live(self):
        """
        Iterate over live peers in ascending peer id order.

        The set of ids is captured when iteration starts. A peer removed
        while the pass is running is skipped if it has not been reached yet.
        Each call starts a new pass.
        """
        handles = sorted(h for h in self._peers if h <= self.high_water_mark)
        for handle in handles:
            peer = self._peers.get(handle)
            if peer is not None:
                yield peer

    def by_nickname(self, name):
        """Return the first live peer (lowest id) whose nickname equals name."""
        for peer in self.for_each_live():
            if peer.nickname == name:
                return peer
        return None

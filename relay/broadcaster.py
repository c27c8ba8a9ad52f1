"""
Fan-out delivery of lines to connected peers.
"""

import logging

logger = logging.getLogger(__name__)


class Broadcaster:
    """Writes a line to every live peer except the excluded ones."""

    def __init__(self, registry):
        self.registry = registry

    def send_to_all_except(self, excluded, text):
        """
        Deliver text to all live peers whose id is not in excluded.

        No retry and no backpressure; returns the number of peers written to.
        """
        excluded = set(excluded)
        delivered = 0
        for peer in self.registry.for_each_live():
            if peer.handle in excluded:
                continue
            peer.send_line(text)
            delivered += 1
        logger.debug(f"broadcast to {delivered} peers: {text}")
        return delivered

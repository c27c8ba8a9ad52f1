"""
Per-peer input buffering.

Splits a TCP byte stream into newline-terminated lines.
"""

from relay.errors import LineTooLong

INITIAL_CAPACITY = 256
DEFAULT_MAX_LINE_LENGTH = 4096


class LineAssembler:
    """
    Accumulates partial reads until complete lines are available.

    A single read may carry zero, one, part of, or several lines. Lines are
    yielded in order with the trailing '\\n' (and one preceding '\\r')
    removed; anything after the last newline is kept for the next read.
    """

    def __init__(self, max_length=DEFAULT_MAX_LINE_LENGTH):
        self.max_length = max_length
        self.capacity = min(INITIAL_CAPACITY, max_length)
        self._buffer = bytearray()

    def __len__(self):
        return len(self._buffer)

    def feed(self, data):
        """
        Append data and return an iterator over the lines it completes.

        The iterator raises LineTooLong once it reaches a line, or an
        unterminated tail, longer than max_length. Lines completed before
        that point are still produced first.
        """
        self._buffer.extend(data)
        while len(self._buffer) > self.capacity:
            self.capacity *= 2
        return self._split()

    def _split(self):
        while True:
            idx = self._buffer.find(b'\n')
            if idx < 0:
                break
            raw = bytes(self._buffer[:idx])
            if raw.endswith(b'\r'):
                raw = raw[:-1]
            if len(raw) > self.max_length:
                raise LineTooLong(len(raw), self.max_length)
            del self._buffer[:idx + 1]
            yield raw.decode('utf-8', errors='replace')

        # a trailing \r may still be the start of a \r\n terminator
        pending = len(self._buffer)
        if self._buffer.endswith(b'\r'):
            pending -= 1
        if pending > self.max_length:
            raise LineTooLong(pending, self.max_length)

"""
Exceptions raised by the relay server.
"""


class RelayError(Exception):
    """Base class for relay errors."""


class DuplicateHandle(RelayError):
    """A peer id was registered twice. Never expected at runtime."""

    def __init__(self, handle):
        super().__init__(f"Peer {handle} is already registered")
        self.handle = handle


class LineTooLong(RelayError):
    """A peer sent more than max_length bytes without a newline."""

    def __init__(self, length, max_length):
        super().__init__(f"Line of {length} bytes exceeds limit of {max_length}")
        self.length = length
        self.max_length = max_length


class FatalServerError(RelayError):
    """Unrecoverable failure; the process should exit."""

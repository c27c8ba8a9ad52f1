"""
Test helpers shared by the relay tests.
"""
from datetime import datetime
from unittest.mock import Mock

FIXED_TIME = datetime(2024, 1, 1, 12, 34, 56)
STAMP = "[12:34:56]"


def make_writer():
    """A StreamWriter stand-in that records what is written to it."""
    writer = Mock()
    writer.is_closing.return_value = False
    return writer


def sent_lines(writer):
    """Lines written to a fake writer, without the trailing newline."""
    data = b"".join(call.args[0] for call in writer.write.call_args_list)
    return data.decode().splitlines()

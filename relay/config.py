"""
Server configuration and command-line parsing.
"""

import argparse
from dataclasses import dataclass

from relay.line_assembler import DEFAULT_MAX_LINE_LENGTH

DEFAULT_PORT = 7711


@dataclass(frozen=True)
class ServerConfig:
    host: str = '0.0.0.0'
    port: int = DEFAULT_PORT
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH
    max_peers: int = 1000
    read_size: int = 256
    poll_interval: float = 1.0
    queue_size: int = 1024
    debug: bool = False

    @classmethod
    def from_args(cls, args):
        """Build a config from a parsed argparse namespace."""
        return cls(
            host=args.host,
            port=args.port,
            max_line_length=args.max_line,
            max_peers=args.max_peers,
            read_size=args.read_size,
            poll_interval=args.poll_interval,
            debug=args.debug,
        )


def _positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def _port(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 <= number <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return number


def _positive_float(value):
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid float value: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def build_parser():
    defaults = ServerConfig()
    parser = argparse.ArgumentParser(description="Line-oriented chat relay server")
    parser.add_argument('--host', default=defaults.host, help='Address to listen on')
    parser.add_argument('--port', type=_port, default=defaults.port, help='Port to listen on')
    parser.add_argument('--max-line', type=_positive_int, default=defaults.max_line_length,
                        help='Longest accepted input line in bytes')
    parser.add_argument('--max-peers', type=_positive_int, default=defaults.max_peers,
                        help='Maximum number of connected clients')
    parser.add_argument('--read-size', type=_positive_int, default=defaults.read_size,
                        help='Bytes read from a client per readiness event')
    parser.add_argument('--poll-interval', type=_positive_float, default=defaults.poll_interval,
                        help='Seconds the event loop waits before an idle tick')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser


def parse_args(argv=None):
    """Parse command-line arguments into a ServerConfig."""
    return ServerConfig.from_args(build_parser().parse_args(argv))

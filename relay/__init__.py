"""
Chat relay server package.

Main exports:
- Server: Event loop and peer lifecycle
- PeerRegistry: Registry of connected peers
- Peer: A single connected client
- LineAssembler: Per-peer line buffering
- CommandProcessor: /nick, /list, /dm and chat handling
- Broadcaster: Fan-out delivery
"""

from relay.broadcaster import Broadcaster
from relay.commands import CommandProcessor
from relay.config import ServerConfig
from relay.line_assembler import LineAssembler
from relay.peer import Peer
from relay.registry import PeerRegistry
from relay.server import Server

__version__ = "1.0.0"
__all__ = [
    'Server',
    'ServerConfig',
    'PeerRegistry',
    'Peer',
    'LineAssembler',
    'CommandProcessor',
    'Broadcaster',
]

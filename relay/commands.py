"""
Command protocol.

Lines starting with '/' are commands; anything else is chat text that is
relayed to every other peer.
"""

import logging
from datetime import datetime

logger = logging.getLogger(__name__)

COMMAND_SIGIL = '/'
NICK_MAX_LEN = 32

USER_NOT_FOUND = "User not found"
UNSUPPORTED_COMMAND = "Unsupported command"
NICK_USAGE = "Usage: /nick <name>"
DM_USAGE = "Usage: /dm <nickname> <message>"


def timestamp(now=None):
    """Format a time as [HH:MM:SS] in local time."""
    if now is None:
        now = datetime.now()
    return now.strftime("[%H:%M:%S]")


class CommandProcessor:
    """
    Interprets lines received from a peer.

    Features:
    - Chat relay to every other peer
    - /nick, /list and /dm commands
    - Errors reported to the sending peer only
    """

    def __init__(self, registry, broadcaster, clock=datetime.now):
        """
        Initialize command processor.

        Args:
            registry: PeerRegistry of live peers
            broadcaster: Broadcaster used for chat fan-out
            clock: Callable returning the current datetime, read at send time
        """
        self.registry = registry
        self.broadcaster = broadcaster
        self.clock = clock
        self.handlers = {
            "/nick": self.nick,
            "/list": self.list_peers,
            "/dm": self.direct_message,
        }

    def stamp(self, text):
        return f"{timestamp(self.clock())} {text}"

    def process(self, peer, line):
        """Handle one complete line sent by peer."""
        if not line.strip():
            return
        if not line.startswith(COMMAND_SIGIL):
            self.chat(peer, line)
            return

        command, _, arg = line.strip().partition(' ')
        handler = self.handlers.get(command)
        if handler is None:
            logger.debug(f"{peer} sent unsupported command {command!r}")
            peer.send_line(UNSUPPORTED_COMMAND)
            return
        handler(peer, arg.strip())

    def chat(self, peer, line):
        msg = f"{peer.nickname}> {line}"
        logger.debug(msg)
        self.broadcaster.send_to_all_except({peer.handle}, self.stamp(msg))

    def nick(self, peer, name):
        """/nick <name>: rename the sender. Nicknames may collide."""
        if not name:
            peer.send_line(NICK_USAGE)
            return
        if len(name) > NICK_MAX_LEN:
            peer.send_line(f"Nickname too long (max {NICK_MAX_LEN} characters)")
            return
        if any(c.isspace() for c in name):
            peer.send_line("Nickname must not contain spaces")
            return
        logger.info(f"{peer.nickname} is now known as {name}")
        peer.nickname = name
        peer.send_line(f"Nickname changed to {name}")

    def list_peers(self, peer, arg):
        """/list: nicknames of all live peers, then a count line."""
        for other in self.registry.for_each_live():
            peer.send_line(other.nickname)
        peer.send_line(f"Number of connected users: {self.registry.count}")

    def direct_message(self, peer, arg):
        """/dm <nickname> <message>: deliver message to one peer only."""
        target_nick, _, message = arg.partition(' ')
        message = message.strip()
        if not target_nick or not message:
            peer.send_line(DM_USAGE)
            return
        target = self.registry.by_nickname(target_nick)
        if target is None:
            peer.send_line(USER_NOT_FOUND)
            return
        target.send_line(self.stamp(f"DM from {peer.nickname}: {message}"))

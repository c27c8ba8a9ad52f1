"""
Main relay server implementation.

Accepts connections, multiplexes their input through a single control
coroutine, and owns the peer lifecycle.
"""

import asyncio
import itertools
import logging
import sys
from collections import namedtuple
from datetime import datetime

from relay.broadcaster import Broadcaster
from relay.commands import CommandProcessor
from relay.config import ServerConfig, parse_args
from relay.errors import FatalServerError, LineTooLong
from relay.registry import PeerRegistry

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome to Simple Chat! Use /nick <nick> to set your nick."
SERVER_FULL = "Server is full"

ACCEPT = "accept"
DATA = "data"
CLOSE = "close"

Event = namedtuple("Event", ["kind", "handle", "payload"])


def _event_order(event):
    # accepts first, then peers by ascending id; sorted() is stable so
    # events of one peer keep their arrival order
    return (event.kind != ACCEPT, event.handle)


class Server:
    """
    Single-loop chat relay.

    Features:
    - One reader coroutine per connection that only reads and posts events
    - One control coroutine that owns the registry and processes every event
    - Deterministic per-iteration ordering: accepts, then peers by id
    """

    def __init__(self, config=None, clock=datetime.now):
        """
        Initialize server.

        Args:
            config: ServerConfig, defaults used when None
            clock: Callable returning the current datetime for timestamps
        """
        self.config = config or ServerConfig()
        self.registry = PeerRegistry(self.config.max_line_length)
        self.broadcaster = Broadcaster(self.registry)
        self.processor = CommandProcessor(self.registry, self.broadcaster, clock)
        self.next_handle = itertools.count(1)
        self.events = None
        self.listener = None
        self.address = None
        self.connections = set()
        self.background_tasks = set()
        self.idle_ticks = 0

    async def client_handler(self, reader, writer):
        """Read from one connection and post its events to the control loop."""
        handle = next(self.next_handle)
        addr = writer.get_extra_info("peername")
        task = asyncio.current_task()
        self.background_tasks.add(task)
        self.connections.add(writer)
        try:
            await self.events.put(Event(ACCEPT, handle, (writer, addr)))
            while True:
                try:
                    data = await reader.read(self.config.read_size)
                except (ConnectionResetError, ConnectionAbortedError, OSError) as e:
                    logger.error(f"ERROR: {addr} has connection error: {e}")
                    break
                # b'' is an orderly close by the client or by our own teardown
                if not data:
                    break
                await self.events.put(Event(DATA, handle, data))
            await self.events.put(Event(CLOSE, handle, None))
        finally:
            self.connections.discard(writer)
            self.background_tasks.discard(task)

    async def wait_ready(self):
        """
        Wait up to poll_interval for events.

        Returns every event pending once the first one arrives, or an empty
        list on timeout.
        """
        try:
            first = await asyncio.wait_for(self.events.get(), timeout=self.config.poll_interval)
        except asyncio.TimeoutError:
            return []
        batch = [first]
        while not self.events.empty():
            batch.append(self.events.get_nowait())
        return batch

    async def event_loop(self):
        """Control loop: the only place peer state is mutated."""
        while True:
            batch = await self.wait_ready()
            if not batch:
                self.on_idle()
                continue
            for event in sorted(batch, key=_event_order):
                self.dispatch(event)

    def on_idle(self):
        """Called when a poll interval passes without any event."""
        self.idle_ticks += 1
        logger.debug(f"Idle tick {self.idle_ticks}, {self.registry.count} connected")

    def dispatch(self, event):
        if event.kind == ACCEPT:
            writer, addr = event.payload
            self.accept_peer(event.handle, writer, addr)
        elif event.kind == DATA:
            self.handle_data(event.handle, event.payload)
        elif event.kind == CLOSE:
            self.teardown(event.handle)

    def accept_peer(self, handle, writer, addr):
        """Register a new connection and greet it."""
        if self.registry.count >= self.config.max_peers:
            logger.warning(f"Rejecting {addr}: {self.registry.count} clients connected")
            writer.write(SERVER_FULL.encode() + b'\n')
            writer.close()
            return None
        peer = self.registry.add(handle, writer, addr)
        peer.send_line(WELCOME_MESSAGE)
        logger.info(f"Connected client id={handle} from {peer.format_addr()}")
        return peer

    def handle_data(self, handle, data):
        """Feed bytes to the peer's assembler and process completed lines."""
        peer = self.registry.get(handle)
        if peer is None:
            return
        try:
            for line in peer.assembler.feed(data):
                self.processor.process(peer, line)
                if handle not in self.registry:
                    return
        except LineTooLong as e:
            logger.warning(f"Dropping client id={handle}, nick={peer.nickname}: {e}")
            self.teardown(handle)
        except MemoryError:
            raise
        except Exception as e:
            logger.exception(f"ERROR: Unexpected error handling client id={handle}: {e}")
            self.teardown(handle)

    def teardown(self, handle):
        """Close and unregister a peer. Unknown ids are ignored."""
        peer = self.registry.remove(handle)
        if peer is not None:
            logger.info(f"Disconnected client id={handle}, nick={peer.nickname}")
        return peer

    async def start(self):
        """Create the listening endpoint."""
        self.events = asyncio.Queue(maxsize=self.config.queue_size)
        try:
            self.listener = await asyncio.start_server(
                self.client_handler,
                self.config.host,
                self.config.port
            )
        except OSError as e:
            raise FatalServerError(
                f"Creating listening socket on {self.config.host}:{self.config.port}: {e}"
            ) from e
        self.address = self.listener.sockets[0].getsockname()
        logger.info(f"Server running on {self.address}")

    async def run_server(self):
        await self.start()
        loop_task = asyncio.create_task(self.event_loop())
        serve_task = asyncio.create_task(self.listener.serve_forever())
        try:
            done, pending = await asyncio.wait(
                {loop_task, serve_task},
                return_when=asyncio.FIRST_COMPLETED
            )
            if loop_task in done:
                try:
                    loop_task.result()
                except (MemoryError, asyncio.CancelledError):
                    raise
                except Exception as e:
                    raise FatalServerError(f"Event loop failed: {e}") from e
        finally:
            for task in (loop_task, serve_task):
                # a finished task already holds its outcome; awaiting it would re-raise
                if task.done():
                    continue
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            await self.close()

    async def close(self):
        """Stop listening and drop every connection."""
        if self.listener is not None:
            self.listener.close()
        for peer in list(self.registry.for_each_live()):
            self.teardown(peer.handle)
        for writer in list(self.connections):
            if not writer.is_closing():
                writer.close()
        for task in list(self.background_tasks):
            task.cancel()
        if self.listener is not None:
            await self.listener.wait_closed()
            self.listener = None


def main(argv=None):
    """Entry point for server"""
    config = parse_args(argv)

    # setup logging
    level = logging.DEBUG if config.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    server = Server(config)
    try:
        asyncio.run(server.run_server())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except FatalServerError as e:
        logger.critical(str(e))
        sys.exit(1)
    except MemoryError:
        logger.critical("Out of memory")
        sys.exit(1)


if __name__ == "__main__":
    main()

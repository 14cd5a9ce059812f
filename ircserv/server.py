"""The listening server: accepts connections and routes them to clients."""

from __future__ import annotations

import logging
import selectors
import socket
import time
from typing import Optional

from ircserv.channel import Channel
from ircserv.client import Client

log = logging.getLogger(__name__)

LISTEN_BACKLOG = 10
REGISTRATION_TIMEOUT = 60


class Server:
    """Owns the listening socket, the connected clients and the channels."""

    def __init__(self, port: int, password: str) -> None:
        self.port = port
        self._password = password
        self._listener: Optional[socket.socket] = None
        self._selector = selectors.DefaultSelector()
        self.clients: dict[int, Client] = {}
        self.channels: dict[str, Channel] = {}
        self._connection_times: dict[int, float] = {}

    def __enter__(self) -> "Server":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
        for fd in list(self.clients):
            self.remove_client(fd)
        for name in list(self.channels):
            self.remove_channel(name)
        self._selector.close()

    @property
    def address(self) -> tuple[str, int]:
        """The address the listening socket is bound to."""
        if self._listener is None:
            raise RuntimeError("server is not listening")
        return self._listener.getsockname()[:2]

    # Lifecycle

    def setup(self) -> None:
        """Create, bind and start the listening socket; raises OSError on failure."""
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.setblocking(False)
            listener.bind(("", self.port))
            listener.listen(LISTEN_BACKLOG)
        except OSError:
            listener.close()
            raise
        self._listener = listener
        self._selector.register(listener, selectors.EVENT_READ)
        log.info("Server is listening on port %s", self.port)

    def run(self) -> None:
        """Serve until stopped or until waiting for events fails."""
        while self._listener is not None:
            try:
                self.poll_once(None)
            except OSError as exc:
                log.error("Poll error: %s", exc)
                break

    def poll_once(self, timeout: Optional[float]) -> None:
        """Wait for socket activity once and handle everything that is ready."""
        for client in list(self.clients.values()):
            wanted = selectors.EVENT_READ
            if client.has_pending():
                wanted |= selectors.EVENT_WRITE
            if self._selector.get_key(client.sock).events != wanted:
                self._selector.modify(client.sock, wanted)

        for key, events in self._selector.select(timeout):
            if key.fileobj is self._listener:
                self.handle_new_connection()
                continue
            fd = key.fd
            if events & selectors.EVENT_READ:
                self.handle_client_data(fd)
            if events & selectors.EVENT_WRITE:
                client = self.get_client(fd)
                if client is not None:
                    client.flush_pending()

        self.remove_disconnected_clients()

    def stop(self) -> None:
        """Close the listening socket."""
        if self._listener is not None:
            self._selector.unregister(self._listener)
            self._listener.close()
            self._listener = None

    # Clients

    def add_client(self, sock: socket.socket) -> Client:
        client = Client(sock, self)
        fd = sock.fileno()
        self.clients[fd] = client
        self._connection_times[fd] = time.monotonic()
        self._selector.register(sock, selectors.EVENT_READ)
        return client

    def remove_client(self, fd: int) -> None:
        """Announce the client's departure to its channels and close it."""
        client = self.clients.pop(fd, None)
        self._connection_times.pop(fd, None)
        if client is None:
            return
        for channel in list(client.channels):
            channel.broadcast(
                f":{client.nickname}!{client.username}@host QUIT :Connection closed"
            )
            client.leave_channel(channel)
            if not channel.clients:
                self.remove_channel(channel.name)
        client.close()
        try:
            self._selector.unregister(client.sock)
        except (KeyError, ValueError):
            pass
        client.sock.close()

    def get_client(self, fd: int) -> Optional[Client]:
        return self.clients.get(fd)

    # Channels

    def get_channel(self, name: str) -> Optional[Channel]:
        return self.channels.get(name)

    def create_channel(self, name: str, creator: Client) -> Channel:
        """Return the named channel, creating it with ``creator`` if needed."""
        channel = self.channels.get(name)
        if channel is None:
            channel = Channel(name, creator)
            self.channels[name] = channel
        return channel

    def remove_channel(self, name: str) -> None:
        channel = self.channels.pop(name, None)
        if channel is not None:
            channel.close()

    def check_password(self, password: str) -> bool:
        return password == self._password

    # Events

    def handle_new_connection(self) -> None:
        if self._listener is None:
            return
        try:
            sock, _ = self._listener.accept()
        except BlockingIOError:
            return
        except OSError as exc:
            log.error("Error accepting connection: %s", exc)
            return
        try:
            sock.setblocking(False)
        except OSError:
            log.error("Error setting client socket to non-blocking mode")
            sock.close()
            return
        log.info("New connection accepted")
        self.add_client(sock)

    def handle_client_data(self, fd: int) -> None:
        client = self.get_client(fd)
        if client is None:
            log.error("Client not found")
            return
        if not client.receive():
            self.remove_client(fd)

    def remove_disconnected_clients(self) -> None:
        for fd in [fd for fd, client in self.clients.items() if client.disconnected]:
            self.remove_client(fd)

    def check_timeouts(self, now: Optional[float] = None) -> None:
        """Drop clients that have not registered within the allowed time."""
        if now is None:
            now = time.monotonic()
        expired = [
            fd
            for fd, connected in self._connection_times.items()
            if fd in self.clients
            and not self.clients[fd].authenticated
            and now - connected > REGISTRATION_TIMEOUT
        ]
        for fd in expired:
            client = self.get_client(fd)
            if client is not None:
                client.send("ERROR :Registration timeout")
            self.remove_client(fd)
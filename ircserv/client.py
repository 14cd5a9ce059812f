"""A connected IRC client: line framing, command parsing and replies."""

from __future__ import annotations

import logging
import socket
from collections import deque
from typing import Any, Optional

from ircserv.channel import Channel

log = logging.getLogger(__name__)

RECV_SIZE = 4095
MAX_BUFFER = 8192
MAX_NICK_LENGTH = 9
NICK_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789[]\\`_^{|}"
)
REGISTERED_ONLY = frozenset({"JOIN", "PRIVMSG", "PART", "MODE", "TOPIC", "INVITE"})


def parse_line(line: str) -> Optional[tuple[str, str, list[str]]]:
    """Split a raw IRC line into (prefix, COMMAND, params).

    Returns None when a prefix is not followed by a command.
    """
    prefix = ""
    start = 0
    if line.startswith(":"):
        prefix_end = line.find(" ")
        if prefix_end == -1:
            return None
        prefix = line[1:prefix_end]
        start = prefix_end + 1
        while start < len(line) and line[start] == " ":
            start += 1

    params: list[str] = []
    cmd_end = line.find(" ", start)
    if cmd_end == -1:
        command = line[start:]
    else:
        command = line[start:cmd_end]
        param_start = cmd_end + 1
        while param_start < len(line) and line[param_start] == " ":
            param_start += 1
        trailing = line.find(" :", param_start)
        if trailing != -1:
            params.extend(line[param_start:trailing].split())
            params.append(line[trailing + 2:])
        else:
            params.extend(line[param_start:].split())

    return prefix, command.upper(), params


def is_valid_nickname(nickname: str) -> bool:
    """A nickname is 1 to 9 characters from the allowed IRC set."""
    return 0 < len(nickname) <= MAX_NICK_LENGTH and all(c in NICK_CHARS for c in nickname)


class Client:
    """State and protocol handling for one client connection."""

    def __init__(self, sock: socket.socket, server: Any) -> None:
        self.sock = sock
        self.server = server
        self.nickname = ""
        self.username = ""
        self.hostname = ""
        self.authenticated = False
        self.is_operator = False
        self.disconnected = False
        self.password_validated = False
        self.channels: list[Channel] = []
        self._inbuf = b""
        self._outgoing: deque[bytes] = deque()

    def __repr__(self) -> str:
        return f"Client(nickname={self.nickname!r})"

    def fileno(self) -> int:
        return self.sock.fileno()

    # Channel membership

    def join_channel(self, channel: Channel) -> None:
        if not self.in_channel(channel):
            self.channels.append(channel)
            channel.add_client(self)

    def leave_channel(self, channel: Channel) -> None:
        if self.in_channel(channel):
            self.channels.remove(channel)
            channel.remove_client(self)

    def in_channel(self, channel: Channel) -> bool:
        return any(joined is channel for joined in self.channels)

    # Network I/O

    def receive(self) -> bool:
        """Read once from the socket; False means the connection is gone."""
        try:
            data = self.sock.recv(RECV_SIZE)
        except BlockingIOError:
            return True
        except OSError as exc:
            log.error("Error receiving data: %s", exc)
            return False
        if not data:
            log.info("Client %s disconnected", self.nickname)
            return False
        log.debug("Received data: %r", data)
        self.feed(data)
        return True

    def feed(self, data: bytes | str) -> None:
        """Buffer incoming data and handle every complete CRLF-terminated line."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._inbuf += data
        while b"\r\n" in self._inbuf:
            raw, _, self._inbuf = self._inbuf.partition(b"\r\n")
            if raw:
                self.handle_line(raw.decode("utf-8", "replace"))
        if len(self._inbuf) > MAX_BUFFER:
            self.send("ERROR :Client exceeded buffer size limit")
            self._inbuf = b""

    def send(self, message: str) -> None:
        """Send a line, queueing whatever the socket cannot take now."""
        if self.disconnected:
            return
        data = (message + "\r\n").encode("utf-8")
        if self._outgoing:
            self._outgoing.append(data)
            return
        try:
            sent = self.sock.send(data)
        except BlockingIOError:
            self._outgoing.append(data)
            return
        except OSError as exc:
            log.error("Error sending to client %s: %s", self.nickname, exc)
            self.disconnected = True
            return
        if sent < len(data):
            self._outgoing.append(data[sent:])

    def flush_pending(self) -> None:
        """Send queued data until the queue is empty or the socket would block."""
        while self._outgoing:
            data = self._outgoing[0]
            try:
                sent = self.sock.send(data)
            except BlockingIOError:
                return
            except OSError:
                self.disconnected = True
                return
            if sent < len(data):
                self._outgoing[0] = data[sent:]
                return
            self._outgoing.popleft()

    def has_pending(self) -> bool:
        return bool(self._outgoing)

    # Protocol

    def complete_registration(self) -> None:
        self.authenticated = True
        nick = self.nickname
        self.send(
            f"001 {nick} :Welcome to the Internet Relay Network {nick}!{self.username}@host"
        )
        self.send(f"002 {nick} :Your host is ft_irc, running version 1.0")
        self.send(f"003 {nick} :This server was created today")
        self.send(f"004 {nick} ft_irc 1.0 o o")
        self.send(f"422 {nick} :MOTD File is missing")

    def handle_line(self, line: str) -> None:
        parsed = parse_line(line)
        if parsed is None:
            return
        _, command, params = parsed
        self.handle_command(command, params)

    def handle_command(self, command: str, params: list[str]) -> None:
        log.debug("Command: %s Parameters: %s", command, params)
        if command in REGISTERED_ONLY and not self.authenticated:
            self.send("451 :You have not registered")
            return
        handler = {
            "PASS": self._on_pass,
            "TOPIC": self._on_topic,
            "NICK": self._on_nick,
            "USER": self._on_user,
            "JOIN": self._on_join,
        }.get(command)
        if handler is not None:
            handler(params)

    def _on_pass(self, params: list[str]) -> None:
        if self.authenticated:
            self.send("462 :You may not reregister")
            return
        if not params:
            self.send("461 PASS :Not enough parameters")
            return
        if self.server.check_password(params[0]):
            self.password_validated = True
        else:
            self.send("464 :Password incorrect")
            self.disconnected = True

    def _on_topic(self, params: list[str]) -> None:
        nick = self.nickname
        if not params:
            self.send(f"461 {nick} TOPIC :Not enough parameters")
            return
        name = params[0]
        channel = self.server.get_channel(name)
        if channel is None:
            self.send(f"403 {nick} {name} :No such channel")
            return
        if not self.in_channel(channel):
            self.send(f"442 {nick} {name} :You're not on that channel")
            return
        if len(params) == 1:
            self._send_topic(channel)
            return
        if channel.topic_restricted and not channel.is_operator(self):
            self.send(f"482 {nick} {name} :You're not channel operator")
            return
        channel.topic = params[1]
        channel.broadcast(f":{nick}!{self.username}@host TOPIC {name} :{params[1]}")

    def _on_nick(self, params: list[str]) -> None:
        if not params:
            self.send("431 :No nickname given")
            return
        new_nick = params[0]
        if not is_valid_nickname(new_nick):
            self.send(f"432 {new_nick} :Erroneous nickname")
            return
        self.nickname = new_nick
        if self.username and self.password_validated and not self.authenticated:
            self.complete_registration()

    def _on_user(self, params: list[str]) -> None:
        if self.authenticated:
            self.send("462 :You may not reregister")
            return
        if not self.password_validated:
            self.send("464 :Password required")
            return
        if len(params) < 4:
            self.send("461 USER :Not enough parameters")
            return
        self.username = params[0]
        if self.nickname:
            self.complete_registration()

    def _on_join(self, params: list[str]) -> None:
        nick = self.nickname
        if not params:
            self.send(f"461 {nick} JOIN :Not enough parameters")
            return
        name = params[0]
        if not name.startswith("#"):
            self.send(f"403 {nick} {name} :No such channel")
            return
        channel = self.server.get_channel(name)
        if channel is None:
            channel = self.server.create_channel(name, self)
        self.join_channel(channel)
        channel.broadcast(f":{nick}!{self.username}@host JOIN {name}")
        self._send_topic(channel)
        self.send(f"353 {nick} = {name} :{channel.names_list()}")
        self.send(f"366 {nick} {name} :End of /NAMES list")

    def _send_topic(self, channel: Channel) -> None:
        if channel.topic:
            self.send(f"332 {self.nickname} {channel.name} :{channel.topic}")
        else:
            self.send(f"331 {self.nickname} {channel.name} :No topic is set")

    def close(self) -> None:
        """Leave every joined channel."""
        for channel in list(self.channels):
            self.leave_channel(channel)
"""IRC channel state: members, operators, invitations and modes."""

from __future__ import annotations

from typing import Any, Optional, Protocol


class Member(Protocol):
    """What a channel needs from a connected client."""

    nickname: str

    def send(self, message: str) -> None: ...

    def leave_channel(self, channel: "Channel") -> None: ...


class Channel:
    """A named channel with its members and mode settings.

    The creator becomes the first member and the first operator.
    """

    def __init__(self, name: str, creator: Any) -> None:
        self.name = name
        self.topic = ""
        self.key = ""
        self.user_limit = 0
        self.invite_only = False
        self.topic_restricted = True
        self.clients: list[Any] = []
        self._operators: set[Any] = set()
        self._invited: set[Any] = set()
        self.add_client(creator)
        self.add_operator(creator)

    def __repr__(self) -> str:
        return f"Channel({self.name!r}, members={len(self.clients)})"

    def __contains__(self, client: Any) -> bool:
        return self.has_client(client)

    def __len__(self) -> int:
        return len(self.clients)

    def add_client(self, client: Any) -> None:
        """Add a member unless already present; joining order is kept."""
        if not self.has_client(client):
            self.clients.append(client)

    def remove_client(self, client: Any) -> None:
        """Remove a member and drop any operator status it held."""
        if client in self.clients:
            self.clients.remove(client)
        self.remove_operator(client)

    def has_client(self, client: Any) -> bool:
        return client in self.clients

    def add_operator(self, client: Any) -> None:
        """Grant operator status; only members can become operators."""
        if self.has_client(client):
            self._operators.add(client)

    def remove_operator(self, client: Any) -> None:
        self._operators.discard(client)

    def is_operator(self, client: Any) -> bool:
        return client in self._operators

    def add_invite(self, client: Any) -> None:
        self._invited.add(client)

    def is_invited(self, client: Any) -> bool:
        return client in self._invited

    def broadcast(self, message: str, exclude: Optional[Any] = None) -> None:
        """Send a message to every member except ``exclude``."""
        for client in list(self.clients):
            if client is not exclude:
                client.send(message)

    def names_list(self) -> str:
        """Space-terminated member nicknames, operators prefixed with '@'."""
        return "".join(
            f"{'@' if self.is_operator(client) else ''}{client.nickname} "
            for client in self.clients
        )

    def mode_string(self) -> str:
        """The channel modes followed by their parameters, e.g. '+tkl key 5'."""
        modes = "+"
        params = ""
        if self.invite_only:
            modes += "i"
        if self.topic_restricted:
            modes += "t"
        if self.key:
            modes += "k"
            params += f" {self.key}"
        if self.user_limit > 0:
            modes += "l"
            params += f" {self.user_limit}"
        return modes + params

    def close(self) -> None:
        """Make every member leave, then forget all membership state."""
        for client in list(self.clients):
            client.leave_channel(self)
        self.clients.clear()
        self._operators.clear()
        self._invited.clear()
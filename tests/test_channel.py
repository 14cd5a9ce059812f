import pytest

from ircserv.channel import Channel


class FakeClient:
    def __init__(self, nickname):
        self.nickname = nickname
        self.sent = []
        self.channels = []

    def send(self, message):
        self.sent.append(message)

    def leave_channel(self, channel):
        if channel in self.channels:
            self.channels.remove(channel)
            channel.remove_client(self)


@pytest.fixture
def alice():
    return FakeClient("alice")


@pytest.fixture
def bob():
    return FakeClient("bob")


def test_creator_is_member_and_operator(alice):
    channel = Channel("#room", alice)
    assert channel.name == "#room"
    assert channel.clients == [alice]
    assert channel.is_operator(alice)


def test_defaults(alice):
    channel = Channel("#room", alice)
    assert channel.topic == ""
    assert channel.key == ""
    assert channel.user_limit == 0
    assert channel.invite_only is False
    assert channel.topic_restricted is True


def test_add_client_is_idempotent(alice, bob):
    channel = Channel("#room", alice)
    channel.add_client(bob)
    channel.add_client(bob)
    assert channel.clients == [alice, bob]
    assert len(channel) == 2
    assert bob in channel


def test_new_member_is_not_operator(alice, bob):
    channel = Channel("#room", alice)
    channel.add_client(bob)
    assert not channel.is_operator(bob)


def test_operator_requires_membership(alice, bob):
    channel = Channel("#room", alice)
    channel.add_operator(bob)
    assert not channel.is_operator(bob)
    channel.add_client(bob)
    channel.add_operator(bob)
    assert channel.is_operator(bob)


def test_remove_client_drops_operator_status(alice, bob):
    channel = Channel("#room", alice)
    channel.add_client(bob)
    channel.remove_client(alice)
    assert channel.clients == [bob]
    assert not channel.is_operator(alice)
    assert not channel.has_client(alice)


def test_remove_unknown_client_leaves_members(alice, bob):
    channel = Channel("#room", alice)
    channel.remove_client(bob)
    assert channel.clients == [alice]


def test_remove_operator(alice):
    channel = Channel("#room", alice)
    channel.remove_operator(alice)
    assert not channel.is_operator(alice)
    assert channel.has_client(alice)


def test_invites(alice, bob):
    channel = Channel("#room", alice)
    assert not channel.is_invited(bob)
    channel.add_invite(bob)
    assert channel.is_invited(bob)
    assert not channel.has_client(bob)


def test_broadcast_reaches_all_members(alice, bob):
    channel = Channel("#room", alice)
    channel.add_client(bob)
    channel.broadcast("hello")
    assert alice.sent == ["hello"]
    assert bob.sent == ["hello"]


def test_broadcast_with_exclusion(alice, bob):
    channel = Channel("#room", alice)
    channel.add_client(bob)
    channel.broadcast("hello", bob)
    assert alice.sent == ["hello"]
    assert bob.sent == []


def test_names_list_marks_operators(alice, bob):
    channel = Channel("#room", alice)
    channel.add_client(bob)
    assert channel.names_list() == "@alice bob "


def test_names_list_keeps_join_order(alice, bob):
    channel = Channel("#room", alice)
    channel.add_client(bob)
    names = channel.names_list().split()
    assert [name.lstrip("@") for name in names] == ["alice", "bob"]


def test_mode_string_default(alice):
    assert Channel("#room", alice).mode_string() == "+t"


def test_mode_string_no_modes(alice):
    channel = Channel("#room", alice)
    channel.topic_restricted = False
    assert channel.mode_string() == "+"


def test_mode_string_all_modes(alice):
    channel = Channel("#room", alice)
    channel.invite_only = True
    channel.key = "secret"
    channel.user_limit = 5
    assert channel.mode_string() == "+itkl secret 5"


def test_mode_string_limit_without_key(alice):
    channel = Channel("#room", alice)
    channel.topic_restricted = False
    channel.user_limit = 10
    assert channel.mode_string() == "+l 10"


def test_close_makes_members_leave(alice, bob):
    channel = Channel("#room", alice)
    channel.add_client(bob)
    alice.channels.append(channel)
    bob.channels.append(channel)
    channel.add_invite(bob)
    channel.close()
    assert channel.clients == []
    assert alice.channels == []
    assert bob.channels == []
    assert not channel.is_operator(alice)
    assert not channel.is_invited(bob)
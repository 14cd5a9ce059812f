# ircserv

A small single-threaded IRC server. It listens on one TCP port and
requires every connection to give a shared password. Registered users
can then join channels and read or change the channel topics.

## Running

    ircserv <port> <password>

The port must be between 1 and 65535. If it is not, or if the number of
arguments is wrong, the command prints a message to stderr and exits
with status 1. The server listens on all interfaces. It logs to stderr
at INFO level and runs until it receives SIGINT or SIGTERM.

## Talking to it

Lines end with CR LF. A client registers by sending `PASS` first. It
then sends `NICK` and `USER`, in either order:

    PASS <password>
    NICK <nickname>
    USER <username> 0 * :<real name>

- A nickname has 1 to 9 characters, taken from letters, digits and
  `[]\`_^{|}`. Any other nickname gets `432`.
- `USER` sent before a correct `PASS` gets `464 :Password required`.
  `USER` with fewer than four parameters gets `461`.
- A wrong password gets `464 :Password incorrect`, and the server closes
  the connection at the end of that round of the event loop.
- After registration the server sends the replies `001` to `004` and
  `422` (no MOTD). Sending `PASS` or `USER` again gets `462`.

Registered clients can use these commands:

- `JOIN #channel` joins the channel. If the channel does not exist, it
  is created and the client becomes its operator. Names that do not
  start with `#` get `403`. The join is announced to every member. The
  joining client then receives the topic (`332` or `331`) and the member
  list (`353` and `366`), where operators are marked with `@`.
- `TOPIC #channel` shows the topic. `TOPIC #channel :new topic` sets it.
  New channels are topic-restricted, so only operators may set the
  topic; anyone else gets `482`. A topic change is broadcast to every
  member.

Before registration, `JOIN`, `TOPIC`, `PRIVMSG`, `PART`, `MODE` and
`INVITE` get `451 :You have not registered`. Command names are not
case-sensitive.

When a connection closes, every channel it was in receives
`:<nick>!<user>@host QUIT :Connection closed`. A channel that is left
with no members is deleted.

Input that reaches more than 8192 bytes without a line ending is
dropped. The client then receives
`ERROR :Client exceeded buffer size limit`.

## Using it from Python

    from ircserv.server import Server

    password = "password"
    with Server(6667, password) as server:
        server.setup()
        server.run()

`Server.setup()` raises `OSError` if the port cannot be bound.
`Server.poll_once(timeout)` runs one round of the event loop, which lets
the server be driven from tests or from another loop. `Server.address`
gives the address the server is bound to. Leaving the `with` block
closes the listening socket and every client connection.

`Server.check_timeouts(now=None)` disconnects clients that have not
registered within 60 seconds of connecting. Each of them first receives
`ERROR :Registration timeout`.

The other modules can be used on their own:

- `ircserv.client.parse_line(line)` splits a raw line into
  `(prefix, COMMAND, params)`. It returns `None` for a prefix with no
  command.
- `ircserv.client.is_valid_nickname(nickname)` checks the nickname rules
  given above.
- `ircserv.channel.Channel` holds the members, operators, invitations,
  topic and mode settings of a channel. `mode_string()` renders the
  modes, for example `+t`.

## What it does not do

- The only commands that do anything are `PASS`, `NICK`, `USER`, `JOIN`
  and `TOPIC`. The server accepts `PRIVMSG`, `PART`, `MODE`, `INVITE`,
  `QUIT` and other commands but otherwise ignores them, so users cannot
  send messages to each other.
- Nicknames are not checked for uniqueness. A change of nickname is not
  announced.
- Channel keys, user limits and invite-only mode are stored on `Channel`
  but are not enforced when a client joins.
- `Server.run()` does not call `check_timeouts()`. Registration timeouts
  apply only when the caller runs that check.

## Tests

    pip install -e ".[test]"
    pytest
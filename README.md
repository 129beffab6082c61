# termchat

termchat is a small chat room for the terminal. It has two commands:

- a server that people connect to;
- a client that each person runs.

## Install

```
pip install .
```

## Running the server

```
termchat-server [--host HOST] [--port PORT]
```

By default the server listens on TCP port 8080 on all interfaces. Use `--host` and `--port` to change this.

- **Capacity:** the room holds at most 10 people at once. When it is full, the server waits for a slot to free up before it accepts the next connection.
- **Colours:** each person who joins is given one of six bold ANSI colours at random.
- **Log:** the server writes a log of connections and relayed messages to its standard output.
- **Stopping:** press Ctrl-C to stop the server. This also closes every connection that is still open.

## Joining a room

```
termchat-client <IP> <port>
```

For example:

```
termchat-client 127.0.0.1 8080
```

The port must be between 1 and 65535. If it is not, the client prints `Invalid port number: ...` and exits with status 1.

### Joining

1. The client connects and prints the address it is connected to.
2. It asks for a username. A name longer than 16 characters is cut to 16.
3. The server clears the screen and draws a welcome bar as wide as the server's terminal.
4. The server lists the people who are already in the room.

### Chatting

- Type a line and press Enter to send it. The client erases the line you typed. The server then sends the line to every member, including you, prefixed with your coloured name.
- Members are told when someone joins or leaves.
- End input with Ctrl-D to stop sending and close the connection.
- When the server goes away, the client prints `Server disconnected.` and exits.

## Using it as a library

The pieces behind the commands can be imported:

- `termchat.server.ChatRoom` keeps track of the client slots, their names and their colours.
- `termchat.server.ChatServer` accepts connections and relays messages. Its methods are `bind`, `serve_forever`, `accept_one`, `broadcast` and `shutdown`.
- `termchat.server.format_message`, `format_join`, `format_leave`, `colorize` and `welcome_banner` build the text that is sent to clients.
- `termchat.client.ChatClient` runs the client's send and receive loops over any socket and text streams.
- `termchat.client.parse_port` checks a port number given as text.
- `termchat.commons.read_n_string` reads one line and can cut it to a maximum length. It raises `EOFError` at the end of input.
- `termchat.commons.peer_info` and `print_peer_info` report the address a socket is connected to.

## Tests

```
pip install .[test]
pytest
```
#!/usr/bin/env python3
"""
Interactive Test Client for Cell Store

A simple command-line client for manually testing the cell server.

Usage:
    python scripts/client.py                  # Connect to 127.0.0.1:8080
    python scripts/client.py --host 1.2.3.4   # Connect to specific host
    python scripts/client.py --port 9090      # Connect to specific port

Commands:
    set <cell> <value|expression>   - Store a literal or computed value
    get <cell>                      - Retrieve a cell
    help                            - Show this help
    exit                            - Exit client
"""

import argparse
import socket
import sys

from cellstore.protocol.errors import ProtocolError
from cellstore.protocol.framing import FrameCodec
from cellstore.protocol.messages import Message, Reply, ReplyKind

# Enable command history with arrow keys (works on Unix systems)
try:
    import readline  # noqa: F401
except ImportError:
    pass  # readline not available on Windows by default


class CellStoreClient:
    """Simple blocking TCP client for Cell Store."""

    def __init__(self, host: str, port: int, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.socket = None
        self.codec = FrameCodec()

    def connect(self) -> bool:
        """Connect to the server."""
        try:
            self.socket = socket.create_connection((self.host, self.port), timeout=self.timeout)
            return True
        except OSError as e:
            print(f"Connection error: {e}")
            return False

    def disconnect(self):
        """Disconnect from the server."""
        if self.socket:
            try:
                self.socket.close()
            except OSError:
                pass
            self.socket = None

    def send_command(self, command: str) -> Reply:
        """
        Send one command and wait for its reply.

        Raises:
            ProtocolError: if the connection fails or the server misbehaves
        """
        self.codec.send_message(self.socket, Message.for_command(command))
        message = self.codec.recv_message(self.socket)
        if message.is_command:
            raise ProtocolError("Server sent a Command message")
        return message.reply

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


def format_reply(reply: Reply) -> str:
    """Render a reply for the terminal."""
    if reply.kind == ReplyKind.OK:
        return "Ok"
    if reply.kind == ReplyKind.ERROR:
        return f"Error: {reply.message}"
    return f"{reply.value.kind.value}: {reply.value.payload}"


def print_help():
    """Print help message."""
    print("""
Cell Store Commands:
--------------------
  set <cell> <number>       Store a number
  set <cell> <a><op><b>     Store the result of one + - * / operation;
                            operands are cell ids or numbers
  get <cell>                Retrieve a cell's value

Client Commands:
----------------
  help                      Show this help message
  exit                      Exit the client
  reconnect                 Reconnect to the server
  status                    Show connection status

Examples:
---------
  set A1 3                  Store 3 in A1
  set B1 A1*2               Store 6 in B1
  get B1                    Number: 6.0
  get Z9                    Error: Cell Z9 not found
""")


def main():
    parser = argparse.ArgumentParser(
        description="Interactive test client for Cell Store"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Server host (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Server port (default: 8080)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Socket timeout in seconds (default: 5.0)"
    )

    args = parser.parse_args()

    print("Cell Store Client")
    print("=================")
    print(f"Connecting to {args.host}:{args.port}...")

    client = CellStoreClient(args.host, args.port, args.timeout)

    if not client.connect():
        print("Failed to connect. Is the server running?")
        print(f"  Try: python -m cellstore.server --port {args.port}")
        sys.exit(1)

    print("Connected! Type 'help' for commands.\n")

    try:
        while True:
            try:
                command = input(">>> ").strip()

                if not command:
                    continue

                lower_cmd = command.lower()

                if lower_cmd == "help":
                    print_help()
                    continue

                if lower_cmd in ("exit", "quit"):
                    print("Goodbye!")
                    break

                if lower_cmd == "reconnect":
                    client.disconnect()
                    if client.connect():
                        print("Reconnected!")
                    else:
                        print("Reconnection failed.")
                    continue

                if lower_cmd == "status":
                    status = "Connected" if client.socket else "Disconnected"
                    print(f"Status: {status}")
                    print(f"Server: {args.host}:{args.port}")
                    continue

                if not client.socket:
                    print("Not connected. Type 'reconnect'.")
                    continue

                try:
                    print(format_reply(client.send_command(command)))
                except ProtocolError as e:
                    # The server drops the session on any protocol fault
                    print(f"Connection lost: {e}")
                    client.disconnect()

            except EOFError:
                print("\nGoodbye!")
                break

    except KeyboardInterrupt:
        print("\n\nInterrupted. Goodbye!")
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()

"""Terminal chat room: a TCP relay server and a line-based client."""

__version__ = "0.1.0"
__all__ = ["client", "commons", "server"]
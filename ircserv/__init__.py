"""A small IRC server with password registration, channels and topics."""

__version__ = "1.0.0"
__all__ = ["channel", "client", "server", "cli"]
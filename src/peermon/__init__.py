"""peermon - Geth peer connectivity monitor."""

__version__ = "0.1.0"

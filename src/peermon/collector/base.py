"""
Base peer source interface.

A source is anything that can produce a PeerSnapshot. The scheduler
only talks to this interface, so the live RPC client and the mock
node are interchangeable.
"""

from abc import ABC, abstractmethod

from peermon.peers import PeerSnapshot


class PeerSource(ABC):
    """Interface for all peer-list sources."""

    @abstractmethod
    def fetch(self) -> PeerSnapshot:
        """Fetch the current peer list. Raises RemoteQueryError on failure."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass

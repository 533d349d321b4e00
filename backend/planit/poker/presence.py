from __future__ import annotations

from ..utils.clock import now_ms
from .models import Presence


class PresenceRegistry:
    """Which identities are online, across all rooms.

    An identity can hold several sockets (tabs). It stays in the snapshot after
    its last socket closes; only `remove` takes it out, once the grace window
    has expired.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Presence] = {}
        self._sid_index: dict[str, str] = {}

    def connect(self, identity: str, sid: str) -> bool:
        """Returns True when the identity was not present before."""
        entry = self._entries.get(identity)
        created = entry is None
        if entry is None:
            entry = Presence(identity=identity, connected_at_ms=now_ms())
            self._entries[identity] = entry

        previous = self._sid_index.get(sid)
        if previous is not None and previous != identity:
            self._forget_sid(sid)

        entry.sids.add(sid)
        entry.disconnected_at_ms = None
        self._sid_index[sid] = identity
        return created

    def disconnect(self, sid: str) -> str | None:
        """Forget a socket. Returns the identity if that was its last socket."""
        identity = self._sid_index.get(sid)
        if identity is None:
            return None
        entry = self._forget_sid(sid)
        if entry is None or entry.sids:
            return None
        entry.disconnected_at_ms = now_ms()
        return identity

    def remove(self, identity: str) -> bool:
        entry = self._entries.pop(identity, None)
        if entry is None:
            return False
        for sid in entry.sids:
            self._sid_index.pop(sid, None)
        return True

    def is_connected(self, identity: str) -> bool:
        return identity in self._entries

    def identity_for(self, sid: str) -> str | None:
        return self._sid_index.get(sid)

    def connections(self, identity: str) -> list[str]:
        entry = self._entries.get(identity)
        if entry is None:
            return []
        return sorted(entry.sids)

    def get(self, identity: str) -> Presence | None:
        return self._entries.get(identity)

    def snapshot(self) -> list[str]:
        return list(self._entries.keys())

    def _forget_sid(self, sid: str) -> Presence | None:
        identity = self._sid_index.pop(sid, None)
        entry = self._entries.get(identity) if identity is not None else None
        if entry is not None:
            entry.sids.discard(sid)
        return entry

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Room:
    id: str
    name: str
    owner: str
    voting_scale: list[str] = field(default_factory=list)
    participants: list[str] = field(default_factory=list)
    # identity -> vote value; insertion order is voting order
    votes: dict[str, str] = field(default_factory=dict)
    revealed: bool = False
    created_at_ms: int = 0


@dataclass
class Presence:
    identity: str
    sids: set[str] = field(default_factory=set)
    connected_at_ms: int = 0
    # Set while every socket of the identity is gone and removal is pending.
    disconnected_at_ms: int | None = None


@dataclass
class PendingRemoval:
    identity: str
    due_at_ms: int

"""Read-only snapshots of players and their status effects as supplied by the host."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Tuple

from .anchor import Vector

TICKS_PER_SECOND = 20

EntityId = Hashable


@dataclass(frozen=True)
class StatusEffect:
    kind: str
    amplifier: int = 0
    remaining_seconds: float = 0.0

    @classmethod
    def from_ticks(cls, kind: str, amplifier: int, remaining_ticks: int) -> "StatusEffect":
        return cls(kind, amplifier, remaining_ticks / TICKS_PER_SECOND)


@dataclass(frozen=True)
class TrackedEntity:
    """Snapshot of one connected player, taken by the host at the start of a tick."""

    entity_id: EntityId
    name: str
    eye_position: Vector = Vector()
    direction: Vector = Vector(0.0, 0.0, 1.0)
    effects: Tuple[StatusEffect, ...] = field(default_factory=tuple)

from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple

import pytest

from effect_overlay.anchor import Vector
from effect_overlay.host import ADMIN_PERMISSION, HostResult
from effect_overlay.model import StatusEffect, TrackedEntity

_SERIALS = itertools.count(1)


class FakeHandle:
    """Stand-in for a host-side floating text entity."""

    def __init__(self, host: "FakeHost", position: Vector) -> None:
        self.host = host
        self.serial = next(_SERIALS)
        self.position = position
        self.text: Optional[str] = None
        self.text_via: Optional[str] = None
        self.removed = False
        self.gone = False
        self.teleports = 0

    @property
    def alive(self) -> bool:
        return not (self.removed or self.gone)

    def teleport(self, position: Vector) -> HostResult:
        if not self.alive:
            return HostResult.GONE
        self.position = position
        self.teleports += 1
        return HostResult.OK

    def remove(self) -> HostResult:
        if not self.alive:
            return HostResult.GONE
        self.removed = True
        return HostResult.OK

    def set_text_component(self, text: str) -> HostResult:
        return self._set_text(text, "component", self.host.component_text)

    def set_text_legacy(self, text: str) -> HostResult:
        return self._set_text(text, "legacy", self.host.legacy_text)

    def _set_text(self, text: str, via: str, supported: bool) -> HostResult:
        self.host.text_attempts.append(via)
        if not self.alive:
            return HostResult.GONE
        if not supported:
            return HostResult.UNSUPPORTED
        self.text = text
        self.text_via = via
        return HostResult.OK


class FakeHost:
    def __init__(self, api_version: str = "1.20.4", admins: Iterable[Hashable] = ()) -> None:
        self.api_version = api_version
        self.logger = None
        self.players: Dict[Hashable, TrackedEntity] = {}
        self.admins = set(admins)
        self.spawned: List[FakeHandle] = []
        self.directives: List[Tuple[Hashable, int, bool]] = []
        self.visible: Dict[Tuple[Hashable, int], bool] = {}
        self.action_bars: List[Tuple[Hashable, str]] = []
        self.messages: List[Tuple[Hashable, str]] = []
        self.tasks: List[Tuple[Callable[[], Any], int]] = []
        self.cancelled: List[Any] = []
        self.text_attempts: List[str] = []
        self.component_text = True
        self.legacy_text = True
        self.fail_roster = False

    # Roster ---------------------------------------------------------------

    def add_player(self, entity: TrackedEntity) -> TrackedEntity:
        self.players[entity.entity_id] = entity
        return entity

    def drop_player(self, entity_id: Hashable) -> None:
        self.players.pop(entity_id, None)

    def online_players(self) -> List[TrackedEntity]:
        if self.fail_roster:
            raise RuntimeError("roster unavailable")
        return list(self.players.values())

    def get_player(self, entity_id: Hashable) -> Optional[TrackedEntity]:
        return self.players.get(entity_id)

    # Overlays -------------------------------------------------------------

    def spawn_overlay(self, position: Vector) -> FakeHandle:
        handle = FakeHandle(self, position)
        self.spawned.append(handle)
        return handle

    def live_handles(self) -> List[FakeHandle]:
        return [handle for handle in self.spawned if handle.alive]

    def show_overlay(self, observer_id: Hashable, handle: FakeHandle) -> HostResult:
        return self._direct(observer_id, handle, True)

    def hide_overlay(self, observer_id: Hashable, handle: FakeHandle) -> HostResult:
        return self._direct(observer_id, handle, False)

    def _direct(self, observer_id: Hashable, handle: FakeHandle, shown: bool) -> HostResult:
        self.directives.append((observer_id, handle.serial, shown))
        if not handle.alive:
            return HostResult.GONE
        self.visible[(observer_id, handle.serial)] = shown
        return HostResult.OK

    def is_visible_to(self, observer_id: Hashable, handle: FakeHandle) -> bool:
        # Overlays spawn hidden from everyone.
        return self.visible.get((observer_id, handle.serial), False)

    # Misc -----------------------------------------------------------------

    def send_action_bar(self, observer_id: Hashable, text: str) -> HostResult:
        self.action_bars.append((observer_id, text))
        return HostResult.OK

    def send_message(self, observer_id: Hashable, text: str) -> None:
        self.messages.append((observer_id, text))

    def has_permission(self, observer_id: Hashable, node: str) -> bool:
        return node == ADMIN_PERMISSION and observer_id in self.admins

    def run_task_timer(self, callback: Callable[[], Any], period_ticks: int) -> Tuple[Callable[[], Any], int]:
        task = (callback, period_ticks)
        self.tasks.append(task)
        return task

    def cancel_task(self, task: Any) -> None:
        self.cancelled.append(task)


def _player(
    entity_id: Hashable,
    *,
    name: Optional[str] = None,
    eye: Vector = Vector(0.0, 64.0, 0.0),
    direction: Vector = Vector(0.0, 0.0, 1.0),
    effects: Iterable[StatusEffect] = (),
) -> TrackedEntity:
    return TrackedEntity(
        entity_id=entity_id,
        name=name if name is not None else str(entity_id),
        eye_position=eye,
        direction=direction,
        effects=tuple(effects),
    )


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def make_player() -> Callable[..., TrackedEntity]:
    return _player

"""Work performed inside each scheduled overlay and HUD tick."""
from __future__ import annotations

import logging
from typing import Callable, Hashable, Optional, Sequence

from .host import Host, HostResult
from .model import TrackedEntity
from .registry import Overlay, OverlayRegistry
from .renderer import ContentRenderer
from .visibility import VisibilityEngine

LOGGER = logging.getLogger("EffectOverlay.Reconcile")


class ReconciliationLoop:
    """Brings the overlay set in line with the online roster, then refreshes visibility."""

    def __init__(
        self,
        host: Host,
        registry: OverlayRegistry,
        visibility: VisibilityEngine,
        renderer: ContentRenderer,
        hud_enabled: Optional[Callable[[Hashable], bool]] = None,
    ) -> None:
        self._host = host
        self._registry = registry
        self._visibility = visibility
        self._renderer = renderer
        self._hud_enabled = hud_enabled or (lambda _observer_id: False)

    def _roster(self, roster: Optional[Sequence[TrackedEntity]]) -> Sequence[TrackedEntity]:
        return list(self._host.online_players()) if roster is None else roster

    def ensure_all(self, roster: Optional[Sequence[TrackedEntity]] = None) -> None:
        for entity in self._roster(roster):
            self._registry.ensure(entity)

    def update_all(self, roster: Optional[Sequence[TrackedEntity]] = None) -> None:
        players = self._roster(roster)
        for entity in players:
            self._registry.update(entity)
        self._registry.reconcile_offline(entity.entity_id for entity in players)

    def update_one(self, entity_id: Hashable) -> Optional[Overlay]:
        entity = self._host.get_player(entity_id)
        if entity is None:
            return None
        return self._registry.update(entity)

    def tick(self) -> bool:
        """Run one reconciliation pass; failures are logged and never escape the scheduler."""

        try:
            roster = list(self._host.online_players())
            self.ensure_all(roster)
            self.update_all(roster)
            self._visibility.apply_all()
        except Exception:
            LOGGER.exception("Overlay update tick failed")
            return False
        return True

    def hud_tick(self) -> bool:
        try:
            for entity in self._host.online_players():
                if not self._hud_enabled(entity.entity_id):
                    continue
                result = self._host.send_action_bar(entity.entity_id, self._renderer.hud_line(entity))
                if result is not HostResult.OK:
                    LOGGER.debug("Action bar for %s not delivered: %s", entity.entity_id, result.value)
        except Exception:
            LOGGER.exception("HUD update tick failed")
            return False
        return True

"""Per-observer show/hide decisions for every live overlay."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Hashable, Iterable, List, Optional

from .host import Host, HostResult
from .registry import Overlay, OverlayRegistry

LOGGER = logging.getLogger("EffectOverlay.Visibility")


@dataclass(frozen=True)
class ObserverPolicy:
    overlay_enabled: bool = False
    self_view: bool = False


@dataclass(frozen=True)
class VisibilityDecision:
    observer_id: Hashable
    entity_id: Hashable
    shown: bool


def decide_visibility(policy: ObserverPolicy, is_owner: bool) -> bool:
    if not policy.overlay_enabled:
        return False
    if not is_owner:
        return True
    return policy.self_view


PolicyLookup = Callable[[Hashable], ObserverPolicy]
ObserverSource = Callable[[], Iterable[Hashable]]


class VisibilityEngine:
    """Recomputes every (observer, overlay) directive from scratch on each call.

    No previous decision is remembered, so a missed update (for example across
    a reconnect) is repaired by the next sweep. A full sweep costs
    O(overlays x observers), which is fine up to a few hundred players.
    """

    def __init__(
        self,
        registry: OverlayRegistry,
        host: Host,
        policy_lookup: PolicyLookup,
        observers: Optional[ObserverSource] = None,
    ) -> None:
        self._registry = registry
        self._host = host
        self._policy_lookup = policy_lookup
        self._observers = observers or self._online_observer_ids

    def _online_observer_ids(self) -> List[Hashable]:
        return [player.entity_id for player in self._host.online_players()]

    def apply(self, observer_id: Hashable) -> List[VisibilityDecision]:
        policy = self._policy_lookup(observer_id)
        return [self._direct(observer_id, policy, overlay) for overlay in self._registry.overlays()]

    def apply_overlay(self, overlay: Overlay) -> List[VisibilityDecision]:
        return [
            self._direct(observer_id, self._policy_lookup(observer_id), overlay)
            for observer_id in self._observers()
        ]

    def apply_all(self) -> List[VisibilityDecision]:
        decisions: List[VisibilityDecision] = []
        for observer_id in self._observers():
            decisions.extend(self.apply(observer_id))
        return decisions

    def _direct(self, observer_id: Hashable, policy: ObserverPolicy, overlay: Overlay) -> VisibilityDecision:
        shown = decide_visibility(policy, overlay.entity_id == observer_id)
        if shown:
            result = self._host.show_overlay(observer_id, overlay.handle)
        else:
            result = self._host.hide_overlay(observer_id, overlay.handle)
        if result is HostResult.GONE:
            # The registry drops it on its next touch.
            LOGGER.debug("Overlay for %s gone while applying visibility for %s", overlay.entity_id, observer_id)
        return VisibilityDecision(observer_id, overlay.entity_id, shown)

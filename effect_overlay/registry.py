"""Owns the live overlay of every tracked player and its last pushed text."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .anchor import Vector, anchor
from .host import Host, HostResult, OverlayHandle, TextStrategy, push_text, text_strategies_for
from .model import EntityId, TrackedEntity
from .renderer import ContentRenderer

LOGGER = logging.getLogger("EffectOverlay.Registry")


@dataclass(frozen=True)
class AnchorOffsets:
    lateral: float = 0.0
    forward: float = 0.0
    vertical: float = 1.90

    def point_for(self, entity: TrackedEntity) -> Vector:
        return anchor(entity.eye_position, entity.direction, self.lateral, self.forward, self.vertical)


@dataclass
class Overlay:
    entity_id: EntityId
    handle: OverlayHandle
    position: Vector
    text: str = ""


SpawnCallback = Callable[[Overlay], object]


class OverlayRegistry:
    """Creates, repositions, rebuilds and destroys overlays; nothing else mutates them."""

    def __init__(
        self,
        host: Host,
        renderer: ContentRenderer,
        offsets: AnchorOffsets,
        *,
        text_strategies: Optional[Sequence[TextStrategy]] = None,
        on_spawn: Optional[SpawnCallback] = None,
    ) -> None:
        self._host = host
        self._renderer = renderer
        self._offsets = offsets
        if text_strategies is None:
            text_strategies = text_strategies_for(getattr(host, "api_version", None))
        self._text_strategies: Tuple[TextStrategy, ...] = tuple(text_strategies)
        self._on_spawn = on_spawn
        self._overlays: Dict[EntityId, Overlay] = {}
        self._render_cache: Dict[EntityId, str] = {}
        self._text_unsupported_logged = False

    def bind_visibility(self, callback: Optional[SpawnCallback]) -> None:
        self._on_spawn = callback

    # Read-only views ------------------------------------------------------

    def get(self, entity_id: EntityId) -> Optional[Overlay]:
        return self._overlays.get(entity_id)

    def overlays(self) -> Tuple[Overlay, ...]:
        return tuple(self._overlays.values())

    def tracked_ids(self) -> Tuple[EntityId, ...]:
        return tuple(self._overlays)

    def cached_text(self, entity_id: EntityId) -> Optional[str]:
        return self._render_cache.get(entity_id)

    def __len__(self) -> int:
        return len(self._overlays)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._overlays

    def anchor_for(self, entity: TrackedEntity) -> Vector:
        return self._offsets.point_for(entity)

    # Lifecycle ------------------------------------------------------------

    def ensure(self, entity: TrackedEntity) -> Optional[Overlay]:
        existing = self._overlays.get(entity.entity_id)
        if existing is not None:
            return existing
        return self._spawn(entity.entity_id, self.anchor_for(entity), "")

    def update(self, entity: TrackedEntity) -> Optional[Overlay]:
        """Move the overlay to the current anchor and rebuild it when its text changed."""

        entity_id = entity.entity_id
        position = self.anchor_for(entity)
        text = self._renderer.render_text(entity)
        current = self._overlays.get(entity_id)

        if current is None or self._render_cache.get(entity_id) != text:
            # Replace rather than edit a visible overlay in place.
            self._destroy(entity_id)
            overlay = self._spawn(entity_id, position, text)
            if overlay is not None:
                self._render_cache[entity_id] = text
            return overlay

        if current.handle.teleport(position) is HostResult.GONE:
            LOGGER.debug("Overlay for %s vanished on reposition; dropping it", entity_id)
            self._forget(entity_id)
            return None
        current.position = position
        return current

    def remove(self, entity_id: EntityId) -> bool:
        removed = self._destroy(entity_id)
        self._render_cache.pop(entity_id, None)
        return removed

    def reconcile_offline(self, live_ids: Iterable[EntityId]) -> List[EntityId]:
        """Drop overlays owned by players missing from ``live_ids``."""

        live = set(live_ids)
        stale = [entity_id for entity_id in set(self._overlays) | set(self._render_cache) if entity_id not in live]
        for entity_id in stale:
            self.remove(entity_id)
        if stale:
            LOGGER.debug("Pruned overlays for departed players: %s", stale)
        return stale

    def clear_all(self) -> int:
        count = 0
        for entity_id in list(self._overlays):
            if self._destroy(entity_id):
                count += 1
        self._overlays.clear()
        self._render_cache.clear()
        return count

    # Helpers --------------------------------------------------------------

    def _spawn(self, entity_id: EntityId, position: Vector, text: str) -> Optional[Overlay]:
        handle = self._host.spawn_overlay(position)
        overlay = Overlay(entity_id, handle, position)
        if text:
            result = push_text(handle, text, self._text_strategies)
            if result is HostResult.GONE:
                LOGGER.debug("Overlay for %s vanished before its text was set", entity_id)
                return None
            if result is HostResult.OK:
                overlay.text = text
            elif not self._text_unsupported_logged:
                self._text_unsupported_logged = True
                LOGGER.warning("Host rejected every overlay text setter; overlays will be shown without text")
        self._overlays[entity_id] = overlay
        if self._on_spawn is not None:
            self._on_spawn(overlay)
        return overlay

    def _destroy(self, entity_id: EntityId) -> bool:
        overlay = self._overlays.pop(entity_id, None)
        if overlay is None:
            return False
        if overlay.handle.remove() is HostResult.GONE:
            LOGGER.debug("Overlay for %s was already gone on removal", entity_id)
        return True

    def _forget(self, entity_id: EntityId) -> None:
        self._overlays.pop(entity_id, None)
        self._render_cache.pop(entity_id, None)

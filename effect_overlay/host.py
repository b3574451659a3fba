"""Host capability interface consumed by the overlay plugin.

The host (game server bridge) owns the real entities. Every call that can fail
because a handle went away or because the running host version lacks an
operation reports a :class:`HostResult` instead of raising.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Hashable, Iterable, Optional, Protocol, Sequence, Tuple

from packaging.version import InvalidVersion, Version

from .anchor import Vector
from .model import TrackedEntity

LOGGER = logging.getLogger("EffectOverlay.Host")

ADMIN_PERMISSION = "effectoverlay.admin"
# First host API release that accepts rich text components for entity names.
COMPONENT_TEXT_MIN_VERSION = Version("1.16.5")


class HostResult(enum.Enum):
    OK = "ok"
    UNSUPPORTED = "unsupported"
    GONE = "gone"


class OverlayHandle(Protocol):
    def teleport(self, position: Vector) -> HostResult: ...
    def remove(self) -> HostResult: ...
    def set_text_component(self, text: str) -> HostResult: ...
    def set_text_legacy(self, text: str) -> HostResult: ...


class Host(Protocol):
    api_version: str
    logger: Optional[logging.Logger]

    def online_players(self) -> Sequence[TrackedEntity]: ...
    def get_player(self, entity_id: Hashable) -> Optional[TrackedEntity]: ...
    def spawn_overlay(self, position: Vector) -> OverlayHandle: ...
    def show_overlay(self, observer_id: Hashable, handle: OverlayHandle) -> HostResult: ...
    def hide_overlay(self, observer_id: Hashable, handle: OverlayHandle) -> HostResult: ...
    def send_action_bar(self, observer_id: Hashable, text: str) -> HostResult: ...
    def send_message(self, observer_id: Hashable, text: str) -> None: ...
    def has_permission(self, observer_id: Hashable, node: str) -> bool: ...
    def run_task_timer(self, callback: Callable[[], None], period_ticks: int) -> Any: ...
    def cancel_task(self, task: Any) -> None: ...


TextStrategy = Callable[[OverlayHandle, str], HostResult]


def set_text_component(handle: OverlayHandle, text: str) -> HostResult:
    return handle.set_text_component(text)


def set_text_legacy(handle: OverlayHandle, text: str) -> HostResult:
    return handle.set_text_legacy(text)


def _parse_version(raw: Optional[str]) -> Optional[Version]:
    if not raw:
        return None
    try:
        return Version(str(raw).strip())
    except InvalidVersion:
        LOGGER.debug("Unparseable host API version %r", raw)
        return None


def text_strategies_for(api_version: Optional[str]) -> Tuple[TextStrategy, ...]:
    """Order text setters so the one native to ``api_version`` is tried first."""

    parsed = _parse_version(api_version)
    if parsed is not None and parsed >= COMPONENT_TEXT_MIN_VERSION:
        return (set_text_component, set_text_legacy)
    return (set_text_legacy, set_text_component)


def push_text(handle: OverlayHandle, text: str, strategies: Iterable[TextStrategy]) -> HostResult:
    """Try each strategy until one applies the text or reports the handle gone."""

    for strategy in strategies:
        result = strategy(handle, text)
        if result is not HostResult.UNSUPPORTED:
            return result
    return HostResult.UNSUPPORTED

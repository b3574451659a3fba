"""Primary entry point for the Effect Overlay plugin."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Hashable, List, Optional

from effect_overlay.anchor import Vector
from effect_overlay.host import ADMIN_PERMISSION, Host
from effect_overlay.logging_utils import (
    LOGGER_NAME,
    bind_host_logger,
    build_rotating_debug_handler,
    configure_logger,
)
from effect_overlay.preferences import Preferences
from effect_overlay.reconcile import ReconciliationLoop
from effect_overlay.registry import Overlay, OverlayRegistry
from effect_overlay.renderer import ContentRenderer
from effect_overlay.version import __version__ as EFFECT_OVERLAY_VERSION
from effect_overlay.visibility import ObserverPolicy, VisibilityDecision, VisibilityEngine

PLUGIN_NAME = "EffectOverlay"
PLUGIN_VERSION = EFFECT_OVERLAY_VERSION
MOVE_EPSILON_SQUARED = 1.0e-6
MESSAGE_PREFIX = "[EffectOverlay] "


LOGGER = configure_logger()


def _log(message: str) -> None:
    """Log to the host via the Python logging facade."""
    LOGGER.info(message)


def _on_off(value: bool) -> str:
    return "ON" if value else "OFF"


class _PluginRuntime:
    """Encapsulates plugin state so host globals stay tidy."""

    def __init__(self, host: Host, plugin_dir: str, preferences: Preferences) -> None:
        self.host = host
        self.plugin_dir = Path(plugin_dir)
        self._preferences = preferences
        self._lock = threading.Lock()
        self._running = False
        self._tasks: List[Any] = []
        self._debug_handler: Optional[logging.Handler] = None
        self._level_before_debug = logging.NOTSET
        self._build_components()

    def _build_components(self) -> None:
        prefs = self._preferences
        self.renderer = ContentRenderer(prefs.language, prefs.show_player_name)
        self.registry = OverlayRegistry(self.host, self.renderer, prefs.anchor_offsets())
        self.visibility = VisibilityEngine(self.registry, self.host, self.policy_for)
        self.registry.bind_visibility(self.visibility.apply_overlay)
        self.loop = ReconciliationLoop(
            self.host,
            self.registry,
            self.visibility,
            self.renderer,
            hud_enabled=self.hud_enabled,
        )

    @property
    def running(self) -> bool:
        return self._running

    # Lifecycle ------------------------------------------------------------

    def start(self) -> str:
        with self._lock:
            if self._running:
                return PLUGIN_NAME
            self._configure_debug_log()
            try:
                admins = [
                    player.entity_id
                    for player in self.host.online_players()
                    if self.host.has_permission(player.entity_id, ADMIN_PERMISSION)
                ]
                added = self._preferences.enable_overlay(admins)
                if added:
                    LOGGER.debug("Opted online admins in to overlays: %s", added)
                self._save_preferences()
                self.ensure_all_tracked()
                for player in self.host.online_players():
                    self.apply_visibility(player.entity_id)
                self._schedule_tasks()
            except Exception:
                # A half-started runtime must not leave overlays or the debug log behind.
                self._teardown()
                raise
            self._running = True
        _log(f"{PLUGIN_NAME} {PLUGIN_VERSION} enabled")
        return PLUGIN_NAME

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
        _log("Plugin stopping")
        self._teardown()
        self._save_preferences()

    def reload(self) -> None:
        """Re-read preferences and rebuild overlays with the new display options."""

        self._preferences.reload()
        self.registry.clear_all()
        self._build_components()
        self._configure_debug_log()
        if self._running:
            self._cancel_tasks()
            self._schedule_tasks()
        self.ensure_all_tracked()
        self.visibility.apply_all()
        LOGGER.info(
            "Preferences reloaded: language=%s show_player_name=%s offsets=(%.2f, %.2f, %.2f) "
            "update_ticks=%d hud_update_ticks=%d update_on_move=%s",
            self.renderer.language,
            self.renderer.show_player_name,
            self._preferences.offset_right,
            self._preferences.offset_forward,
            self._preferences.offset_up,
            self._preferences.update_ticks,
            self._preferences.hud_update_ticks,
            self._preferences.update_on_move,
        )

    # Host events ----------------------------------------------------------

    def handle_join(self, observer_id: Hashable) -> None:
        if self.host.has_permission(observer_id, ADMIN_PERMISSION):
            if self._preferences.enable_overlay([observer_id]):
                self._save_preferences()
            self.host.send_message(
                observer_id,
                MESSAGE_PREFIX + "Status overlays are on. Use /effectoverlay config to change what you see.",
            )
        self.ensure_all_tracked()
        self.apply_visibility(observer_id)

    def handle_quit(self, entity_id: Hashable) -> None:
        # Remove immediately so nothing lingers above the departed player.
        self.remove(entity_id)

    def handle_move(self, entity_id: Hashable, from_pos: Vector, to_pos: Vector) -> None:
        if not self._preferences.update_on_move:
            return
        if from_pos.distance_squared(to_pos) < MOVE_EPSILON_SQUARED:
            return
        self.update_one(entity_id)

    # Scheduled work -------------------------------------------------------

    def tick(self) -> bool:
        return self.loop.tick()

    def hud_tick(self) -> bool:
        return self.loop.hud_tick()

    # Operations for command/menu layers -----------------------------------

    def ensure_all_tracked(self) -> None:
        self.loop.ensure_all()

    def ensure_one(self, entity_id: Hashable) -> Optional[Overlay]:
        entity = self.host.get_player(entity_id)
        if entity is None:
            return None
        return self.registry.ensure(entity)

    def update_all(self) -> None:
        self.loop.update_all()

    def update_one(self, entity_id: Hashable) -> Optional[Overlay]:
        return self.loop.update_one(entity_id)

    def remove(self, entity_id: Hashable) -> bool:
        return self.registry.remove(entity_id)

    def clear_all(self) -> int:
        return self.registry.clear_all()

    def apply_visibility(self, observer_id: Hashable) -> List[VisibilityDecision]:
        return self.visibility.apply(observer_id)

    def render_lines(self, entity_id: Hashable) -> List[str]:
        entity = self.host.get_player(entity_id)
        if entity is None:
            return []
        return self.renderer.render_lines(entity)

    def effect_label(self, kind: str) -> str:
        return self.renderer.effect_label(kind)

    def toggle_overlay(self, observer_id: Hashable) -> bool:
        enabled = self._preferences.toggle_overlay(observer_id)
        self._save_preferences()
        self.apply_visibility(observer_id)
        self.host.send_message(observer_id, MESSAGE_PREFIX + f"Overlay: {_on_off(enabled)}")
        return enabled

    def toggle_self_view(self, observer_id: Hashable) -> bool:
        enabled = self._preferences.toggle_self_view(observer_id)
        self._save_preferences()
        self.apply_visibility(observer_id)
        self.host.send_message(observer_id, MESSAGE_PREFIX + f"Own overlay: {_on_off(enabled)}")
        return enabled

    def toggle_hud(self, observer_id: Hashable) -> bool:
        enabled = self._preferences.toggle_hud(observer_id)
        self._save_preferences()
        self.host.send_message(observer_id, MESSAGE_PREFIX + f"HUD: {_on_off(enabled)}")
        return enabled

    # Policy ---------------------------------------------------------------

    def policy_for(self, observer_id: Hashable) -> ObserverPolicy:
        policy = self._preferences.policy_for(observer_id)
        if policy.overlay_enabled and not self.host.has_permission(observer_id, ADMIN_PERMISSION):
            return ObserverPolicy(overlay_enabled=False, self_view=policy.self_view)
        return policy

    def hud_enabled(self, observer_id: Hashable) -> bool:
        return self._preferences.hud_enabled(observer_id) and self.host.has_permission(observer_id, ADMIN_PERMISSION)

    # Helpers --------------------------------------------------------------

    def _schedule_tasks(self) -> None:
        self._tasks = [
            self.host.run_task_timer(self.tick, self._preferences.update_ticks),
            self.host.run_task_timer(self.hud_tick, self._preferences.hud_update_ticks),
        ]
        LOGGER.debug(
            "Scheduled overlay tick every %d ticks and HUD tick every %d ticks",
            self._preferences.update_ticks,
            self._preferences.hud_update_ticks,
        )

    def _teardown(self) -> None:
        self._cancel_tasks()
        try:
            removed = self.registry.clear_all()
            LOGGER.debug("Removed %d overlays on shutdown", removed)
        finally:
            self._detach_debug_log()

    def _cancel_tasks(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            self.host.cancel_task(task)

    def _save_preferences(self) -> None:
        try:
            self._preferences.save()
        except OSError as exc:
            LOGGER.warning("Failed to save preferences: %s", exc)

    def _configure_debug_log(self) -> None:
        self._detach_debug_log()
        if not self._preferences.debug_log:
            return
        handler = build_rotating_debug_handler(self.plugin_dir / "logs", self._preferences.debug_log_retention)
        plugin_logger = logging.getLogger(LOGGER_NAME)
        self._level_before_debug = plugin_logger.level
        plugin_logger.addHandler(handler)
        plugin_logger.setLevel(logging.DEBUG)
        self._debug_handler = handler
        LOGGER.debug("Debug log enabled at %s", self.plugin_dir / "logs")

    def _detach_debug_log(self) -> None:
        handler, self._debug_handler = self._debug_handler, None
        if handler is None:
            return
        plugin_logger = logging.getLogger(LOGGER_NAME)
        plugin_logger.removeHandler(handler)
        plugin_logger.setLevel(self._level_before_debug)
        handler.close()


# Host hook functions ------------------------------------------------------

_plugin: Optional[_PluginRuntime] = None
_preferences: Optional[Preferences] = None


def plugin_start(host: Host, plugin_dir: str) -> str:
    global _plugin, _preferences
    if _plugin is not None and _plugin.running:
        return PLUGIN_NAME
    bind_host_logger(getattr(host, "logger", None))
    _log(f"Initialising {PLUGIN_NAME} plugin from {plugin_dir}")
    try:
        _preferences = Preferences(Path(plugin_dir))
        _plugin = _PluginRuntime(host, plugin_dir, _preferences)
        return _plugin.start()
    except Exception as exc:
        LOGGER.exception("Enable failed: %s", exc)
        _plugin = None
        _preferences = None
        return PLUGIN_NAME


def plugin_stop() -> None:
    global _plugin, _preferences
    if _plugin:
        try:
            _plugin.stop()
        except Exception as exc:
            LOGGER.exception("Disable failed: %s", exc)
        finally:
            _plugin = None
    _preferences = None
    _log(f"{PLUGIN_NAME} disabled")
    bind_host_logger(None)


def player_join(observer_id: Hashable) -> None:
    if _plugin:
        _plugin.handle_join(observer_id)


def player_quit(entity_id: Hashable) -> None:
    if _plugin:
        _plugin.handle_quit(entity_id)


def player_move(entity_id: Hashable, from_pos: Vector, to_pos: Vector) -> None:
    if _plugin:
        _plugin.handle_move(entity_id, from_pos, to_pos)


# Metadata expected by some plugin loaders
name = PLUGIN_NAME
version = PLUGIN_VERSION

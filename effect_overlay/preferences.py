"""Preferences management for the Effect Overlay plugin."""
from __future__ import annotations

import json
import logging
from dataclasses import MISSING, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Hashable, Iterable, List, Set

from .registry import AnchorOffsets
from .renderer import DEFAULT_LANGUAGE
from .visibility import ObserverPolicy

LOGGER = logging.getLogger("EffectOverlay.Preferences")

PREFERENCES_FILE = "effect_overlay_settings.json"
MIN_UPDATE_TICKS = 1
MIN_HUD_UPDATE_TICKS = 10
DEFAULT_OFFSET_UP = 1.90


def _coerce_float(raw: Any, default: float) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _coerce_int(raw: Any, default: int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _id_set(raw: Any) -> Set[str]:
    if not isinstance(raw, list):
        return set()
    return {str(item).strip() for item in raw if item is not None and str(item).strip()}


@dataclass
class Preferences:
    """Simple JSON-backed preferences store.

    Holds the display options read once at start (and on reload) plus the
    per-observer opt-in id sets, persisted as flat lists of identifiers.
    """

    plugin_dir: Path
    offset_right: float = 0.0
    offset_forward: float = 0.0
    offset_up: float = DEFAULT_OFFSET_UP
    show_player_name: bool = False
    language: str = DEFAULT_LANGUAGE
    update_ticks: int = 1
    hud_update_ticks: int = 40
    update_on_move: bool = True
    debug_log: bool = False
    debug_log_retention: int = 3
    enabled_overlay: Set[str] = field(default_factory=set)
    enabled_hud: Set[str] = field(default_factory=set)
    enabled_self_view: Set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.plugin_dir = Path(self.plugin_dir)
        self._path = self.plugin_dir / PREFERENCES_FILE
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    # Persistence ---------------------------------------------------------

    def _reset_defaults(self) -> None:
        for spec in fields(self):
            if spec.name == "plugin_dir":
                continue
            if spec.default is not MISSING:
                setattr(self, spec.name, spec.default)
            elif spec.default_factory is not MISSING:
                setattr(self, spec.name, spec.default_factory())

    def _load(self) -> None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable preferences file %s: %s", self._path, exc)
            return
        if not isinstance(data, dict):
            return
        self.offset_right = _coerce_float(data.get("offset_right", 0.0), 0.0)
        self.offset_forward = _coerce_float(data.get("offset_forward", 0.0), 0.0)
        self.offset_up = _coerce_float(data.get("offset_up", DEFAULT_OFFSET_UP), DEFAULT_OFFSET_UP)
        self.show_player_name = bool(data.get("show_player_name", False))
        language = str(data.get("language") or DEFAULT_LANGUAGE).strip().lower()
        self.language = language or DEFAULT_LANGUAGE
        self.update_ticks = max(MIN_UPDATE_TICKS, _coerce_int(data.get("update_ticks", 1), 1))
        self.hud_update_ticks = max(MIN_HUD_UPDATE_TICKS, _coerce_int(data.get("hud_update_ticks", 40), 40))
        self.update_on_move = bool(data.get("update_on_move", True))
        self.debug_log = bool(data.get("debug_log", False))
        self.debug_log_retention = max(1, _coerce_int(data.get("debug_log_retention", 3), 3))
        self.enabled_overlay = _id_set(data.get("enabled_overlay"))
        self.enabled_hud = _id_set(data.get("enabled_hud"))
        self.enabled_self_view = _id_set(data.get("enabled_self_view"))

    def reload(self) -> None:
        self._reset_defaults()
        self._load()

    def save(self) -> None:
        payload: Dict[str, Any] = {
            "offset_right": float(self.offset_right),
            "offset_forward": float(self.offset_forward),
            "offset_up": float(self.offset_up),
            "show_player_name": bool(self.show_player_name),
            "language": str(self.language or DEFAULT_LANGUAGE),
            "update_ticks": int(self.update_ticks),
            "hud_update_ticks": int(self.hud_update_ticks),
            "update_on_move": bool(self.update_on_move),
            "debug_log": bool(self.debug_log),
            "debug_log_retention": int(self.debug_log_retention),
            "enabled_overlay": sorted(self.enabled_overlay),
            "enabled_hud": sorted(self.enabled_hud),
            "enabled_self_view": sorted(self.enabled_self_view),
        }
        self.plugin_dir.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    # Derived views -------------------------------------------------------

    def anchor_offsets(self) -> AnchorOffsets:
        return AnchorOffsets(
            lateral=float(self.offset_right),
            forward=float(self.offset_forward),
            vertical=float(self.offset_up),
        )

    def policy_for(self, observer_id: Hashable) -> ObserverPolicy:
        key = str(observer_id)
        return ObserverPolicy(
            overlay_enabled=key in self.enabled_overlay,
            self_view=key in self.enabled_self_view,
        )

    def hud_enabled(self, observer_id: Hashable) -> bool:
        return str(observer_id) in self.enabled_hud

    # Toggles -------------------------------------------------------------

    def enable_overlay(self, observer_ids: Iterable[Hashable]) -> List[str]:
        """Opt observers in to the overlay; returns the ids that were newly added."""

        added = [str(observer_id) for observer_id in observer_ids if str(observer_id) not in self.enabled_overlay]
        self.enabled_overlay.update(added)
        return added

    def toggle_overlay(self, observer_id: Hashable) -> bool:
        return self._toggle(self.enabled_overlay, observer_id)

    def toggle_hud(self, observer_id: Hashable) -> bool:
        return self._toggle(self.enabled_hud, observer_id)

    def toggle_self_view(self, observer_id: Hashable) -> bool:
        return self._toggle(self.enabled_self_view, observer_id)

    @staticmethod
    def _toggle(target: Set[str], observer_id: Hashable) -> bool:
        key = str(observer_id)
        if key in target:
            target.discard(key)
            return False
        target.add(key)
        return True

"""Builds the text lines shown in a player's overlay and HUD (pure, no host calls)."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping

from .model import StatusEffect, TrackedEntity

LOGGER = logging.getLogger("EffectOverlay.Renderer")

DEFAULT_LANGUAGE = "ja"
LINE_SEPARATOR = "\n"
HUD_SEPARATOR = " | "

_ROMAN = ("", "I", "II", "III", "IV", "V", "VI", "VII", "VIII", "IX", "X")

EFFECT_LABELS: Dict[str, Mapping[str, str]] = {
    "ja": {
        "SPEED": "移動速度",
        "SLOW": "移動低下",
        "FAST_DIGGING": "採掘速度",
        "SLOW_DIGGING": "採掘低下",
        "INCREASE_DAMAGE": "攻撃力上昇",
        "HEAL": "即時回復",
        "HARM": "即時ダメージ",
        "JUMP": "跳躍力上昇",
        "REGENERATION": "再生",
        "DAMAGE_RESISTANCE": "耐性",
        "FIRE_RESISTANCE": "耐火",
        "WATER_BREATHING": "水中呼吸",
        "INVISIBILITY": "透明化",
        "NIGHT_VISION": "暗視",
        "HUNGER": "空腹",
        "WEAKNESS": "弱体化",
        "POISON": "毒",
        "WITHER": "衰弱",
        "HEALTH_BOOST": "体力増強",
        "ABSORPTION": "衝撃吸収",
        "SATURATION": "満腹度回復",
        "GLOWING": "発光",
        "LEVITATION": "浮遊",
        "LUCK": "幸運",
        "UNLUCK": "不運",
        "CONDUIT_POWER": "コンジットパワー",
        "DOLPHINS_GRACE": "イルカの好意",
        "BAD_OMEN": "不吉な予感",
        "HERO_OF_THE_VILLAGE": "村の英雄",
    },
    "en": {
        "SPEED": "Speed",
        "SLOW": "Slowness",
        "FAST_DIGGING": "Haste",
        "SLOW_DIGGING": "Mining Fatigue",
        "INCREASE_DAMAGE": "Strength",
        "HEAL": "Instant Health",
        "HARM": "Instant Damage",
        "JUMP": "Jump Boost",
        "REGENERATION": "Regeneration",
        "DAMAGE_RESISTANCE": "Resistance",
        "FIRE_RESISTANCE": "Fire Resistance",
        "WATER_BREATHING": "Water Breathing",
        "INVISIBILITY": "Invisibility",
        "NIGHT_VISION": "Night Vision",
        "HUNGER": "Hunger",
        "WEAKNESS": "Weakness",
        "POISON": "Poison",
        "WITHER": "Wither",
        "HEALTH_BOOST": "Health Boost",
        "ABSORPTION": "Absorption",
        "SATURATION": "Saturation",
        "GLOWING": "Glowing",
        "LEVITATION": "Levitation",
        "LUCK": "Luck",
        "UNLUCK": "Bad Luck",
        "CONDUIT_POWER": "Conduit Power",
        "DOLPHINS_GRACE": "Dolphin's Grace",
        "BAD_OMEN": "Bad Omen",
        "HERO_OF_THE_VILLAGE": "Hero of the Village",
    },
}

NO_EFFECTS_TEXT: Dict[str, str] = {
    "ja": "（効果なし）",
    "en": "(no effects)",
}


def roman(value: int) -> str:
    if 0 <= value < len(_ROMAN):
        return _ROMAN[value]
    return str(value)


def format_remaining(seconds: float) -> str:
    whole = max(0, int(seconds))
    return f"{whole // 60}:{whole % 60:02d}"


class ContentRenderer:
    """Turns a player's effect snapshot into overlay lines in one configured language."""

    def __init__(self, language: str = DEFAULT_LANGUAGE, show_player_name: bool = False) -> None:
        token = (language or "").strip().lower()
        if token not in EFFECT_LABELS:
            LOGGER.warning("Unknown overlay language %r; falling back to %s", language, DEFAULT_LANGUAGE)
            token = DEFAULT_LANGUAGE
        self.language = token
        self.show_player_name = bool(show_player_name)
        self._labels = EFFECT_LABELS[token]

    def effect_label(self, kind: str) -> str:
        return self._labels.get(kind, kind)

    def no_effects_line(self) -> str:
        return NO_EFFECTS_TEXT[self.language]

    def effect_line(self, effect: StatusEffect) -> str:
        tier = max(1, effect.amplifier + 1)
        return f"{self.effect_label(effect.kind)} {roman(tier)} {format_remaining(effect.remaining_seconds)}"

    def render_lines(self, entity: TrackedEntity) -> List[str]:
        lines: List[str] = []
        if self.show_player_name:
            lines.append(entity.name)
        if not entity.effects:
            lines.append(self.no_effects_line())
            return lines
        lines.extend(self.effect_line(effect) for effect in entity.effects)
        return lines

    def render_text(self, entity: TrackedEntity) -> str:
        return LINE_SEPARATOR.join(self.render_lines(entity))

    def hud_line(self, entity: TrackedEntity) -> str:
        return HUD_SEPARATOR.join(self.render_lines(entity))

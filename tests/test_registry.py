from __future__ import annotations

from effect_overlay.anchor import Vector
from effect_overlay.model import StatusEffect
from effect_overlay.registry import AnchorOffsets, OverlayRegistry
from effect_overlay.renderer import ContentRenderer

OFFSETS = AnchorOffsets(lateral=0.5, forward=0.25, vertical=1.9)


def _registry(host, spawned=None):
    callback = spawned.append if spawned is not None else None
    return OverlayRegistry(host, ContentRenderer("en"), OFFSETS, on_spawn=callback)


def test_ensure_is_idempotent(host, make_player):
    registry = _registry(host)
    alice = make_player("alice")

    first = registry.ensure(alice)
    second = registry.ensure(alice)

    assert first is second
    assert len(host.spawned) == 1
    assert len(registry) == 1
    assert first.position == OFFSETS.point_for(alice)


def test_ensure_spawns_hidden_overlay_and_notifies_visibility(host, make_player):
    spawned = []
    registry = _registry(host, spawned)

    overlay = registry.ensure(make_player("alice"))

    assert spawned == [overlay]
    assert host.visible == {}


def test_update_all_keeps_at_most_one_live_overlay_per_player(host, make_player):
    registry = _registry(host)
    players = [make_player(f"p{index}", effects=[StatusEffect("SPEED", 0, 10 + index)]) for index in range(5)]

    for remaining in (30, 29, 29, 28):
        for player in players:
            registry.ensure(player)
        for player in players:
            registry.update(
                make_player(player.entity_id, effects=[StatusEffect("SPEED", 0, remaining)])
            )
        live_owners = [overlay.entity_id for overlay in registry.overlays()]
        assert sorted(live_owners) == sorted(player.entity_id for player in players)
        assert len(host.live_handles()) == len(players)


def test_changed_text_replaces_handle(host, make_player):
    registry = _registry(host)
    registry.update(make_player("alice", effects=[StatusEffect("SPEED", 1, 125)]))
    before = registry.get("alice").handle

    after_overlay = registry.update(make_player("alice", effects=[StatusEffect("SPEED", 1, 124)]))

    assert after_overlay.handle is not before
    assert before.removed
    assert after_overlay.handle.text == "Speed II 2:04"
    assert registry.cached_text("alice") == "Speed II 2:04"


def test_unchanged_text_preserves_handle_and_tracks_position(host, make_player):
    registry = _registry(host)
    effects = [StatusEffect("SPEED", 1, 125)]
    registry.update(make_player("alice", eye=Vector(0.0, 64.0, 0.0), effects=effects))
    before = registry.get("alice").handle

    moved = make_player("alice", eye=Vector(7.0, 65.0, -2.0), direction=Vector(1.0, 0.0, 0.0), effects=effects)
    overlay = registry.update(moved)

    assert overlay.handle is before
    assert before.teleports == 1
    assert before.position == OFFSETS.point_for(moved)
    assert overlay.position == OFFSETS.point_for(moved)
    assert len(host.spawned) == 1


def test_update_after_ensure_rebuilds_empty_overlay(host, make_player):
    registry = _registry(host)
    alice = make_player("alice")
    placeholder = registry.ensure(alice).handle

    overlay = registry.update(alice)

    assert placeholder.removed
    assert overlay.handle is not placeholder
    assert overlay.text == "(no effects)"


def test_stale_handle_is_dropped_then_recreated(host, make_player):
    registry = _registry(host)
    alice = make_player("alice")
    registry.update(alice)
    registry.get("alice").handle.gone = True

    assert registry.update(alice) is None
    assert "alice" not in registry
    assert registry.cached_text("alice") is None

    recreated = registry.update(alice)
    assert recreated is not None
    assert recreated.handle.alive


def test_overlay_gone_before_text_is_set_is_dropped_then_respawned(monkeypatch, host, make_player):
    spawned = []
    registry = _registry(host, spawned)
    registry.update(make_player("alice"))
    spawned.clear()
    real_spawn = host.spawn_overlay

    def vanishing_spawn(position):
        handle = real_spawn(position)
        handle.gone = True
        return handle

    monkeypatch.setattr(host, "spawn_overlay", vanishing_spawn)
    speedy = make_player("alice", effects=[StatusEffect("SPEED", 1, 125)])

    assert registry.update(speedy) is None
    assert "alice" not in registry
    assert registry.cached_text("alice") != "Speed II 2:05"
    assert spawned == []

    monkeypatch.setattr(host, "spawn_overlay", real_spawn)
    respawned = registry.update(speedy)

    assert respawned is not None
    assert respawned.handle.text == "Speed II 2:05"
    assert registry.cached_text("alice") == "Speed II 2:05"
    assert spawned == [respawned]


def test_remove_is_safe_when_absent(host, make_player):
    registry = _registry(host)
    assert registry.remove("nobody") is False

    registry.update(make_player("alice"))
    handle = registry.get("alice").handle
    assert registry.remove("alice") is True
    assert handle.removed
    assert registry.cached_text("alice") is None
    assert registry.remove("alice") is False


def test_remove_tolerates_already_gone_handle(host, make_player):
    registry = _registry(host)
    registry.update(make_player("alice"))
    registry.get("alice").handle.gone = True

    assert registry.remove("alice") is True
    assert len(registry) == 0


def test_reconcile_offline_prunes_vanished_players(host, make_player):
    registry = _registry(host)
    registry.update(make_player("alice"))
    registry.update(make_player("bob"))
    bob_handle = registry.get("bob").handle

    pruned = registry.reconcile_offline(["alice"])

    assert pruned == ["bob"]
    assert bob_handle.removed
    assert registry.tracked_ids() == ("alice",)


def test_clear_all_destroys_everything(host, make_player):
    registry = _registry(host)
    for name in ("alice", "bob", "carol"):
        registry.update(make_player(name))

    assert registry.clear_all() == 3
    assert host.live_handles() == []
    assert len(registry) == 0


def test_unsupported_text_keeps_overlay_without_rebuild_churn(host, make_player):
    host.component_text = False
    host.legacy_text = False
    registry = _registry(host)
    alice = make_player("alice")

    first = registry.update(alice)
    second = registry.update(alice)

    assert first is second
    assert first.text == ""
    assert len(host.spawned) == 1

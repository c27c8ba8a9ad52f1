"""
Unit tests for the peer registry
"""
import random

import pytest

from helpers import make_writer
from relay.errors import DuplicateHandle
from relay.registry import EMPTY, PeerRegistry


@pytest.mark.fast
def test_empty_registry():
    registry = PeerRegistry()
    assert registry.count == 0
    assert registry.high_water_mark == EMPTY
    assert list(registry.for_each_live()) == []


@pytest.mark.fast
def test_add_assigns_default_nickname(registry):
    peer = registry.add(5)
    assert peer.nickname == "user:5"
    assert registry.count == 1
    assert registry.high_water_mark == 5
    assert 5 in registry


@pytest.mark.fast
def test_duplicate_handle(registry):
    registry.add(3)
    with pytest.raises(DuplicateHandle):
        registry.add(3)
    assert registry.count == 1


@pytest.mark.fast
def test_remove_unknown_is_noop(registry):
    registry.add(1)
    assert registry.remove(42) is None
    assert registry.count == 1
    assert registry.high_water_mark == 1


@pytest.mark.fast
def test_remove_closes_connection(registry):
    writer = make_writer()
    registry.add(7, writer)
    registry.remove(7)
    writer.close.assert_called_once()
    assert registry.count == 0
    assert registry.high_water_mark == EMPTY


@pytest.mark.fast
def test_high_water_mark_scans_down(registry):
    for handle in (2, 4, 9):
        registry.add(handle)
    registry.remove(9)
    assert registry.high_water_mark == 4
    registry.remove(2)
    assert registry.high_water_mark == 4
    registry.remove(4)
    assert registry.high_water_mark == EMPTY


@pytest.mark.fast
def test_handle_can_be_reused_after_remove(registry):
    registry.add(5)
    registry.remove(5)
    peer = registry.add(5)
    assert peer.nickname == "user:5"
    assert registry.count == 1


@pytest.mark.fast
def test_count_and_high_water_mark_track_random_churn():
    rng = random.Random(1234)
    registry = PeerRegistry()
    open_handles = set()
    for _ in range(500):
        handle = rng.randrange(50)
        if handle in open_handles:
            registry.remove(handle)
            open_handles.discard(handle)
        else:
            registry.add(handle)
            open_handles.add(handle)
        assert registry.count == len(open_handles)
        assert registry.high_water_mark == max(open_handles, default=EMPTY)


@pytest.mark.fast
def test_for_each_live_is_ascending(registry):
    for handle in (8, 1, 5):
        registry.add(handle)
    assert [p.handle for p in registry.for_each_live()] == [1, 5, 8]
    # restartable
    assert [p.handle for p in registry.for_each_live()] == [1, 5, 8]


@pytest.mark.fast
def test_for_each_live_skips_peer_removed_mid_pass(registry):
    for handle in (1, 2, 3):
        registry.add(handle)
    visited = []
    for peer in registry.for_each_live():
        visited.append(peer.handle)
        if peer.handle == 1:
            registry.remove(2)
    assert visited == [1, 3]


@pytest.mark.fast
def test_by_nickname_first_match_wins(registry):
    first = registry.add(1)
    second = registry.add(2)
    first.nickname = "bob"
    second.nickname = "bob"
    assert registry.by_nickname("bob") is first
    assert registry.by_nickname("nobody") is None


@pytest.mark.fast
def test_rename_does_not_affect_others(registry):
    a = registry.add(1)
    b = registry.add(2)
    a.nickname = "alice"
    assert b.nickname == "user:2"

"""Tests for the blocking-condition status channel."""

from __future__ import annotations

from archivelib.lifecycle import conditions
from archivelib.lifecycle.channel import StatusChannel
from archivelib.models import BlockingCondition, Command


def test_starts_empty():
    channel = StatusChannel()
    assert channel.current is None
    assert channel.version == 0


def test_set_replaces_and_stamps_token():
    channel = StatusChannel()
    first = channel.set(conditions.no_database())
    second = channel.set(conditions.lock_held())
    assert channel.current == second
    assert first.token != second.token
    assert channel.version == 2


def test_clear_bumps_version():
    channel = StatusChannel()
    channel.set(conditions.lock_held())
    channel.clear()
    assert channel.current is None
    assert channel.version == 2


def test_is_current_matches_publication_not_text():
    channel = StatusChannel()
    shown = channel.set(conditions.no_database())
    assert channel.is_current(shown)

    republished = channel.set(conditions.no_database())
    # Same text, different publication
    assert shown == republished
    assert not channel.is_current(shown)
    assert channel.is_current(republished)


def test_is_current_false_when_cleared():
    channel = StatusChannel()
    shown = channel.set(conditions.no_database())
    channel.clear()
    assert not channel.is_current(shown)


def test_observe_replays_current_then_changes():
    channel = StatusChannel()
    shown = channel.set(conditions.lock_held())
    seen: list[BlockingCondition | None] = []
    subscription = channel.observe().subscribe(on_next=seen.append)
    channel.clear()
    subscription.dispose()
    channel.set(conditions.no_database())
    assert seen == [shown, None]


def test_fatal_conditions_offer_close():
    condition = conditions.save_failed("DiskFull")
    assert condition.is_fatal
    assert condition.action is Command.TERMINATE_PROCESS
    assert condition.action_label == "close"
    assert condition.detail == "DiskFull"


def test_searching_condition_has_no_action():
    condition = conditions.searching_backup()
    assert condition.action is None
    assert condition.action_label is None
    assert not condition.is_fatal

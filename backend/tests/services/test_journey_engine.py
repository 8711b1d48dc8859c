"""Journey Engine — start/restart/apply_choice against a real (SQLite) session.

Tests:
    - The S→{A,B}, A→E1, B→E2 walk-through from start to completion
    - start is idempotent while in progress and conflicts once completed
    - restart is explicit and never touches completed journeys
    - apply_choice guard order and zero-mutation rejection
    - Two sessions racing on the same journey: exactly one advance commits
    - Concurrent first starts resolve to one journey
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import select

from epoch_adventures.core.domain_types import NodeType
from epoch_adventures.core.errors import (
    AuthorizationError, ChoiceMismatchError, ConflictError,
    ResourceNotFoundError,
)
from epoch_adventures.models.adventure import Adventure
from epoch_adventures.models.journey import Journey
from epoch_adventures.services.journey_engine import JourneyEngine

NOW = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)


def _pick(state, label):
    return next(c for c in state.choices if c.label == label)


async def _reload(session_factory, journey_id):
    async with session_factory() as fresh:
        return await fresh.get(Journey, journey_id)


# ==============================================================================
# Scenario
# ==============================================================================


async def test_branching_walkthrough(test_db, published):
    engine = JourneyEngine(test_db, now=lambda: NOW)

    state = await engine.start("alice", published.adventure_id)
    assert state.node.id == published.id_map["S"]
    assert state.node.kind is NodeType.START
    assert len(state.choices) == 2
    assert state.journey.path == []

    state = await engine.apply_choice(
        state.journey.id, _pick(state, "Go left").id, "alice",
    )
    assert state.node.id == published.id_map["A"]
    assert len(state.choices) == 1
    assert len(state.journey.path) == 1
    assert state.journey.is_completed is False

    state = await engine.apply_choice(
        state.journey.id, _pick(state, "Claim the crown").id, "alice",
    )
    assert state.node.id == published.id_map["E1"]
    assert state.choices == []
    assert state.journey.is_completed is True
    assert state.journey.completed_at is not None
    assert [e["choice_text"] for e in state.journey.path] == [
        "Go left", "Claim the crown",
    ]
    assert state.journey.path[-1]["timestamp"] == NOW.isoformat()


async def test_apply_choice_appends_exactly_one_entry(test_db, published):
    engine = JourneyEngine(test_db)
    state = await engine.start("alice", published.adventure_id)
    start_node = state.node.id
    go_right = _pick(state, "Go right")

    state = await engine.apply_choice(state.journey.id, go_right.id, "alice")

    assert state.journey.path == [{
        "node_id": str(start_node),
        "choice_id": str(go_right.id),
        "choice_text": "Go right",
        "timestamp": state.journey.path[0]["timestamp"],
    }]
    assert state.journey.current_node_id == go_right.target_node_id
    assert state.journey.version == 1


# ==============================================================================
# Start / Restart
# ==============================================================================


async def test_start_twice_returns_same_journey(test_db, published):
    engine = JourneyEngine(test_db)
    first = await engine.start("alice", published.adventure_id)
    second = await engine.start("alice", published.adventure_id)
    assert second.journey.id == first.journey.id
    assert second.node.id == first.node.id


async def test_start_resumes_at_current_node(test_db, published):
    engine = JourneyEngine(test_db)
    state = await engine.start("alice", published.adventure_id)
    await engine.apply_choice(state.journey.id, _pick(state, "Go left").id, "alice")

    resumed = await engine.start("alice", published.adventure_id)
    assert resumed.journey.id == state.journey.id
    assert resumed.node.id == published.id_map["A"]


async def test_users_get_separate_journeys(test_db, published):
    engine = JourneyEngine(test_db)
    alice = await engine.start("alice", published.adventure_id)
    bob = await engine.start("bob", published.adventure_id)
    assert alice.journey.id != bob.journey.id


async def _complete(engine, adventure_id, user="alice"):
    state = await engine.start(user, adventure_id)
    state = await engine.apply_choice(state.journey.id, _pick(state, "Go right").id, user)
    return await engine.apply_choice(state.journey.id, _pick(state, "Fall asleep").id, user)


async def test_start_after_completion_conflicts(test_db, published):
    engine = JourneyEngine(test_db)
    done = await _complete(engine, published.adventure_id)

    with pytest.raises(ConflictError) as exc_info:
        await engine.start("alice", published.adventure_id)
    assert exc_info.value.journey_id == str(done.journey.id)


async def test_restart_creates_new_journey(test_db, test_session_factory, published):
    engine = JourneyEngine(test_db)
    done = await _complete(engine, published.adventure_id)

    fresh = await engine.restart("alice", published.adventure_id)
    assert fresh.journey.id != done.journey.id
    assert fresh.node.id == published.id_map["S"]
    assert fresh.journey.path == []

    old = await _reload(test_session_factory, done.journey.id)
    assert old.is_completed is True
    assert len(old.path) == 2

    # start now resumes the restarted journey
    again = await engine.start("alice", published.adventure_id)
    assert again.journey.id == fresh.journey.id


async def test_restart_while_in_progress_conflicts(test_db, published):
    engine = JourneyEngine(test_db)
    state = await engine.start("alice", published.adventure_id)
    with pytest.raises(ConflictError) as exc_info:
        await engine.restart("alice", published.adventure_id)
    assert exc_info.value.journey_id == str(state.journey.id)


async def test_restart_without_journey_starts_one(test_db, published):
    state = await JourneyEngine(test_db).restart("alice", published.adventure_id)
    assert state.node.id == published.id_map["S"]


async def test_start_unknown_adventure_not_found(test_db, published):
    with pytest.raises(ResourceNotFoundError):
        await JourneyEngine(test_db).start("alice", uuid4())


async def test_start_unpublished_adventure_not_found(test_db, published):
    adventure = await test_db.get(Adventure, published.adventure_id)
    adventure.is_published = False
    await test_db.commit()
    with pytest.raises(ResourceNotFoundError):
        await JourneyEngine(test_db).start("alice", published.adventure_id)


async def test_concurrent_first_start_returns_winner(
    test_db, test_session_factory, published, monkeypatch,
):
    winner = await JourneyEngine(test_db).start("alice", published.adventure_id)

    async with test_session_factory() as other:
        loser_engine = JourneyEngine(other)
        # Simulate having read "no journey" before the winner committed
        monkeypatch.setattr(
            loser_engine, "_latest_journey", AsyncMock(return_value=None),
        )
        state = await loser_engine.start("alice", published.adventure_id)

    assert state.journey.id == winner.journey.id
    async with test_session_factory() as check:
        rows = (await check.execute(
            select(Journey).where(Journey.user_id == "alice")
        )).scalars().all()
    assert len(rows) == 1


# ==============================================================================
# apply_choice guards
# ==============================================================================


async def test_unknown_journey_not_found(test_db, published):
    with pytest.raises(ResourceNotFoundError):
        await JourneyEngine(test_db).apply_choice(uuid4(), uuid4(), "alice")


async def test_other_user_forbidden(test_db, published):
    engine = JourneyEngine(test_db)
    state = await engine.start("alice", published.adventure_id)
    with pytest.raises(AuthorizationError):
        await engine.apply_choice(
            state.journey.id, _pick(state, "Go left").id, "mallory",
        )


async def test_completed_journey_conflicts(test_db, published):
    engine = JourneyEngine(test_db)
    done = await _complete(engine, published.adventure_id)
    with pytest.raises(ConflictError):
        await engine.apply_choice(done.journey.id, uuid4(), "alice")


async def test_unknown_choice_not_found(test_db, published):
    engine = JourneyEngine(test_db)
    state = await engine.start("alice", published.adventure_id)
    with pytest.raises(ResourceNotFoundError):
        await engine.apply_choice(state.journey.id, uuid4(), "alice")


async def test_choice_from_other_node_rejected_without_mutation(
    test_db, test_session_factory, published,
):
    engine = JourneyEngine(test_db)
    state = await engine.start("alice", published.adventure_id)
    moved = await engine.apply_choice(
        state.journey.id, _pick(state, "Go left").id, "alice",
    )
    # "Go right" leaves S, but the journey is now at A
    with pytest.raises(ChoiceMismatchError):
        await engine.apply_choice(
            moved.journey.id, _pick(state, "Go right").id, "alice",
        )

    stored = await _reload(test_session_factory, moved.journey.id)
    assert stored.current_node_id == published.id_map["A"]
    assert stored.version == 1
    assert len(stored.path) == 1


# ==============================================================================
# Concurrency
# ==============================================================================


async def test_racing_choices_exactly_one_commits(
    test_db, test_session_factory, published,
):
    state = await JourneyEngine(test_db).start("alice", published.adventure_id)
    journey_id = state.journey.id
    go_left, go_right = _pick(state, "Go left"), _pick(state, "Go right")

    async with test_session_factory() as first, test_session_factory() as second:
        # Second request holds the journey it read before the first one commits
        stale = await second.get(Journey, journey_id)
        assert stale.version == 0

        await JourneyEngine(first).apply_choice(journey_id, go_left.id, "alice")
        with pytest.raises(ConflictError):
            await JourneyEngine(second).apply_choice(journey_id, go_right.id, "alice")

    stored = await _reload(test_session_factory, journey_id)
    assert len(stored.path) == 1
    assert stored.path[0]["choice_id"] == str(go_left.id)
    assert stored.current_node_id == published.id_map["A"]
    assert stored.version == 1


# ==============================================================================
# Analytics
# ==============================================================================


async def test_choice_popularity(test_db, published):
    engine = JourneyEngine(test_db)
    for user in ("alice", "bob"):
        state = await engine.start(user, published.adventure_id)
        await engine.apply_choice(state.journey.id, _pick(state, "Go left").id, user)
    state = await engine.start("carol", published.adventure_id)
    go_right = _pick(state, "Go right")
    await engine.apply_choice(state.journey.id, go_right.id, "carol")

    counts = await engine.choice_popularity(published.adventure_id)
    assert counts[str(go_right.id)] == 1
    assert sum(counts.values()) == 3

import random

import pytest

from volleyscout.engine import SetEngine, compute_snapshot
from volleyscout.exceptions import (
    ConfigurationError,
    IllegalSubstitutionError,
    ReplayError,
    SetAlreadyDecidedError,
)
from volleyscout.models import RallyEvent, Role, RotationConfig, Side
from volleyscout.rotation import BACK_ROW_SLOTS, Rotation
from volleyscout.set_record import SetRecord
from volleyscout.timeline import build_set_timeline


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------

SETTER, OH1, MB2, OPP, OH2, MB1 = "setter", "oh1", "mb2", "opp", "oh2", "mb1"
LIBERO, LIBERO2 = "libero", "libero2"


def make_lineup(**kwargs):
    return RotationConfig(
        players=(SETTER, OH1, MB2, OPP, OH2, MB1),
        setter=SETTER,
        libero=LIBERO,
        **kwargs,
    )


def make_record(serving=Side.US, set_number=1, **kwargs):
    return SetRecord.start(set_number, serving, make_lineup(**kwargs))


def play(record, sequence):
    """
    sequence = "uutu..." -> points for us (u) or them (t)
    """
    for c in sequence:
        record.events.append(RallyEvent.point(Side.US if c == "u" else Side.THEM))


def back_row(rotation):
    return {rotation.slots[i] for i in BACK_ROW_SLOTS}


# ---------------------------------------------------------
# Initial state
# ---------------------------------------------------------

def test_initial_snapshot():
    record = make_record()

    snapshot = compute_snapshot(record)

    assert snapshot.score_us == 0
    assert snapshot.score_them == 0
    assert snapshot.serving == Side.US
    assert snapshot.events_replayed == 0
    assert snapshot.last_event is None
    assert snapshot.rotation(Side.US) == Rotation.from_config(make_lineup(), serving=True)
    assert snapshot.rotation(Side.THEM).slots == RotationConfig.anonymous().players


@pytest.mark.parametrize("kwargs", [
    {"players": ("a", "b", "c", "d", "e"), "setter": "a"},
    {"players": ("a", "a", "c", "d", "e", "f"), "setter": "a"},
    {"players": ("a", "b", "c", "d", "e", "f"), "setter": "z"},
    {"players": ("a", "b", "c", "d", "e", "f"), "setter": "a", "libero": "b"},
    {"players": ("a", "b", "c", "d", "e", "f"), "setter": "a", "fallback_libero": "l"},
    {"players": ("a", "b", "c", "d", "e", "f"), "setter": "a", "libero": "l", "fallback_libero": "l"},
])
def test_invalid_rotation_config(kwargs):
    with pytest.raises(ConfigurationError):
        RotationConfig(**kwargs)


@pytest.mark.parametrize("set_number", [0, 6])
def test_invalid_set_number(set_number):
    with pytest.raises(ConfigurationError):
        SetRecord.start(set_number, Side.US, make_lineup())


# ---------------------------------------------------------
# Points & side-outs
# ---------------------------------------------------------

def test_point_for_server_keeps_service_and_rotation():
    record = make_record(serving=Side.US)
    play(record, "uuu")

    snapshot = compute_snapshot(record)

    assert snapshot.score_us == 3
    assert snapshot.serving == Side.US
    assert snapshot.rotation(Side.US).slots == make_lineup().players


def test_side_out_rotates_new_server_only():
    record = make_record(serving=Side.THEM)
    play(record, "t" * 8 + "u" * 10)

    before = compute_snapshot(record)
    assert (before.score_us, before.score_them) == (10, 8)
    assert before.serving == Side.US

    play(record, "t")
    after = compute_snapshot(record)

    assert (after.score_us, after.score_them) == (10, 9)
    assert after.serving == Side.THEM
    assert after.rotation(Side.THEM).slots == before.rotation(Side.THEM).rotated().slots
    assert after.rotation(Side.US).slots == before.rotation(Side.US).slots


def test_serving_flag_follows_service():
    record = make_record(serving=Side.US)
    play(record, "t")

    snapshot = compute_snapshot(record)

    assert snapshot.rotation(Side.THEM).serving is True
    assert snapshot.rotation(Side.US).serving is False


def test_back_row_changes_only_after_own_side_out():
    record = make_record(serving=Side.US)
    play(record, "uttuutttuututu")

    timeline = build_set_timeline(record)

    for prev, curr in zip(timeline, timeline[1:]):
        event = curr.last_event
        side_out_for_us = event.side == Side.US and prev.serving == Side.THEM
        changed = back_row(prev.rotation(Side.US)) != back_row(curr.rotation(Side.US))
        assert changed == side_out_for_us


def test_libero_leaves_when_middle_blocker_serves():
    # setter in slot 2: the side-out rotation brings mb1 to the serving slot
    lineup = RotationConfig(
        players=(OH2, MB1, SETTER, OH1, MB2, OPP),
        setter=SETTER,
        libero=LIBERO,
    )
    record = SetRecord.start(1, Side.THEM, lineup)
    play(record, "u")

    snapshot = compute_snapshot(record)
    rotation = snapshot.rotation(Side.US)

    assert rotation.slots[0] == MB1
    assert rotation.server == MB1
    assert rotation.role_of(MB1) == Role.MIDDLE_BLOCKER
    assert snapshot.libero_replacing(Side.US) is None

    play(record, "t")
    rotation = compute_snapshot(record).rotation(Side.US)

    assert rotation.player_at(0) == LIBERO
    assert rotation.role_at(0) == Role.LIBERO


def test_point_after_set_decided_raises():
    record = make_record()
    play(record, "u" * 25)
    play(record, "t")

    with pytest.raises(SetAlreadyDecidedError) as exc:
        compute_snapshot(record)

    assert exc.value.index == 25


def test_point_for_uninitialized_side_is_replay_error():
    record = SetRecord(set_number=1, serving=Side.US, lineups={Side.US: make_lineup()})
    play(record, "u")
    assert compute_snapshot(record).score_us == 1

    play(record, "t")

    with pytest.raises(ReplayError) as exc:
        compute_snapshot(record)

    assert exc.value.index == 1
    assert exc.value.event == RallyEvent.point(Side.THEM)


def test_service_by_receiving_side_is_replay_error():
    record = make_record(serving=Side.US)
    record.events.append(RallyEvent.service(Side.US))
    record.events.append(RallyEvent.service(Side.THEM))

    with pytest.raises(ReplayError):
        compute_snapshot(record)


# ---------------------------------------------------------
# Audit events
# ---------------------------------------------------------

def test_timeouts_and_technical_events_do_not_change_score():
    record = make_record()
    play(record, "ut")
    before = compute_snapshot(record)

    record.events.append(RallyEvent.timeout(Side.THEM))
    record.events.append(RallyEvent.technical(Side.US, note="floor wiping"))
    after = compute_snapshot(record)

    assert (after.score_us, after.score_them) == (before.score_us, before.score_them)
    assert after.serving == before.serving
    assert after.rotation(Side.US) == before.rotation(Side.US)
    assert after.side(Side.THEM).timeouts == 1
    assert after.events_replayed == 4


# ---------------------------------------------------------
# Substitutions
# ---------------------------------------------------------

def test_substitution_updates_slot_only():
    record = make_record()
    play(record, "uu")
    record.events.append(RallyEvent.substitution(Side.US, OH1, "bench1"))

    snapshot = compute_snapshot(record)
    rotation = snapshot.rotation(Side.US)

    assert rotation.slots[1] == "bench1"
    assert rotation.role_of("bench1") == Role.OUTSIDE_HITTER
    assert snapshot.score_us == 2
    assert snapshot.serving == Side.US
    assert len(snapshot.substitutions(Side.US)) == 1


def test_substitution_of_player_not_on_court_raises():
    record = make_record()
    record.events.append(RallyEvent.substitution(Side.US, "ghost", "bench1"))

    with pytest.raises(IllegalSubstitutionError) as exc:
        compute_snapshot(record)

    assert exc.value.index == 0


def test_libero_cannot_enter_as_regular_substitute():
    record = make_record()
    record.events.append(RallyEvent.substitution(Side.US, MB2, LIBERO))

    with pytest.raises(IllegalSubstitutionError):
        compute_snapshot(record)


def test_libero_exchange_is_not_counted():
    record = make_record(fallback_libero=LIBERO2)
    record.events.append(RallyEvent.substitution(Side.US, LIBERO, LIBERO2))

    snapshot = compute_snapshot(record)
    rotation = snapshot.rotation(Side.US)

    assert rotation.libero == LIBERO2
    assert rotation.player_at(5) == LIBERO2
    assert snapshot.substitutions(Side.US) == ()
    assert snapshot.side(Side.US).libero_exchanges == 1


def test_libero_exchange_without_fallback_raises():
    record = make_record()
    record.events.append(RallyEvent.substitution(Side.US, LIBERO, "bench1"))

    with pytest.raises(IllegalSubstitutionError):
        compute_snapshot(record)


# ---------------------------------------------------------
# Determinism & undo
# ---------------------------------------------------------

def random_record(seed, length=40):
    rng = random.Random(seed)
    record = make_record(serving=rng.choice([Side.US, Side.THEM]))
    for _ in range(length):
        record.events.append(RallyEvent.point(rng.choice([Side.US, Side.THEM])))
        snapshot = compute_snapshot(record)
        # stay below the target score so the set never ends
        if max(snapshot.score_us, snapshot.score_them) >= 24:
            break
    return record


def test_replay_deterministic():
    record = random_record(seed=7)

    assert compute_snapshot(record) == compute_snapshot(record)


@pytest.mark.parametrize("event", [
    RallyEvent.point(Side.US),
    RallyEvent.point(Side.THEM),
    RallyEvent.timeout(Side.US),
    RallyEvent.substitution(Side.US, OPP, "bench1"),
])
def test_undo_restores_previous_snapshot(event):
    record = random_record(seed=3, length=15)
    before = compute_snapshot(record)

    record.events.append(event)
    compute_snapshot(record)
    removed = record.events.remove_last()

    assert removed == event
    assert compute_snapshot(record) == before


@pytest.mark.parametrize("seed", range(5))
def test_scores_never_decrease(seed):
    record = random_record(seed=seed)

    timeline = build_set_timeline(record)

    for prev, curr in zip(timeline, timeline[1:]):
        assert curr.score_us >= prev.score_us
        assert curr.score_them >= prev.score_them


def test_engine_process_event_returns_independent_snapshots():
    engine = SetEngine(make_record())

    first = engine.process_event(RallyEvent.point(Side.US))
    engine.process_event(RallyEvent.point(Side.US))

    assert first.score_us == 1
    assert engine.snapshot().score_us == 2

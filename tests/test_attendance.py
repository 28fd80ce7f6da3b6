from datetime import datetime, timedelta

import pytest

from timeclock.data import database
from timeclock.processing.attendance import AttendanceAction, TimeClock, suggest_action
from timeclock.processing.cooldown import CooldownController


class WallClock:
    def __init__(self):
        self.now = datetime(2024, 3, 1, 8, 0)

    def __call__(self):
        return self.now


@pytest.fixture
def maria(registry, random_embedding):
    return registry.add_identity("Maria", random_embedding())


@pytest.fixture
def wall_clock():
    return WallClock()


def make_clock(db_path, manual_clock, wall_clock, **kwargs):
    return TimeClock(db_path=db_path, clock=manual_clock, now=wall_clock, **kwargs)


class TestSuggestAction:

    def test_first_record_is_check_in(self):
        assert suggest_action(None) is AttendanceAction.CHECK_IN

    def test_alternates(self):
        assert suggest_action({'type': 'check_in'}) is AttendanceAction.CHECK_OUT
        assert suggest_action({'type': 'check_out'}) is AttendanceAction.CHECK_IN


class TestManualMode:

    def test_recognition_suggests_without_recording(self, db_path, maria, manual_clock, wall_clock):
        clock = make_clock(db_path, manual_clock, wall_clock)
        recognition = clock.on_identity_recognized(maria, 0.25)

        assert recognition.suggested_action is AttendanceAction.CHECK_IN
        assert recognition.confidence == 75
        assert clock.current is recognition
        assert database.get_records(db_path=db_path) == []

    def test_register_writes_record_and_consumes(self, db_path, maria, manual_clock, wall_clock):
        cooldown = CooldownController(clock=manual_clock)
        clock = make_clock(db_path, manual_clock, wall_clock)
        clock.set_consume_callback(cooldown.consume)

        cooldown.observe(maria.id)
        clock.on_identity_recognized(maria, 0.2)
        record = clock.register()

        assert record['type'] == database.CHECK_IN
        assert record['timestamp'] == wall_clock.now
        assert clock.current is None
        assert cooldown.state.is_idle

    def test_register_without_recognition(self, db_path, manual_clock, wall_clock):
        clock = make_clock(db_path, manual_clock, wall_clock)
        assert clock.register() is None

    def test_explicit_action_overrides_suggestion(self, db_path, maria, manual_clock, wall_clock):
        clock = make_clock(db_path, manual_clock, wall_clock)
        clock.on_identity_recognized(maria, 0.2)
        record = clock.register(AttendanceAction.CHECK_OUT)
        assert record['type'] == database.CHECK_OUT

    def test_paused_after_record(self, db_path, maria, manual_clock, wall_clock):
        clock = make_clock(db_path, manual_clock, wall_clock, pause_seconds=2.0)
        clock.on_identity_recognized(maria, 0.2)
        clock.register()

        assert clock.is_paused()
        assert clock.on_identity_recognized(maria, 0.2) is None

        manual_clock.advance(2.0)
        recognition = clock.on_identity_recognized(maria, 0.2)
        assert recognition.suggested_action is AttendanceAction.CHECK_OUT

    def test_clear(self, db_path, maria, manual_clock, wall_clock):
        clock = make_clock(db_path, manual_clock, wall_clock)
        clock.on_identity_recognized(maria, 0.2)
        clock.clear()
        assert clock.current is None


class TestAutoRecord:

    def test_records_suggested_action(self, db_path, maria, manual_clock, wall_clock):
        consumed = []
        clock = make_clock(db_path, manual_clock, wall_clock, auto_record=True)
        clock.set_consume_callback(consumed.append)

        clock.on_identity_recognized(maria, 0.2)

        last = database.get_last_record(maria.id, db_path)
        assert last['type'] == database.CHECK_IN
        assert consumed == [maria.id]

    def test_skips_recent_record(self, db_path, maria, manual_clock, wall_clock):
        clock = make_clock(db_path, manual_clock, wall_clock,
                           auto_record=True, record_gap_seconds=300)
        clock.on_identity_recognized(maria, 0.2)

        manual_clock.advance(5.0)
        wall_clock.now += timedelta(seconds=60)
        clock.on_identity_recognized(maria, 0.2)
        assert len(database.get_records(employee_id=maria.id, db_path=db_path)) == 1

        manual_clock.advance(5.0)
        wall_clock.now += timedelta(seconds=300)
        clock.on_identity_recognized(maria, 0.2)

        records = database.get_records(employee_id=maria.id, db_path=db_path)
        assert [r['type'] for r in records] == ["check_out", "check_in"]

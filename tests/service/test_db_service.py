"""
Unit tests for DBService.

These tests use a temporary SQLite file per test and cover the storage
contracts the engine relies on: descending-time history reads, trailing step
sums, and the open-alert uniqueness guarantee.
"""

import datetime as dt

import pytest

from health_alert_bot.service.db_service import DBService, format_timestamp, parse_timestamp
from health_alert_bot.service.errors import DeviceInUseError
from health_alert_bot.service.health_analysis.common.data_models import (
    AlertSeverity,
    AlertType,
    Gender,
    Profile,
    utc_now,
)
from tests import DEVICE_ID, OTHER_USER_ID, USER_ID, make_reading


class TestTimestamps:
    def test_round_trip_is_utc(self):
        value = dt.datetime(2026, 10, 19, 12, 30, 15, 123456, tzinfo=dt.timezone(dt.timedelta(hours=2)))

        text = format_timestamp(value)

        assert text == "2026-10-19 10:30:15.123456"
        assert parse_timestamp(text) == value

    def test_naive_timestamp_is_treated_as_utc(self):
        assert format_timestamp(dt.datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02 03:04:05.000000"

    def test_parse_none(self):
        assert parse_timestamp(None) is None


class TestDBService:
    def test_tables_survive_reinitialisation(self, db_service, tmp_path):
        db_service.add_reading(make_reading(heart_rate=70))

        reopened = DBService(tmp_path, db_file_name="test.db")

        assert reopened.get_latest_reading(USER_ID).heart_rate == 70

    def test_profile_round_trip(self, db_service):
        assert db_service.get_profile(USER_ID) is None

        db_service.upsert_profile(Profile(user_id=USER_ID, birth_date=dt.date(1990, 4, 1), gender=Gender.MALE))
        db_service.upsert_profile(Profile(user_id=USER_ID, birth_date=dt.date(1991, 5, 2), gender=None))

        assert db_service.get_profile(USER_ID) == Profile(user_id=USER_ID, birth_date=dt.date(1991, 5, 2))

    def test_pair_device(self, db_service):
        device = db_service.pair_device(USER_ID, DEVICE_ID, "smartwatch", "wearos")

        assert device.device_id == DEVICE_ID
        assert device.device_type == "smartwatch"
        assert db_service.is_device_owned_by(DEVICE_ID, USER_ID)
        assert not db_service.is_device_owned_by(DEVICE_ID, OTHER_USER_ID)

    def test_pairing_new_device_replaces_old_one(self, db_service):
        db_service.pair_device(USER_ID, DEVICE_ID)
        db_service.pair_device(USER_ID, "watch-002")

        assert db_service.get_device(USER_ID).device_id == "watch-002"
        assert not db_service.is_device_owned_by(DEVICE_ID, USER_ID)

    def test_device_cannot_be_shared(self, db_service):
        db_service.pair_device(USER_ID, DEVICE_ID)

        with pytest.raises(DeviceInUseError):
            db_service.pair_device(OTHER_USER_ID, DEVICE_ID)

        assert db_service.get_device(OTHER_USER_ID) is None

    def test_touch_device_updates_last_sync(self, db_service):
        db_service.pair_device(USER_ID, DEVICE_ID)
        synced_at = utc_now() + dt.timedelta(minutes=1)

        db_service.touch_device(DEVICE_ID, synced_at)

        assert db_service.get_device(USER_ID).last_sync_at == synced_at

    def test_reading_keeps_zero_and_missing_fields(self, db_service):
        db_service.add_reading(make_reading(steps=0, spo2=97.5))

        latest = db_service.get_latest_reading(USER_ID)

        assert latest.steps == 0
        assert latest.spo2 == 97.5
        assert latest.heart_rate is None
        assert latest.temperature is None

    def test_recent_heart_rates_newest_first(self, db_service):
        db_service.add_reading(make_reading(minutes_ago=1, heart_rate=100))
        db_service.add_reading(make_reading(minutes_ago=30, heart_rate=80))
        db_service.add_reading(make_reading(minutes_ago=10, heart_rate=90))
        db_service.add_reading(make_reading(minutes_ago=0, spo2=98))
        db_service.add_reading(make_reading(minutes_ago=0, heart_rate=150, user_id=OTHER_USER_ID))

        assert db_service.list_recent_heart_rates(USER_ID, 2) == [100, 90]
        assert db_service.list_recent_heart_rates(USER_ID, 10) == [100, 90, 80]

    def test_sum_steps_between(self, db_service):
        db_service.add_reading(make_reading(minutes_ago=30 * 60, steps=10_000))
        db_service.add_reading(make_reading(minutes_ago=120, steps=300))
        anchor = make_reading(minutes_ago=5, steps=200)
        db_service.add_reading(anchor)
        db_service.add_reading(make_reading(minutes_ago=5, heart_rate=70))
        db_service.add_reading(make_reading(minutes_ago=1, steps=4000))

        since = anchor.timestamp - dt.timedelta(hours=24)

        # Bounds are inclusive on both ends
        assert db_service.sum_steps_between(USER_ID, since, anchor.timestamp) == 500
        assert db_service.sum_steps_between(USER_ID, since, utc_now()) == 4500
        assert db_service.sum_steps_between(OTHER_USER_ID, since, utc_now()) == 0

    def test_list_readings_since(self, db_service):
        db_service.add_reading(make_reading(minutes_ago=48 * 60, heart_rate=60))
        db_service.add_reading(make_reading(minutes_ago=60, heart_rate=70))
        db_service.add_reading(make_reading(minutes_ago=1, heart_rate=80))

        readings = list(db_service.list_readings_since(USER_ID, utc_now() - dt.timedelta(hours=24)))

        assert [r.heart_rate for r in readings] == [80, 70]

    def test_open_alert_uniqueness_is_enforced_by_storage(self, db_service):
        first = db_service.insert_alert(USER_ID, AlertType.HIGH_HEART_RATE, AlertSeverity.WARNING, "one")
        second = db_service.insert_alert(USER_ID, AlertType.HIGH_HEART_RATE, AlertSeverity.WARNING, "two")

        assert first is not None
        assert second is None
        assert db_service.count_open_alerts(USER_ID) == 1

    def test_resolved_alerts_do_not_block_inserts(self, db_service):
        first = db_service.insert_alert(USER_ID, AlertType.HIGH_HEART_RATE, AlertSeverity.WARNING, "one")
        assert db_service.mark_alert_resolved(first, USER_ID)

        second = db_service.insert_alert(USER_ID, AlertType.HIGH_HEART_RATE, AlertSeverity.WARNING, "two")
        assert db_service.mark_alert_resolved(second, USER_ID)

        third = db_service.insert_alert(USER_ID, AlertType.HIGH_HEART_RATE, AlertSeverity.WARNING, "three")

        assert third is not None
        assert len(db_service.list_alerts(USER_ID, resolved=True)) == 2
        assert db_service.count_open_alerts(USER_ID) == 1

    def test_mark_resolved_checks_owner(self, db_service):
        alert_id = db_service.insert_alert(USER_ID, AlertType.LOW_SPO2, AlertSeverity.WARNING, "spo2")

        assert not db_service.mark_alert_resolved(alert_id, OTHER_USER_ID)
        assert db_service.get_alert(alert_id, OTHER_USER_ID) is None
        assert db_service.get_alert(alert_id, USER_ID).resolved is False

    def test_reading_stats(self, db_service):
        db_service.add_reading(make_reading(minutes_ago=10, heart_rate=60, spo2=97, temperature=36.5, steps=100))
        db_service.add_reading(make_reading(minutes_ago=5, heart_rate=90, spo2=99, steps=250))
        db_service.add_reading(make_reading(minutes_ago=1, temperature=36.9))

        stats = db_service.get_reading_stats(USER_ID, utc_now() - dt.timedelta(hours=24))

        assert stats["avg_heart_rate"] == 75
        assert stats["min_heart_rate"] == 60
        assert stats["max_heart_rate"] == 90
        assert stats["avg_spo2"] == pytest.approx(98)
        assert stats["avg_temperature"] == pytest.approx(36.7)
        assert stats["total_steps"] == 350

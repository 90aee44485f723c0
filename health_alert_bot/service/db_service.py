import datetime as dt
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from health_alert_bot.service.errors import DeviceInUseError
from health_alert_bot.service.health_analysis.common.data_models import (
    Alert,
    AlertSeverity,
    AlertType,
    Device,
    Gender,
    Preferences,
    Profile,
    Reading,
    utc_now,
)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def format_timestamp(value: dt.datetime) -> str:
    """UTC text form used for every stored timestamp; sorts lexically in time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    if value is None:
        return None
    return dt.datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=dt.timezone.utc)


class DBService:
    _USERS_TABLE_NAME = "users"
    _DEVICES_TABLE_NAME = "devices"
    _VITALS_TABLE_NAME = "vitals"
    _ALERTS_TABLE_NAME = "alerts"
    _PREFERENCES_TABLE_NAME = "notification_preferences"

    def __init__(self, out_dir: Path, db_file_name: str = "health.db", busy_timeout_s: float = 5.0) -> None:
        self.out_dir = Path(out_dir)
        self.db_file_name = db_file_name
        self.busy_timeout_s = busy_timeout_s
        self._initialize_tables()

    def _initialize_tables(self) -> None:
        """Initialize all database tables on service creation."""
        logger.info(f"Initializing database tables in {self.db_path}")
        self.out_dir.mkdir(parents=True, exist_ok=True)
        with closing(self._db) as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._USERS_TABLE_NAME} (
                    user_id INTEGER PRIMARY KEY,
                    birth_date DATE,
                    gender TEXT
                )
                """
            )
            # One device per user, and a device id belongs to at most one user
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._DEVICES_TABLE_NAME} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER UNIQUE NOT NULL,
                    device_id TEXT UNIQUE NOT NULL,
                    device_type TEXT,
                    platform TEXT,
                    connected_at TEXT NOT NULL,
                    last_sync_at TEXT
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._VITALS_TABLE_NAME} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    device_id TEXT NOT NULL,
                    heart_rate INTEGER,
                    spo2 REAL,
                    temperature REAL,
                    steps INTEGER,
                    timestamp TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"""
                CREATE INDEX IF NOT EXISTS idx_vitals_user_timestamp
                ON {self._VITALS_TABLE_NAME}(user_id, timestamp DESC)
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._ALERTS_TABLE_NAME} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    alert_type TEXT NOT NULL,
                    severity TEXT NOT NULL,
                    message TEXT NOT NULL,
                    resolved INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    resolved_at TEXT
                )
                """
            )
            conn.execute(
                f"""
                CREATE INDEX IF NOT EXISTS idx_alerts_user_resolved
                ON {self._ALERTS_TABLE_NAME}(user_id, resolved)
                """
            )
            # At most one open alert per (user, type)
            conn.execute(
                f"""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_alerts_one_open_per_type
                ON {self._ALERTS_TABLE_NAME}(user_id, alert_type)
                WHERE resolved = 0
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._PREFERENCES_TABLE_NAME} (
                    user_id INTEGER PRIMARY KEY,
                    high_heart_rate_enabled INTEGER NOT NULL DEFAULT 1,
                    low_spo2_enabled INTEGER NOT NULL DEFAULT 1,
                    inactivity_enabled INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    # Profiles

    def upsert_profile(self, profile: Profile) -> None:
        logger.info(f"Saving profile for user {profile.user_id}")
        with closing(self._db) as conn:
            conn.execute(
                f"""
                INSERT INTO {self._USERS_TABLE_NAME} (user_id, birth_date, gender)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET birth_date = excluded.birth_date, gender = excluded.gender
                """,
                (
                    profile.user_id,
                    profile.birth_date.isoformat() if profile.birth_date else None,
                    profile.gender.value if profile.gender else None,
                ),
            )
            conn.commit()

    def get_profile(self, user_id: int) -> Optional[Profile]:
        with closing(self._db) as conn:
            row = conn.execute(
                f"SELECT user_id, birth_date, gender FROM {self._USERS_TABLE_NAME} WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return Profile(
            user_id=row["user_id"],
            birth_date=dt.date.fromisoformat(row["birth_date"]) if row["birth_date"] else None,
            gender=Gender(row["gender"]) if row["gender"] else None,
        )

    # Devices

    def pair_device(
        self, user_id: int, device_id: str, device_type: Optional[str] = None, platform: Optional[str] = None
    ) -> Device:
        """Pair a device with a user, replacing the user's previous device if any."""
        logger.info(f"Pairing device {device_id} with user {user_id}")
        now = format_timestamp(utc_now())
        try:
            with closing(self._db) as conn:
                conn.execute(
                    f"""
                    INSERT INTO {self._DEVICES_TABLE_NAME}
                    (user_id, device_id, device_type, platform, connected_at, last_sync_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        device_id = excluded.device_id,
                        device_type = excluded.device_type,
                        platform = excluded.platform,
                        last_sync_at = excluded.last_sync_at
                    """,
                    (user_id, device_id, device_type, platform, now, now),
                )
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise DeviceInUseError(device_id) from e
        return self.get_device(user_id)

    def get_device(self, user_id: int) -> Optional[Device]:
        with closing(self._db) as conn:
            row = conn.execute(
                f"""SELECT user_id, device_id, device_type, platform, connected_at, last_sync_at
                FROM {self._DEVICES_TABLE_NAME} WHERE user_id = ?""",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return Device(
            user_id=row["user_id"],
            device_id=row["device_id"],
            device_type=row["device_type"],
            platform=row["platform"],
            connected_at=parse_timestamp(row["connected_at"]),
            last_sync_at=parse_timestamp(row["last_sync_at"]),
        )

    def is_device_owned_by(self, device_id: str, user_id: int) -> bool:
        with closing(self._db) as conn:
            row = conn.execute(
                f"SELECT 1 FROM {self._DEVICES_TABLE_NAME} WHERE device_id = ? AND user_id = ?",
                (device_id, user_id),
            ).fetchone()
        return row is not None

    def touch_device(self, device_id: str, synced_at: dt.datetime) -> None:
        with closing(self._db) as conn:
            conn.execute(
                f"UPDATE {self._DEVICES_TABLE_NAME} SET last_sync_at = ? WHERE device_id = ?",
                (format_timestamp(synced_at), device_id),
            )
            conn.commit()

    # Readings (append-only)

    def add_reading(self, reading: Reading) -> int:
        logger.debug(f"Adding reading: {reading}")
        with closing(self._db) as conn:
            cursor = conn.execute(
                f"""
                INSERT INTO {self._VITALS_TABLE_NAME}
                (user_id, device_id, heart_rate, spo2, temperature, steps, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    reading.user_id,
                    reading.device_id,
                    reading.heart_rate,
                    reading.spo2,
                    reading.temperature,
                    reading.steps,
                    format_timestamp(reading.timestamp),
                ),
            )
            conn.commit()
            return cursor.lastrowid

    def list_recent_heart_rates(self, user_id: int, limit: int) -> list[int]:
        """Most recent non-null heart rates, newest first."""
        with closing(self._db) as conn:
            rows = conn.execute(
                f"""SELECT heart_rate FROM {self._VITALS_TABLE_NAME}
                WHERE user_id = ? AND heart_rate IS NOT NULL
                ORDER BY timestamp DESC, id DESC
                LIMIT ?""",
                (user_id, limit),
            ).fetchall()
        return [row["heart_rate"] for row in rows]

    def sum_steps_between(self, user_id: int, since: dt.datetime, until: dt.datetime) -> int:
        """Total steps with since <= timestamp <= until."""
        with closing(self._db) as conn:
            row = conn.execute(
                f"""SELECT COALESCE(SUM(steps), 0) AS total_steps FROM {self._VITALS_TABLE_NAME}
                WHERE user_id = ? AND timestamp >= ? AND timestamp <= ?""",
                (user_id, format_timestamp(since), format_timestamp(until)),
            ).fetchone()
        return int(row["total_steps"])

    def get_latest_reading(self, user_id: int) -> Optional[Reading]:
        with closing(self._db) as conn:
            row = conn.execute(
                f"""SELECT user_id, device_id, heart_rate, spo2, temperature, steps, timestamp
                FROM {self._VITALS_TABLE_NAME}
                WHERE user_id = ?
                ORDER BY timestamp DESC, id DESC
                LIMIT 1""",
                (user_id,),
            ).fetchone()
        return self._row_to_reading(row) if row is not None else None

    def list_readings_since(self, user_id: int, since: dt.datetime) -> Iterator[Reading]:
        logger.info(f"Listing readings for user {user_id} since {since}")
        with closing(self._db) as conn:
            rows = conn.execute(
                f"""SELECT user_id, device_id, heart_rate, spo2, temperature, steps, timestamp
                FROM {self._VITALS_TABLE_NAME}
                WHERE user_id = ? AND timestamp >= ?
                ORDER BY timestamp DESC, id DESC""",
                (user_id, format_timestamp(since)),
            ).fetchall()
        for row in rows:
            yield self._row_to_reading(row)

    def get_reading_stats(self, user_id: int, since: dt.datetime) -> sqlite3.Row:
        with closing(self._db) as conn:
            return conn.execute(
                f"""SELECT
                    AVG(heart_rate) AS avg_heart_rate,
                    MIN(heart_rate) AS min_heart_rate,
                    MAX(heart_rate) AS max_heart_rate,
                    AVG(spo2) AS avg_spo2,
                    AVG(temperature) AS avg_temperature,
                    SUM(steps) AS total_steps
                FROM {self._VITALS_TABLE_NAME}
                WHERE user_id = ? AND timestamp >= ?""",
                (user_id, format_timestamp(since)),
            ).fetchone()

    @staticmethod
    def _row_to_reading(row: sqlite3.Row) -> Reading:
        return Reading(
            user_id=row["user_id"],
            device_id=row["device_id"],
            heart_rate=row["heart_rate"],
            spo2=row["spo2"],
            temperature=row["temperature"],
            steps=row["steps"],
            timestamp=parse_timestamp(row["timestamp"]),
        )

    # Preferences

    def get_preferences(self, user_id: int) -> Optional[Preferences]:
        with closing(self._db) as conn:
            row = conn.execute(
                f"""SELECT user_id, high_heart_rate_enabled, low_spo2_enabled, inactivity_enabled
                FROM {self._PREFERENCES_TABLE_NAME} WHERE user_id = ?""",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return Preferences(
            user_id=row["user_id"],
            high_heart_rate_enabled=bool(row["high_heart_rate_enabled"]),
            low_spo2_enabled=bool(row["low_spo2_enabled"]),
            inactivity_enabled=bool(row["inactivity_enabled"]),
        )

    def upsert_preferences(self, preferences: Preferences) -> None:
        logger.info(f"Saving notification preferences: {preferences}")
        with closing(self._db) as conn:
            conn.execute(
                f"""
                INSERT INTO {self._PREFERENCES_TABLE_NAME}
                (user_id, high_heart_rate_enabled, low_spo2_enabled, inactivity_enabled, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    high_heart_rate_enabled = excluded.high_heart_rate_enabled,
                    low_spo2_enabled = excluded.low_spo2_enabled,
                    inactivity_enabled = excluded.inactivity_enabled,
                    updated_at = excluded.updated_at
                """,
                (
                    preferences.user_id,
                    int(preferences.high_heart_rate_enabled),
                    int(preferences.low_spo2_enabled),
                    int(preferences.inactivity_enabled),
                    format_timestamp(utc_now()),
                ),
            )
            conn.commit()

    # Alerts

    def insert_alert(
        self, user_id: int, alert_type: AlertType, severity: AlertSeverity, message: str
    ) -> Optional[int]:
        """
        Insert an open alert.

        Returns:
            The new alert id, or None if an open alert of the same type already exists
            for the user (rejected by the partial unique index).
        """
        with closing(self._db) as conn:
            try:
                cursor = conn.execute(
                    f"""
                    INSERT INTO {self._ALERTS_TABLE_NAME} (user_id, alert_type, severity, message, resolved, created_at)
                    VALUES (?, ?, ?, ?, 0, ?)
                    """,
                    (user_id, alert_type.value, severity.value, message, format_timestamp(utc_now())),
                )
            except sqlite3.IntegrityError:
                return None
            conn.commit()
            return cursor.lastrowid

    def has_open_alert(self, user_id: int, alert_type: AlertType) -> bool:
        with closing(self._db) as conn:
            row = conn.execute(
                f"SELECT 1 FROM {self._ALERTS_TABLE_NAME} WHERE user_id = ? AND alert_type = ? AND resolved = 0",
                (user_id, alert_type.value),
            ).fetchone()
        return row is not None

    def get_alert(self, alert_id: int, user_id: int) -> Optional[Alert]:
        with closing(self._db) as conn:
            row = conn.execute(
                f"SELECT * FROM {self._ALERTS_TABLE_NAME} WHERE id = ? AND user_id = ?",
                (alert_id, user_id),
            ).fetchone()
        return self._row_to_alert(row) if row is not None else None

    def mark_alert_resolved(self, alert_id: int, user_id: int) -> bool:
        """Resolve an open alert owned by user_id. Returns False if nothing was updated."""
        with closing(self._db) as conn:
            cursor = conn.execute(
                f"""UPDATE {self._ALERTS_TABLE_NAME} SET resolved = 1, resolved_at = ?
                WHERE id = ? AND user_id = ? AND resolved = 0""",
                (format_timestamp(utc_now()), alert_id, user_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def list_alerts(self, user_id: int, resolved: Optional[bool] = None) -> list[Alert]:
        logger.info(f"Listing alerts for user {user_id} (resolved={resolved})")
        query = f"SELECT * FROM {self._ALERTS_TABLE_NAME} WHERE user_id = ?"
        params: list = [user_id]
        if resolved is not None:
            query += " AND resolved = ?"
            params.append(int(resolved))
        query += " ORDER BY created_at DESC, id DESC"

        with closing(self._db) as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_alert(row) for row in rows]

    def count_open_alerts(self, user_id: int) -> int:
        with closing(self._db) as conn:
            row = conn.execute(
                f"SELECT COUNT(*) AS count FROM {self._ALERTS_TABLE_NAME} WHERE user_id = ? AND resolved = 0",
                (user_id,),
            ).fetchone()
        return int(row["count"])

    @staticmethod
    def _row_to_alert(row: sqlite3.Row) -> Alert:
        return Alert(
            id=row["id"],
            user_id=row["user_id"],
            alert_type=AlertType(row["alert_type"]),
            severity=AlertSeverity(row["severity"]),
            message=row["message"],
            resolved=bool(row["resolved"]),
            created_at=parse_timestamp(row["created_at"]),
            resolved_at=parse_timestamp(row["resolved_at"]),
        )

    @property
    def db_path(self) -> Path:
        return self.out_dir / self.db_file_name

    @property
    def _db(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path.as_posix(), timeout=self.busy_timeout_s)
        conn.row_factory = sqlite3.Row
        return conn

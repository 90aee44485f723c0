"""
Data models for the health alert engine.

This module provides Pydantic models for:
- User profile and notification preferences
- Vital readings reported by a paired device
- Derived baselines
- Candidate and persisted alerts
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class AlertType(str, Enum):
    HIGH_HEART_RATE = "high_heart_rate"
    LOW_SPO2 = "low_spo2"
    HIGH_TEMPERATURE = "high_temperature"
    LOW_ACTIVITY = "low_activity"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Profile(BaseModel):
    """Demographic data used for baselining. Owned by the account layer."""

    user_id: int
    birth_date: Optional[dt.date] = None
    gender: Optional[Gender] = None

    @field_validator("birth_date")
    @classmethod
    def birth_date_not_in_future(cls, v: Optional[dt.date]) -> Optional[dt.date]:
        if v is not None and v > dt.date.today():
            raise ValueError("birth_date cannot be in the future")
        return v


class Baseline(BaseModel):
    """Personal reference values. Derived on demand, never persisted."""

    model_config = ConfigDict(frozen=True)

    age: Optional[int]
    max_heart_rate: int
    resting_heart_rate: int
    high_heart_rate_threshold: int


class Reading(BaseModel):
    """A single vital sample from a paired device. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    device_id: str = Field(min_length=1)
    heart_rate: Optional[int] = Field(default=None, ge=0, le=300)  # bpm
    spo2: Optional[float] = Field(default=None, ge=0, le=100)  # %
    temperature: Optional[float] = None  # °C
    steps: Optional[int] = Field(default=None, ge=0)
    timestamp: dt.datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, v: dt.datetime) -> dt.datetime:
        # Naive timestamps are taken to be UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=dt.timezone.utc)
        return v.astimezone(dt.timezone.utc)


class Preferences(BaseModel):
    """Per-user notification toggles. Temperature alerts have no toggle."""

    user_id: int
    high_heart_rate_enabled: bool = True
    low_spo2_enabled: bool = True
    inactivity_enabled: bool = True

    @classmethod
    def all_enabled(cls, user_id: int) -> "Preferences":
        return cls(user_id=user_id)


class CandidateAlert(BaseModel):
    """An alert produced by a rule, before deduplication."""

    model_config = ConfigDict(frozen=True)

    alert_type: AlertType
    severity: AlertSeverity
    message: str


class Alert(BaseModel):
    """A persisted alert. Open while `resolved` is False."""

    id: int
    user_id: int
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    resolved: bool = False
    created_at: dt.datetime
    resolved_at: Optional[dt.datetime] = None


class Device(BaseModel):
    """The single sensor paired to a user."""

    user_id: int
    device_id: str
    device_type: Optional[str] = None
    platform: Optional[str] = None
    connected_at: dt.datetime
    last_sync_at: Optional[dt.datetime] = None


class VitalStats(BaseModel):
    """Aggregates over a lookback window of readings."""

    period: str
    avg_heart_rate: int = 0
    min_heart_rate: int = 0
    max_heart_rate: int = 0
    avg_spo2: float = 0.0
    avg_temperature: float = 0.0
    total_steps: int = 0

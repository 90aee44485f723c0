"""
Rule evaluator for vital readings.

This module checks a freshly stored reading, together with a short window of the
user's recent history, against a fixed set of explainable rules:

- High heart rate: sustained over the two most recent heart rate readings,
  against the user's age-adjusted threshold
- Low SpO2: single reading below a fixed floor
- High temperature: single reading above a fever threshold (no opt-out)
- Low activity: total steps over the trailing 24 hours below a daily floor

Evaluation only reads state; the resulting candidates are handed to the alert
lifecycle store, which deduplicates them.
"""

import datetime as dt
from typing import Optional

from loguru import logger

from health_alert_bot.service.alert_service import AlertService
from health_alert_bot.service.db_service import DBService
from health_alert_bot.service.health_analysis.baselining.baseline_calculator import BaselineCalculator
from health_alert_bot.service.health_analysis.common.constants import AlertThresholds
from health_alert_bot.service.health_analysis.common.data_models import (
    AlertSeverity,
    AlertType,
    Baseline,
    CandidateAlert,
    Preferences,
    Reading,
)
from health_alert_bot.service.preference_resolver import PreferenceResolver


class RuleEvaluator:
    """Evaluate a reading against the alert rules for its user."""

    def __init__(
        self,
        db_service: DBService,
        preference_resolver: PreferenceResolver,
        alert_service: AlertService,
        baseline_calculator: Optional[BaselineCalculator] = None,
    ):
        self.db_service = db_service
        self.preference_resolver = preference_resolver
        self.alert_service = alert_service
        self.baseline_calculator = baseline_calculator or BaselineCalculator()

    def get_baseline(self, user_id: int) -> Baseline:
        """Baseline from the current profile; a missing profile yields the defaults."""
        profile = self.db_service.get_profile(user_id)
        if profile is None:
            return self.baseline_calculator.compute_baseline(None, None)
        return self.baseline_calculator.compute_baseline(profile.birth_date, profile.gender)

    def evaluate(self, user_id: int, reading: Reading) -> set[CandidateAlert]:
        """
        Evaluate one stored reading.

        Args:
            user_id: Owner of the reading
            reading: The reading that was just persisted

        Returns:
            Candidate alerts for every rule that fired
        """
        baseline = self.get_baseline(user_id)
        preferences = self.preference_resolver.resolve_preferences(user_id)
        logger.debug(f"Evaluating reading for user {user_id} with baseline {baseline} and {preferences}")

        candidates = set()
        for rule in (
            self._check_high_heart_rate,
            self._check_low_spo2,
            self._check_high_temperature,
            self._check_low_activity,
        ):
            candidate = rule(user_id, reading, baseline, preferences)
            if candidate is not None:
                candidates.add(candidate)

        logger.debug(f"Rules fired for user {user_id}: {sorted(c.alert_type.value for c in candidates)}")
        return candidates

    def _check_high_heart_rate(
        self, user_id: int, reading: Reading, baseline: Baseline, preferences: Preferences
    ) -> Optional[CandidateAlert]:
        if reading.heart_rate is None or not preferences.high_heart_rate_enabled:
            return None

        threshold = baseline.high_heart_rate_threshold
        # The evaluated reading must itself be elevated, newer readings may already be stored
        if reading.heart_rate <= threshold:
            return None
        recent =self.db_service.list_recent_heart_rates(user_id, AlertThresholds.SUSTAINED_HR_READINGS)
        # A single spike never alerts
        if len(recent) < AlertThresholds.SUSTAINED_HR_READINGS:
            return None
        if not all(heart_rate > threshold for heart_rate in recent):
            return None

        age = baseline.age if baseline.age is not None else "unknown"
        return CandidateAlert(
            alert_type=AlertType.HIGH_HEART_RATE,
            severity=AlertSeverity.WARNING,
            message=(
                f"Elevated heart rate detected: {reading.heart_rate} bpm "
                f"(threshold: {threshold} bpm for age {age}). Consider rest if this persists."
            ),
        )

    def _check_low_spo2(
        self, user_id: int, reading: Reading, baseline: Baseline, preferences: Preferences
    ) -> Optional[CandidateAlert]:
        if reading.spo2 is None or not preferences.low_spo2_enabled:
            return None
        if reading.spo2 >= AlertThresholds.LOW_SPO2_PCT:
            return None

        return CandidateAlert(
            alert_type=AlertType.LOW_SPO2,
            severity=AlertSeverity.WARNING,
            message=(
                f"Low blood oxygen detected: {reading.spo2:g}% "
                f"(threshold: {AlertThresholds.LOW_SPO2_PCT:g}%). Normal range is 95-100%. Please monitor closely."
            ),
        )

    def _check_high_temperature(
        self, user_id: int, reading: Reading, baseline: Baseline, preferences: Preferences
    ) -> Optional[CandidateAlert]:
        if reading.temperature is None or reading.temperature <= AlertThresholds.HIGH_TEMPERATURE_C:
            return None

        return CandidateAlert(
            alert_type=AlertType.HIGH_TEMPERATURE,
            severity=AlertSeverity.WARNING,
            message=(
                f"Elevated body temperature: {reading.temperature:g}°C "
                f"(threshold: {AlertThresholds.HIGH_TEMPERATURE_C:g}°C). Monitor for fever symptoms."
            ),
        )

    def _check_low_activity(
        self, user_id: int, reading: Reading, baseline: Baseline, preferences: Preferences
    ) -> Optional[CandidateAlert]:
        # Gate is field presence, a value of 0 still counts
        if reading.steps is None or not preferences.inactivity_enabled:
            return None

        since = reading.timestamp - dt.timedelta(hours=AlertThresholds.LOW_ACTIVITY_WINDOW_HOURS)
        total_steps = self.db_service.sum_steps_between(user_id, since, reading.timestamp)
        if total_steps >= AlertThresholds.LOW_ACTIVITY_STEPS:
            return None
        if self.alert_service.has_open_alert(user_id, AlertType.LOW_ACTIVITY):
            return None

        return CandidateAlert(
            alert_type=AlertType.LOW_ACTIVITY,
            severity=AlertSeverity.INFO,
            message=(
                f"Low activity detected: {total_steps} steps in the last "
                f"{AlertThresholds.LOW_ACTIVITY_WINDOW_HOURS} hours "
                f"(threshold: {AlertThresholds.LOW_ACTIVITY_STEPS} steps). "
                "Consider taking a walk to maintain healthy activity levels."
            ),
        )

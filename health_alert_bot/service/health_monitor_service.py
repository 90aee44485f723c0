"""
Health monitor service.

Entry point for everything a client can do with vitals and alerts: ingest a
reading, query and resolve alerts, and inspect the personal baseline. Alert
evaluation is handed to the background executor, so ingestion returns as soon as
the reading is stored; callers must poll alert state rather than expect it to be
updated synchronously.
"""

import datetime as dt
from typing import Optional

from loguru import logger

from health_alert_bot.service.alert_service import AlertService
from health_alert_bot.service.background_task_executor import BackgroundTaskExecutor
from health_alert_bot.service.db_service import DBService
from health_alert_bot.service.errors import DeviceNotPairedError
from health_alert_bot.service.health_analysis.baselining.baseline_calculator import round_half_up
from health_alert_bot.service.health_analysis.common.constants import StatsPeriods
from health_alert_bot.service.health_analysis.common.data_models import (
    Alert,
    Baseline,
    Reading,
    VitalStats,
    utc_now,
)
from health_alert_bot.service.health_analysis.rules.rule_evaluator import RuleEvaluator


class HealthMonitorService:
    def __init__(
        self,
        db_service: DBService,
        alert_service: AlertService,
        rule_evaluator: RuleEvaluator,
        background_task_executor: BackgroundTaskExecutor,
    ) -> None:
        self.db_service = db_service
        self.alert_service = alert_service
        self.rule_evaluator = rule_evaluator
        self.background_task_executor = background_task_executor

    async def ingest_reading(self, reading: Reading) -> int:
        """
        Store a reading and schedule its alert evaluation.

        Args:
            reading: Validated reading from the user's device

        Returns:
            Id of the stored reading

        Raises:
            DeviceNotPairedError: If the device is not paired with the reading's user.
        """
        if not self.db_service.is_device_owned_by(reading.device_id, reading.user_id):
            raise DeviceNotPairedError(reading.device_id, reading.user_id)

        reading_id = self.db_service.add_reading(reading)
        self.db_service.touch_device(reading.device_id, reading.timestamp)
        logger.info(f"Stored reading {reading_id} for user {reading.user_id} from device {reading.device_id}")

        await self.background_task_executor.add_task(
            self.evaluate_and_store,
            target_args=(reading.user_id, reading),
            callback_fn=self._on_evaluation_done,
        )
        return reading_id

    def evaluate_and_store(self, user_id: int, reading: Reading) -> list[int]:
        """Run the rules for a stored reading and open alerts for every new candidate."""
        created = []
        candidates = self.rule_evaluator.evaluate(user_id, reading)
        for candidate in sorted(candidates, key=lambda c: c.alert_type.value):
            alert_id = self.alert_service.create_alert(
                user_id, candidate.alert_type, candidate.severity, candidate.message
            )
            if alert_id is not None:
                created.append(alert_id)
        return created

    async def _on_evaluation_done(self, result: Optional[list[int]], exception: Optional[Exception]) -> None:
        if exception is not None:
            # Evaluation is best-effort; the next reading gets a fresh evaluation
            logger.error(f"Alert evaluation abandoned: {exception}")
        elif result:
            logger.info(f"Alert evaluation opened alerts {result}")

    def list_alerts(self, user_id: int, resolved: Optional[bool] = None) -> list[Alert]:
        return self.alert_service.list_alerts(user_id, resolved)

    def count_open(self, user_id: int) -> int:
        return self.alert_service.count_open(user_id)

    def resolve_alert(self, user_id: int, alert_id: int) -> Alert:
        return self.alert_service.resolve(alert_id, user_id)

    def get_baseline(self, user_id: int) -> Baseline:
        return self.rule_evaluator.get_baseline(user_id)

    def get_latest_reading(self, user_id: int) -> Optional[Reading]:
        return self.db_service.get_latest_reading(user_id)

    def list_readings(self, user_id: int, period: str = StatsPeriods.DEFAULT) -> list[Reading]:
        since = utc_now() - dt.timedelta(hours=self._hours_back(period))
        return list(self.db_service.list_readings_since(user_id, since))

    def get_vital_stats(self, user_id: int, period: str = StatsPeriods.DEFAULT) -> VitalStats:
        """
        Aggregate the user's readings over the period.

        Args:
            user_id: Owner of the readings
            period: One of the keys of StatsPeriods.HOURS_BACK

        Returns:
            Averages rounded for display; zeros when there are no readings
        """
        since = utc_now() - dt.timedelta(hours=self._hours_back(period))
        row = self.db_service.get_reading_stats(user_id, since)

        return VitalStats(
            period=period,
            avg_heart_rate=round_half_up(row["avg_heart_rate"] or 0),
            min_heart_rate=row["min_heart_rate"] or 0,
            max_heart_rate=row["max_heart_rate"] or 0,
            avg_spo2=round(row["avg_spo2"] or 0, 1),
            avg_temperature=round(row["avg_temperature"] or 0, 1),
            total_steps=row["total_steps"] or 0,
        )

    @staticmethod
    def _hours_back(period: str) -> int:
        if period not in StatsPeriods.HOURS_BACK:
            raise ValueError(f"Unsupported period {period!r}, expected one of {sorted(StatsPeriods.HOURS_BACK)}")
        return StatsPeriods.HOURS_BACK[period]

from typing import Optional

from loguru import logger

from health_alert_bot.service.db_service import DBService
from health_alert_bot.service.errors import AlertNotFoundError
from health_alert_bot.service.health_analysis.common.data_models import Alert, AlertSeverity, AlertType


class AlertService:
    """
    Alert lifecycle store.

    An alert is created open and only ever moves to resolved through an explicit
    resolve call. For a given (user, alert type) at most one alert is open at a
    time; the storage layer enforces this with a partial unique index, so
    concurrent creators cannot both succeed. The first alert wins and is never
    refreshed by later candidates.
    """

    def __init__(self, db_service: DBService) -> None:
        self.db_service = db_service

    def create_alert(self, user_id: int, alert_type: AlertType, severity: AlertSeverity, message: str) -> Optional[int]:
        """
        Open a new alert unless one of the same type is already open.

        Args:
            user_id: Owner of the alert
            alert_type: Type of the alert
            severity: Severity of the alert
            message: Human-readable description

        Returns:
            The new alert id, or None when an open alert of this type already exists.
        """
        alert_id = self.db_service.insert_alert(user_id, alert_type, severity, message)
        if alert_id is None:
            logger.debug(f"Open {alert_type.value} alert already exists for user {user_id}, skipping")
            return None

        logger.info(f"Alert {alert_id} created for user {user_id}: {alert_type.value} ({severity.value})")
        return alert_id

    def has_open_alert(self, user_id: int, alert_type: AlertType) -> bool:
        return self.db_service.has_open_alert(user_id, alert_type)

    def resolve(self, alert_id: int, user_id: int) -> Alert:
        """
        Resolve an alert owned by user_id.

        Resolving an already resolved alert leaves it untouched.

        Raises:
            AlertNotFoundError: If the alert does not exist or belongs to another user.
        """
        alert = self.db_service.get_alert(alert_id, user_id)
        if alert is None:
            raise AlertNotFoundError(alert_id, user_id)

        if not alert.resolved and self.db_service.mark_alert_resolved(alert_id, user_id):
            logger.info(f"Alert {alert_id} resolved by user {user_id}")

        return self.db_service.get_alert(alert_id, user_id)

    def list_alerts(self, user_id: int, resolved: Optional[bool] = None) -> list[Alert]:
        return self.db_service.list_alerts(user_id, resolved)

    def count_open(self, user_id: int) -> int:
        return self.db_service.count_open_alerts(user_id)

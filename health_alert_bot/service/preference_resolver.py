import sqlite3
from typing import Optional

from loguru import logger

from health_alert_bot.service.db_service import DBService
from health_alert_bot.service.health_analysis.common.data_models import Preferences


class PreferenceResolver:
    """
    Resolves per-user notification toggles.

    Fails open: a missing row or a storage error yields the all-enabled default,
    so a preferences lookup can never suppress an alert.
    """

    def __init__(self, db_service: DBService) -> None:
        self.db_service = db_service

    def resolve_preferences(self, user_id: int) -> Preferences:
        try:
            preferences = self.db_service.get_preferences(user_id)
        except sqlite3.Error as e:
            logger.warning(f"Preferences lookup failed for user {user_id}, using defaults: {e}")
            return Preferences.all_enabled(user_id)

        if preferences is None:
            logger.debug(f"No preferences stored for user {user_id}, using defaults")
            return Preferences.all_enabled(user_id)
        return preferences

    def update_preferences(
        self,
        user_id: int,
        high_heart_rate_enabled: Optional[bool] = None,
        low_spo2_enabled: Optional[bool] = None,
        inactivity_enabled: Optional[bool] = None,
    ) -> Preferences:
        """Store preferences. Flags left as None are saved as enabled."""
        preferences = Preferences(
            user_id=user_id,
            high_heart_rate_enabled=True if high_heart_rate_enabled is None else high_heart_rate_enabled,
            low_spo2_enabled=True if low_spo2_enabled is None else low_spo2_enabled,
            inactivity_enabled=True if inactivity_enabled is None else inactivity_enabled,
        )
        self.db_service.upsert_preferences(preferences)
        return preferences

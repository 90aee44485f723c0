import datetime as dt

from health_alert_bot.service.health_analysis.common.data_models import Reading, utc_now

USER_ID = 12345
OTHER_USER_ID = 67890
DEVICE_ID = "watch-001"


def make_reading(minutes_ago: float = 0, user_id: int = USER_ID, device_id: str = DEVICE_ID, **values) -> Reading:
    return Reading(
        user_id=user_id,
        device_id=device_id,
        timestamp=utc_now() - dt.timedelta(minutes=minutes_ago),
        **values,
    )

import datetime as dt

import pytest
import pytest_asyncio
from dateutil.relativedelta import relativedelta

from health_alert_bot.service.alert_service import AlertService
from health_alert_bot.service.background_task_executor import BackgroundTaskExecutor
from health_alert_bot.service.db_service import DBService
from health_alert_bot.service.health_analysis.common.data_models import Gender, Profile
from health_alert_bot.service.health_analysis.rules.rule_evaluator import RuleEvaluator
from health_alert_bot.service.health_monitor_service import HealthMonitorService
from health_alert_bot.service.preference_resolver import PreferenceResolver
from tests import DEVICE_ID, USER_ID


@pytest.fixture
def db_service(tmp_path):
    """DBService backed by a fresh SQLite file."""
    return DBService(tmp_path, db_file_name="test.db", busy_timeout_s=10.0)


@pytest.fixture
def preference_resolver(db_service):
    return PreferenceResolver(db_service)


@pytest.fixture
def alert_service(db_service):
    return AlertService(db_service)


@pytest.fixture
def rule_evaluator(db_service, preference_resolver, alert_service):
    return RuleEvaluator(db_service, preference_resolver, alert_service)


@pytest.fixture
def thirty_year_old_female(db_service):
    """User born exactly 30 years ago: baseline threshold 162 bpm."""
    profile = Profile(
        user_id=USER_ID,
        birth_date=dt.date.today() - relativedelta(years=30),
        gender=Gender.FEMALE,
    )
    db_service.upsert_profile(profile)
    return profile


@pytest.fixture
def paired_device(db_service):
    return db_service.pair_device(USER_ID, DEVICE_ID, "smartwatch", "wearos")


@pytest_asyncio.fixture
async def background_task_executor():
    executor = BackgroundTaskExecutor(num_async_workers=2, num_thread_workers=4)
    await executor.start_workers()
    yield executor
    await executor.stop_workers(wait_for_queue=True)


@pytest_asyncio.fixture
async def health_monitor_service(db_service, alert_service, rule_evaluator, background_task_executor):
    return HealthMonitorService(
        db_service=db_service,
        alert_service=alert_service,
        rule_evaluator=rule_evaluator,
        background_task_executor=background_task_executor,
    )


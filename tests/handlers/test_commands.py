"""
Tests for the Telegram command handlers, with Telegram objects mocked out.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from health_alert_bot.handlers.commands.alert_commands import ListAlertsHandler, ResolveAlertHandler
from health_alert_bot.handlers.commands.baseline_command import BaselineHandler
from health_alert_bot.handlers.commands.preferences_command import ToggleAlertHandler
from health_alert_bot.handlers.commands.profile_command import SetProfileHandler
from health_alert_bot.service.health_analysis.common.data_models import AlertSeverity, AlertType, Gender
from tests import OTHER_USER_ID, USER_ID


def make_update(user_id: int = USER_ID, text: str = "/command") -> MagicMock:
    update = MagicMock()
    update.effective_user.id = user_id
    update.effective_user.name = "tester"
    update.message.text = text
    update.message.reply_text = AsyncMock()
    return update


def make_context(*args: str) -> MagicMock:
    context = MagicMock()
    context.args = list(args)
    return context


def reply_of(update: MagicMock) -> str:
    return update.message.reply_text.await_args.args[0]


class TestCommandHandlers:
    @pytest.mark.asyncio
    async def test_set_profile_then_baseline(self, db_service, health_monitor_service):
        update = make_update()
        await SetProfileHandler(db_service).handle(update, make_context("1996-01-15", "female"))

        assert db_service.get_profile(USER_ID).gender == Gender.FEMALE

        update = make_update()
        await BaselineHandler(health_monitor_service).handle(update, make_context())
        assert "Resting heart rate" in reply_of(update)

    @pytest.mark.asyncio
    async def test_baseline_without_profile_hints_outside_code_span(self, health_monitor_service):
        update = make_update()

        await BaselineHandler(health_monitor_service).handle(update, make_context())

        reply = reply_of(update)
        assert "Age: `unknown` (set it with /set\\_profile)" in reply
        assert "`180 bpm`" in reply

    @pytest.mark.asyncio
    async def test_set_profile_rejects_bad_date(self, db_service):
        update = make_update()

        await SetProfileHandler(db_service).handle(update, make_context("15/01/1996"))

        assert "Invalid input" in reply_of(update)
        assert db_service.get_profile(USER_ID) is None

    @pytest.mark.asyncio
    async def test_list_alerts(self, alert_service, health_monitor_service):
        alert_service.create_alert(USER_ID, AlertType.LOW_SPO2, AlertSeverity.WARNING, "Low blood oxygen: 90%")
        update = make_update()

        await ListAlertsHandler(health_monitor_service).handle(update, make_context())

        reply = reply_of(update)
        assert "low_spo2" in reply
        assert "Open alerts: *1*" in reply

    @pytest.mark.asyncio
    async def test_resolve_foreign_alert_reports_not_found(self, alert_service, health_monitor_service):
        alert_id = alert_service.create_alert(USER_ID, AlertType.LOW_SPO2, AlertSeverity.WARNING, "Low SpO2")
        update = make_update(user_id=OTHER_USER_ID)

        await ResolveAlertHandler(health_monitor_service).handle(update, make_context(str(alert_id)))

        assert "not found" in reply_of(update)
        assert alert_service.count_open(USER_ID) == 1

    @pytest.mark.asyncio
    async def test_resolve_alert(self, alert_service, health_monitor_service):
        alert_id = alert_service.create_alert(USER_ID, AlertType.LOW_SPO2, AlertSeverity.WARNING, "Low SpO2")
        update = make_update()

        await ResolveAlertHandler(health_monitor_service).handle(update, make_context(str(alert_id)))

        assert f"Alert #{alert_id} resolved" in reply_of(update)
        assert alert_service.count_open(USER_ID) == 0

    @pytest.mark.asyncio
    async def test_toggle_alert(self, preference_resolver):
        update = make_update()

        await ToggleAlertHandler(preference_resolver).handle(update, make_context("spo2"))

        preferences = preference_resolver.resolve_preferences(USER_ID)
        assert preferences.low_spo2_enabled is False
        assert preferences.high_heart_rate_enabled is True

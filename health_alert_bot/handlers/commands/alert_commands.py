"""
Command handlers for health alerts.

This module provides the /alerts command for listing alerts and the
/resolve_alert command for closing one.
"""

from typing import Optional

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import CallbackContext, CommandHandler
from telegram.helpers import escape_markdown

from health_alert_bot.handlers.base.public_handler import PublicHandler
from health_alert_bot.service.health_analysis.common.data_models import Alert, AlertSeverity
from health_alert_bot.service.health_monitor_service import HealthMonitorService

_SEVERITY_ICONS = {
    AlertSeverity.INFO: "ℹ️",
    AlertSeverity.WARNING: "⚠️",
    AlertSeverity.CRITICAL: "🚨",
}

_RESOLVED_FILTERS = {
    "open": False,
    "resolved": True,
    "all": None,
}


def format_alert(alert: Alert) -> str:
    status = "✅ resolved" if alert.resolved else "🔔 open"
    return (
        f"{_SEVERITY_ICONS[alert.severity]} *#{alert.id}* `{alert.alert_type.value}` - {status}\n"
        f"🕒 `{alert.created_at:%Y-%m-%d %H:%M}`\n"
        f"_{escape_markdown(alert.message)}_\n"
    )


class ListAlertsHandler(PublicHandler):
    """
    Handler for the /alerts command.

    Lists the user's alerts, newest first. Accepts an optional filter argument:
    open (default), resolved or all.
    """

    def __init__(self, health_monitor_service: HealthMonitorService) -> None:
        super().__init__()
        self.health_monitor_service = health_monitor_service

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        user_id = update.effective_user.id
        choice = context.args[0].lower() if context.args else "open"
        if choice not in _RESOLVED_FILTERS:
            await update.message.reply_text("❌ Usage: /alerts [open|resolved|all]")
            return
        resolved: Optional[bool] = _RESOLVED_FILTERS[choice]

        alerts = self.health_monitor_service.list_alerts(user_id, resolved)
        open_count = self.health_monitor_service.count_open(user_id)

        reply = [f"🩺 *YOUR ALERTS* ({choice}) 🩺\n", f"Open alerts: *{open_count}*\n"]
        if not alerts:
            reply.append("_No alerts found._")
        else:
            reply.extend(format_alert(alert) for alert in alerts)

        await update.message.reply_text("\n".join(reply), parse_mode=ParseMode.MARKDOWN)


class ResolveAlertHandler(PublicHandler):
    """Handler for the /resolve_alert <id> command."""

    def __init__(self, health_monitor_service: HealthMonitorService) -> None:
        super().__init__()
        self.health_monitor_service = health_monitor_service

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        user_id = update.effective_user.id
        if not context.args or not context.args[0].isdigit():
            await update.message.reply_text("❌ Usage: /resolve_alert <alert id>")
            return

        alert = self.health_monitor_service.resolve_alert(user_id, int(context.args[0]))
        await update.message.reply_text(
            f"✅ *Alert #{alert.id} resolved* ✅\n\n{format_alert(alert)}", parse_mode=ParseMode.MARKDOWN
        )


def get_list_alerts_command(health_monitor_service: HealthMonitorService) -> CommandHandler:
    return CommandHandler("alerts", ListAlertsHandler(health_monitor_service).handle)


def get_resolve_alert_command(health_monitor_service: HealthMonitorService) -> CommandHandler:
    return CommandHandler("resolve_alert", ResolveAlertHandler(health_monitor_service).handle)

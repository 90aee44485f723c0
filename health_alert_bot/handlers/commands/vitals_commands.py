from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import CallbackContext, CommandHandler

from health_alert_bot.handlers.base.public_handler import PublicHandler
from health_alert_bot.service.health_analysis.common.constants import StatsPeriods
from health_alert_bot.service.health_monitor_service import HealthMonitorService


def _value(value, unit: str) -> str:
    return f"`{value:g}{unit}`" if value is not None else "_n/a_"


class VitalsHandler(PublicHandler):
    """Shows the latest reading and aggregates for /vitals [24h|7d]."""

    def __init__(self, health_monitor_service: HealthMonitorService) -> None:
        super().__init__()
        self.health_monitor_service = health_monitor_service

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        user_id = update.effective_user.id
        period = context.args[0].lower() if context.args else StatsPeriods.DEFAULT
        if period not in StatsPeriods.HOURS_BACK:
            await update.message.reply_text(f"❌ Usage: /vitals [{'|'.join(StatsPeriods.HOURS_BACK)}]")
            return

        latest = self.health_monitor_service.get_latest_reading(user_id)
        if latest is None:
            await update.message.reply_text(
                "_No vital data available. Use /log\\_vitals to add a reading._", parse_mode=ParseMode.MARKDOWN
            )
            return

        stats = self.health_monitor_service.get_vital_stats(user_id, period)
        reply = [
            "📈 *LATEST READING* 📈\n",
            f"🕒 `{latest.timestamp:%Y-%m-%d %H:%M}`",
            f"❤️ Heart rate: {_value(latest.heart_rate, ' bpm')}",
            f"🫁 SpO2: {_value(latest.spo2, '%')}",
            f"🌡️ Temperature: {_value(latest.temperature, '°C')}",
            f"🚶 Steps: {_value(latest.steps, '')}\n",
            f"📊 *LAST {period.upper()}* 📊\n",
            f"❤️ Heart rate avg/min/max: `{stats.avg_heart_rate}/{stats.min_heart_rate}/{stats.max_heart_rate} bpm`",
            f"🫁 SpO2 avg: `{stats.avg_spo2}%`",
            f"🌡️ Temperature avg: `{stats.avg_temperature}°C`",
            f"🚶 Total steps: `{stats.total_steps}`",
        ]
        await update.message.reply_text("\n".join(reply), parse_mode=ParseMode.MARKDOWN)


def get_vitals_command(health_monitor_service: HealthMonitorService) -> CommandHandler:
    return CommandHandler("vitals", VitalsHandler(health_monitor_service).handle)

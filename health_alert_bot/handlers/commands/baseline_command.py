from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import CallbackContext, CommandHandler

from health_alert_bot.handlers.base.public_handler import PublicHandler
from health_alert_bot.service.health_monitor_service import HealthMonitorService


class BaselineHandler(PublicHandler):
    def __init__(self, health_monitor_service: HealthMonitorService) -> None:
        super().__init__()
        self.health_monitor_service = health_monitor_service

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        baseline = self.health_monitor_service.get_baseline(update.effective_user.id)
        age = f"`{baseline.age}`" if baseline.age is not None else "`unknown` (set it with /set\\_profile)"

        await update.message.reply_text(
            "📐 *YOUR BASELINE* 📐\n\n"
            f"🎂 Age: {age}\n"
            f"❤️ Max heart rate: `{baseline.max_heart_rate} bpm`\n"
            f"😴 Resting heart rate: `{baseline.resting_heart_rate} bpm`\n"
            f"🚨 High heart rate alert above: `{baseline.high_heart_rate_threshold} bpm`",
            parse_mode=ParseMode.MARKDOWN,
        )


def get_baseline_command(health_monitor_service: HealthMonitorService) -> CommandHandler:
    return CommandHandler("baseline", BaselineHandler(health_monitor_service).handle)

"""
Command handlers for the paired sensor.

Each user has at most one paired device; readings are only accepted from it.
"""

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import CallbackContext, CommandHandler
from telegram.helpers import escape_markdown

from health_alert_bot.handlers.base.public_handler import PublicHandler
from health_alert_bot.service.db_service import DBService


class PairDeviceHandler(PublicHandler):
    """
    Handler for the /pair_device command.

    Pairs a device with the user, replacing any previously paired device.
    """

    def __init__(self, db_service: DBService) -> None:
        super().__init__()
        self.db_service = db_service

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        if not context.args:
            await update.message.reply_text("❌ Usage: /pair_device <device id> [device type] [platform]")
            return

        device_id, *rest = context.args
        device_type = rest[0] if len(rest) > 0 else None
        platform = rest[1] if len(rest) > 1 else None

        device = self.db_service.pair_device(update.effective_user.id, device_id, device_type, platform)
        await update.message.reply_text(
            f"⌚ *Device paired* ⌚\n\n🔗 `{device.device_id}`\n"
            "📈 Use /log\\_vitals to submit a reading.",
            parse_mode=ParseMode.MARKDOWN,
        )


class DeviceStatusHandler(PublicHandler):
    """Handler for the /device command."""

    def __init__(self, db_service: DBService) -> None:
        super().__init__()
        self.db_service = db_service

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        device = self.db_service.get_device(update.effective_user.id)
        if device is None:
            await update.message.reply_text(
                "❌ *No device paired* ❌\n\n🔗 Use /pair\\_device to pair one.", parse_mode=ParseMode.MARKDOWN
            )
            return

        last_sync = f"{device.last_sync_at:%Y-%m-%d %H:%M}" if device.last_sync_at else "never"
        await update.message.reply_text(
            "⌚ *PAIRED DEVICE* ⌚\n\n"
            f"🔗 ID: `{device.device_id}`\n"
            f"📱 Type: {escape_markdown(device.device_type or 'unknown')}\n"
            f"💻 Platform: {escape_markdown(device.platform or 'unknown')}\n"
            f"🕒 Connected: `{device.connected_at:%Y-%m-%d %H:%M}`\n"
            f"🔄 Last sync: `{last_sync}`",
            parse_mode=ParseMode.MARKDOWN,
        )


def get_pair_device_command(db_service: DBService) -> CommandHandler:
    return CommandHandler("pair_device", PairDeviceHandler(db_service).handle)


def get_device_status_command(db_service: DBService) -> CommandHandler:
    return CommandHandler("device", DeviceStatusHandler(db_service).handle)

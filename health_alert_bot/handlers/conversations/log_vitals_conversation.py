from typing import Callable, Optional

from loguru import logger
from pydantic import ValidationError
from telegram import ReplyKeyboardMarkup, ReplyKeyboardRemove, Update
from telegram.constants import ParseMode
from telegram.ext import CallbackContext, CommandHandler, ContextTypes, ConversationHandler, MessageHandler, filters

from health_alert_bot.handlers.base.public_handler import PublicHandler, format_validation_error
from health_alert_bot.service.db_service import DBService
from health_alert_bot.service.health_analysis.common.data_models import Reading
from health_alert_bot.service.health_monitor_service import HealthMonitorService

HEART_RATE, SPO2, TEMPERATURE, STEPS = range(4)
SKIP = "-"
skip_keyboard = [[SKIP]]


def _parse(text: str, cast: Callable[[str], float]) -> Optional[float]:
    text = text.strip().replace(",", ".")
    if text == SKIP:
        return None
    return cast(text)


class StartHandler(PublicHandler):
    def __init__(self, db_service: DBService) -> None:
        super().__init__()
        self.db_service = db_service

    async def _handle(self, update: Update, context: CallbackContext) -> int:
        device = self.db_service.get_device(update.effective_user.id)
        if device is None:
            await update.message.reply_text(
                "❌ *No device paired!* Use /pair\\_device first.", parse_mode=ParseMode.MARKDOWN
            )
            return ConversationHandler.END

        context.user_data.clear()
        context.user_data["device_id"] = device.device_id
        await update.message.reply_text(
            "📈 *VITALS LOGGING* 📈\n\nWhat is your heart rate (bpm)? Send `-` to skip any field.",
            reply_markup=ReplyKeyboardMarkup(skip_keyboard, one_time_keyboard=True, input_field_placeholder="bpm"),
            parse_mode=ParseMode.MARKDOWN,
        )
        return HEART_RATE


class FieldHandler(PublicHandler):
    """Stores one numeric field and asks for the next one."""

    def __init__(
        self, field_name: str, cast: Callable[[str], float], state: int, next_state: int, next_prompt: str
    ) -> None:
        super().__init__()
        self.field_name = field_name
        self.cast = cast
        self.state = state
        self.next_state = next_state
        self.next_prompt = next_prompt

    async def _handle(self, update: Update, context: CallbackContext) -> int:
        try:
            context.user_data[self.field_name] = _parse(update.message.text, self.cast)
        except ValueError:
            await update.message.reply_text("❌ *Value must be a number!*", parse_mode=ParseMode.MARKDOWN)
            return self.state

        await update.message.reply_text(
            self.next_prompt,
            reply_markup=ReplyKeyboardMarkup(skip_keyboard, one_time_keyboard=True),
            parse_mode=ParseMode.MARKDOWN,
        )
        return self.next_state


class StepsHandler(PublicHandler):
    def __init__(self, health_monitor_service: HealthMonitorService) -> None:
        super().__init__()
        self.health_monitor_service = health_monitor_service

    async def _handle(self, update: Update, context: CallbackContext) -> int:
        try:
            context.user_data["steps"] = _parse(update.message.text, int)
        except ValueError:
            await update.message.reply_text("❌ *Steps must be a whole number!*", parse_mode=ParseMode.MARKDOWN)
            return STEPS

        values = {k: v for k, v in context.user_data.items() if v is not None}
        context.user_data.clear()

        try:
            reading = Reading(user_id=update.effective_user.id, **values)
        except ValidationError as e:
            await update.message.reply_text(
                f"❌ Invalid reading, nothing was saved:\n{format_validation_error(e)}",
                reply_markup=ReplyKeyboardRemove(),
            )
            return ConversationHandler.END

        reading_id = await self.health_monitor_service.ingest_reading(reading)

        await update.message.reply_text(
            f"✅ *Reading #{reading_id} saved!* ✅\n\n"
            "Alerts are evaluated in the background, check /alerts in a moment.",
            parse_mode=ParseMode.MARKDOWN,
            reply_markup=ReplyKeyboardRemove(),
        )
        return ConversationHandler.END


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Cancels and ends the conversation."""
    user = update.message.from_user
    logger.info(f"User {user.first_name} canceled vitals logging.")
    context.user_data.clear()
    await update.message.reply_text(
        "⚠️ *Vitals logging cancelled* ⚠️\n\nYou can start again anytime with /log\\_vitals.",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=ReplyKeyboardRemove(),
    )
    return ConversationHandler.END


def get_log_vitals_handler(db_service: DBService, health_monitor_service: HealthMonitorService) -> ConversationHandler:
    text = filters.TEXT & ~filters.COMMAND
    return ConversationHandler(
        entry_points=[CommandHandler("log_vitals", StartHandler(db_service).handle)],
        states={
            HEART_RATE: [
                MessageHandler(
                    text, FieldHandler("heart_rate", int, HEART_RATE, SPO2, "🫁 What is your SpO2 (%)?").handle
                )
            ],
            SPO2: [
                MessageHandler(
                    text, FieldHandler("spo2", float, SPO2, TEMPERATURE, "🌡️ What is your temperature (°C)?").handle
                )
            ],
            TEMPERATURE: [
                MessageHandler(
                    text, FieldHandler("temperature", float, TEMPERATURE, STEPS, "🚶 How many steps?").handle
                )
            ],
            STEPS: [MessageHandler(text, StepsHandler(health_monitor_service).handle)],
        },
        fallbacks=[CommandHandler("cancel", cancel)],
    )

"""Command handlers for notification preferences."""

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import CallbackContext, CommandHandler

from health_alert_bot.handlers.base.public_handler import PublicHandler
from health_alert_bot.service.health_analysis.common.data_models import Preferences
from health_alert_bot.service.preference_resolver import PreferenceResolver

_TOGGLE_FIELDS = {
    "heart": "high_heart_rate_enabled",
    "spo2": "low_spo2_enabled",
    "activity": "inactivity_enabled",
}


def format_preferences(preferences: Preferences) -> str:
    def flag(enabled: bool) -> str:
        return "✅ on" if enabled else "🔕 off"

    return (
        "🔔 *NOTIFICATION PREFERENCES* 🔔\n\n"
        f"❤️ High heart rate: {flag(preferences.high_heart_rate_enabled)}\n"
        f"🫁 Low SpO2: {flag(preferences.low_spo2_enabled)}\n"
        f"🚶 Low activity: {flag(preferences.inactivity_enabled)}\n"
        "🌡️ High temperature: ✅ always on\n\n"
        "Use /toggle\\_alert <heart|spo2|activity> to switch."
    )


class PreferencesHandler(PublicHandler):
    def __init__(self, preference_resolver: PreferenceResolver) -> None:
        super().__init__()
        self.preference_resolver = preference_resolver

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        preferences = self.preference_resolver.resolve_preferences(update.effective_user.id)
        await update.message.reply_text(format_preferences(preferences), parse_mode=ParseMode.MARKDOWN)


class ToggleAlertHandler(PublicHandler):
    def __init__(self, preference_resolver: PreferenceResolver) -> None:
        super().__init__()
        self.preference_resolver = preference_resolver

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        user_id = update.effective_user.id
        key = context.args[0].lower() if context.args else None
        if key not in _TOGGLE_FIELDS:
            await update.message.reply_text("❌ Usage: /toggle_alert <heart|spo2|activity>")
            return

        current = self.preference_resolver.resolve_preferences(user_id).model_dump(exclude={"user_id"})
        field_name = _TOGGLE_FIELDS[key]
        current[field_name] = not current[field_name]

        preferences = self.preference_resolver.update_preferences(user_id, **current)
        await update.message.reply_text(format_preferences(preferences), parse_mode=ParseMode.MARKDOWN)


def get_preferences_command(preference_resolver: PreferenceResolver) -> CommandHandler:
    return CommandHandler("preferences", PreferencesHandler(preference_resolver).handle)


def get_toggle_alert_command(preference_resolver: PreferenceResolver) -> CommandHandler:
    return CommandHandler("toggle_alert", ToggleAlertHandler(preference_resolver).handle)

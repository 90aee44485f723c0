from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import CallbackContext, CommandHandler

from health_alert_bot.handlers.base.public_handler import PublicHandler
from health_alert_bot.service.db_service import DBService
from health_alert_bot.service.health_analysis.common.data_models import Profile


class SetProfileHandler(PublicHandler):
    """Handler for /set_profile <YYYY-MM-DD> [male|female|other|prefer_not_to_say]."""

    def __init__(self, db_service: DBService) -> None:
        super().__init__()
        self.db_service = db_service

    async def _handle(self, update: Update, context: CallbackContext) -> None:
        if not context.args:
            await update.message.reply_text(
                "❌ Usage: /set_profile <YYYY-MM-DD> [male|female|other|prefer_not_to_say]"
            )
            return

        # Raises ValidationError on a malformed date or unknown gender
        profile = Profile.model_validate(
            {
                "user_id": update.effective_user.id,
                "birth_date": context.args[0],
                "gender": context.args[1].lower() if len(context.args) > 1 else None,
            }
        )
        self.db_service.upsert_profile(profile)

        gender = profile.gender.value if profile.gender else "not set"
        await update.message.reply_text(
            "✅ *Profile saved* ✅\n\n"
            f"🎂 Birth date: `{profile.birth_date}`\n"
            f"👤 Gender: `{gender}`\n\n"
            "Use /baseline to see your personal thresholds.",
            parse_mode=ParseMode.MARKDOWN,
        )


def get_set_profile_command(db_service: DBService) -> CommandHandler:
    return CommandHandler("set_profile", SetProfileHandler(db_service).handle)

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger
from pydantic import ValidationError
from telegram import Update
from telegram.ext import CallbackContext

from health_alert_bot.service.errors import AlertNotFoundError, DeviceInUseError, DeviceNotPairedError


def format_validation_error(error: ValidationError) -> str:
    return "\n".join(f"• {'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors())


class PublicHandler(ABC):
    """
    Base for commands available to any user. The Telegram user id is the user id
    passed to every service call.
    """

    async def handle(self, update: Update, context: CallbackContext) -> Any:
        logger.debug(
            f"Received message {update.message.text} from {update.effective_user.name}(id: {update.effective_user.id})"
        )
        try:
            return await self._handle(update, context)
        except ValidationError as e:
            logger.info(f"Rejected invalid input from user {update.effective_user.id}: {e}")
            await update.message.reply_text(f"❌ Invalid input:\n{format_validation_error(e)}")
        except (AlertNotFoundError, DeviceNotPairedError, DeviceInUseError) as e:
            await update.message.reply_text(f"❌ {e}")
        except Exception as e:
            await update.message.reply_text(f"Exception has occurred!\n{e}")
            logger.exception(e)

    @abstractmethod
    async def _handle(self, update: Update, context: CallbackContext) -> Any:
        raise NotImplementedError

from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger
from telegram import BotCommand, BotCommandScopeAllPrivateChats, BotCommandScopeDefault, Update
from telegram.ext import Application, ApplicationBuilder

from health_alert_bot.config import MonitorSettings
from health_alert_bot.handlers.commands.alert_commands import get_list_alerts_command, get_resolve_alert_command
from health_alert_bot.handlers.commands.baseline_command import get_baseline_command
from health_alert_bot.handlers.commands.device_commands import get_device_status_command, get_pair_device_command
from health_alert_bot.handlers.commands.preferences_command import get_preferences_command, get_toggle_alert_command
from health_alert_bot.handlers.commands.profile_command import get_set_profile_command
from health_alert_bot.handlers.commands.vitals_commands import get_vitals_command
from health_alert_bot.handlers.conversations.log_vitals_conversation import get_log_vitals_handler
from health_alert_bot.service_factory import ServiceFactory

SETTINGS = MonitorSettings()
SERVICE_FACTORY = ServiceFactory(SETTINGS)


def setup_logger(out_dir: Path) -> None:
    log_dir = out_dir / "log"
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(log_dir / "debug.log", rotation="100 MB", retention="7 days", level="DEBUG")
    logger.add(log_dir / "error.log", rotation="100 MB", retention="7 days", level="ERROR")
    logger.info("logger initialised")


def _build_commands() -> list[BotCommand]:
    return [
        BotCommand("set_profile", "Set your birth date and gender"),
        BotCommand("pair_device", "Pair your wearable device"),
        BotCommand("device", "Show your paired device"),
        BotCommand("log_vitals", "Submit a vitals reading"),
        BotCommand("vitals", "Latest reading and statistics"),
        BotCommand("baseline", "Your personal heart rate baseline"),
        BotCommand("alerts", "List your health alerts"),
        BotCommand("resolve_alert", "Mark an alert as resolved"),
        BotCommand("preferences", "View notification preferences"),
        BotCommand("toggle_alert", "Switch an alert type on or off"),
        BotCommand("cancel", "Cancel current conversation"),
    ]


async def _post_init(application: Application) -> None:
    await SERVICE_FACTORY.background_task_executor.start_workers()

    commands = _build_commands()
    await asyncio.gather(
        application.bot.set_my_commands(commands, scope=BotCommandScopeAllPrivateChats()),
        application.bot.set_my_commands(commands, scope=BotCommandScopeDefault()),
    )
    logger.info("Bot commands registered.")


async def _post_shutdown(application: Application) -> None:
    await SERVICE_FACTORY.background_task_executor.stop_workers(wait_for_queue=True)


def _build_app(settings: MonitorSettings) -> Application:
    application = (
        ApplicationBuilder()
        .token(settings.telegram_bot_api_key)
        .concurrent_updates(True)
        .read_timeout(settings.read_timeout_s)
        .write_timeout(settings.write_timeout_s)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )
    return application


def _setup_handlers(app: Application) -> None:
    db_service = SERVICE_FACTORY.db_service
    health_monitor_service = SERVICE_FACTORY.health_monitor_service
    preference_resolver = SERVICE_FACTORY.preference_resolver

    app.add_handler(get_log_vitals_handler(db_service, health_monitor_service))
    app.add_handler(get_set_profile_command(db_service))
    app.add_handler(get_pair_device_command(db_service))
    app.add_handler(get_device_status_command(db_service))

    app.add_handler(get_vitals_command(health_monitor_service))
    app.add_handler(get_baseline_command(health_monitor_service))
    app.add_handler(get_list_alerts_command(health_monitor_service))
    app.add_handler(get_resolve_alert_command(health_monitor_service))

    app.add_handler(get_preferences_command(preference_resolver))
    app.add_handler(get_toggle_alert_command(preference_resolver))


def build_configured_application() -> Application:
    if not SETTINGS.out_dir.exists():
        SETTINGS.out_dir.mkdir(parents=True)
    setup_logger(SETTINGS.out_dir)
    application = _build_app(SETTINGS)

    _setup_handlers(application)
    return application


def main() -> None:  # pragma: no cover
    application = build_configured_application()
    logger.info("Starting polling …")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()

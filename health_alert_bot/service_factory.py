from functools import cached_property

from health_alert_bot.config import MonitorSettings
from health_alert_bot.service.alert_service import AlertService
from health_alert_bot.service.background_task_executor import BackgroundTaskExecutor
from health_alert_bot.service.db_service import DBService
from health_alert_bot.service.health_analysis.rules.rule_evaluator import RuleEvaluator
from health_alert_bot.service.health_monitor_service import HealthMonitorService
from health_alert_bot.service.preference_resolver import PreferenceResolver


class ServiceFactory:
    def __init__(self, settings: MonitorSettings):
        self.settings = settings

    @cached_property
    def db_service(self) -> DBService:
        return DBService(
            self.settings.out_dir,
            db_file_name=self.settings.db_file_name,
            busy_timeout_s=self.settings.db_busy_timeout_s,
        )

    @cached_property
    def background_task_executor(self) -> BackgroundTaskExecutor:
        return BackgroundTaskExecutor(
            num_async_workers=self.settings.executor_num_async_workers,
            num_thread_workers=self.settings.executor_num_thread_workers,
        )

    @cached_property
    def preference_resolver(self) -> PreferenceResolver:
        return PreferenceResolver(self.db_service)

    @cached_property
    def alert_service(self) -> AlertService:
        return AlertService(self.db_service)

    @cached_property
    def rule_evaluator(self) -> RuleEvaluator:
        return RuleEvaluator(self.db_service, self.preference_resolver, self.alert_service)

    @cached_property
    def health_monitor_service(self) -> HealthMonitorService:
        return HealthMonitorService(
            db_service=self.db_service,
            alert_service=self.alert_service,
            rule_evaluator=self.rule_evaluator,
            background_task_executor=self.background_task_executor,
        )

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class MonitorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_nested_delimiter="__")

    telegram_bot_api_key: str
    read_timeout_s: int = 30
    write_timeout_s: int = 30
    out_dir: Path = Path("./out")
    db_file_name: str = "health.db"
    db_busy_timeout_s: float = 5.0
    executor_num_async_workers: int = 4
    executor_num_thread_workers: int = 4

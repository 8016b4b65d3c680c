from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # EasyMeme backend
    easymeme_server_url: str = "http://localhost:8080"
    easymeme_api_key: str = ""
    easymeme_user_id: str = ""
    easymeme_api_hmac_secret: str = ""  # empty = unsigned requests
    easymeme_api_max_rps: float = 5.0

    # Learned weight memory
    memory_backend: str = "file"  # "file" or "redis"
    easymeme_memory_path: str = ""  # empty = ~/.easymeme/memory.json
    redis_url: str = "redis://localhost:6379/0"
    memory_redis_key: str = "easymeme:memory"
    memory_max_write_retries: int = 3  # revision conflicts before giving up
    default_user_reputation: float = 30.0

    # Notifications (Telegram)
    easymeme_notify_channel: str = ""  # "telegram" / "tg" enables sending
    easymeme_notify_to: str = ""
    easymeme_notify_token: str = ""
    telegram_bot_token: str = ""
    telegram_admin_id: int = 0  # 0 = bot commands open to everyone

    # Analysis worker
    worker_enabled: bool = True
    worker_interval_sec: int = 60
    worker_batch_limit: int = 10

    # JSON API
    api_enabled: bool = True
    api_port: int = 8090

    @property
    def memory_path(self) -> Path:
        explicit = self.easymeme_memory_path.strip()
        if explicit:
            return Path(explicit).expanduser()
        return Path.home() / ".easymeme" / "memory.json"

    @property
    def notify_token(self) -> str:
        return self.easymeme_notify_token.strip() or self.telegram_bot_token.strip()


settings = Settings()

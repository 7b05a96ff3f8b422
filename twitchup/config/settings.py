from typing import List, Optional
import re
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    twitch_client_id: Optional[str] = Field(default=None, alias="TWITCH_CLIENT_ID")
    twitch_client_secret: Optional[str] = Field(default=None, alias="TWITCH_CLIENT_SECRET")
    discord_webhook_urls_raw: str = Field(default="", alias="DISCORD_WEBHOOK_URLS")
    check_interval_min: int = Field(default=5, alias="CHECK_INTERVAL")
    storage_file: str = Field(default="data/streamers.json", alias="STORAGE_FILE")
    http_timeout_sec: float = Field(default=10, alias="HTTP_TIMEOUT_SEC")
    log_format: str = Field(default="plain", alias="LOG_FORMAT")
    metrics_port: int = Field(default=9100, alias="METRICS_PORT")
    api_port: int = Field(default=8000, alias="API_PORT")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def discord_webhook_urls(self) -> List[str]:
        parts = re.split(r"[,\n\s]+", self.discord_webhook_urls_raw.strip()) if self.discord_webhook_urls_raw else []
        return [p for p in (s.strip() for s in parts) if p]

settings = Settings()

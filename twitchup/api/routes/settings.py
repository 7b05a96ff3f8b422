from fastapi import APIRouter
from pydantic import BaseModel, Field
from typing import List, Optional, Dict
from twitchup.config.settings import settings
from twitchup.notify.discord_sink import destination_label

router = APIRouter(prefix="/settings", tags=["settings"])

dynamic_overrides: Dict[str, str] = {}

class SettingsView(BaseModel):
    check_interval_min: int
    destinations: List[str]
    storage_file: str
    http_timeout_sec: float
    log_format: str
    metrics_port: int
    api_port: int
    overrides: Dict[str, str]

class SettingsPatch(BaseModel):
    check_interval_min: Optional[int] = Field(None, ge=1, le=1440)

@router.get("", response_model=SettingsView)
async def get_settings():
    return SettingsView(
        check_interval_min=settings.check_interval_min,
        destinations=[destination_label(u) for u in settings.discord_webhook_urls],
        storage_file=settings.storage_file,
        http_timeout_sec=settings.http_timeout_sec,
        log_format=settings.log_format,
        metrics_port=settings.metrics_port,
        api_port=settings.api_port,
        overrides=dynamic_overrides,
    )

@router.patch("", response_model=SettingsView)
async def patch_settings(patch: SettingsPatch):
    if patch.check_interval_min is not None:
        # picked up by the poller after its current wait
        settings.check_interval_min = patch.check_interval_min  # type: ignore[attr-defined]
        dynamic_overrides["check_interval_min"] = str(patch.check_interval_min)
    return await get_settings()

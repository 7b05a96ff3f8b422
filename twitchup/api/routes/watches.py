from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional

from twitchup.errors import DuplicateWatch, UnknownWatch
from twitchup.orchestration.watches import WatchService
from twitchup.storage.watch_store import WatchedEntity
from twitchup.twitch.poller import channel_url

router = APIRouter(prefix="/watches", tags=["watches"])

_service: WatchService | None = None

class StreamView(BaseModel):
    title: str
    game_name: str
    viewer_count: int
    thumbnail_url: str
    started_at: Optional[str] = None

class WatchView(BaseModel):
    id: str
    login: str
    display_name: str
    url: str
    added_at: str
    is_live: bool
    current_stream: Optional[StreamView] = None

class AddRequest(BaseModel):
    handle: str = Field(..., min_length=1, description="Twitch channel URL or handle")

class AddResponse(BaseModel):
    added: bool
    is_live: bool
    watch: WatchView

class RemoveResponse(BaseModel):
    removed: bool
    watch: WatchView

class FailureView(BaseModel):
    id: str
    login: str
    message: str

class StatusResponse(BaseModel):
    watched: int
    live: List[WatchView]
    failed: List[FailureView] = []

def to_view(entity: WatchedEntity) -> WatchView:
    stream = entity.current_stream
    return WatchView(
        id=entity.id,
        login=entity.login,
        display_name=entity.display_name,
        url=channel_url(entity.login),
        added_at=entity.added_at,
        is_live=entity.is_live,
        current_stream=StreamView(**stream.to_dict()) if stream else None,
    )

def _require_service() -> WatchService:
    if _service is None:
        raise HTTPException(503, "Watch service not available")
    return _service

@router.get("", response_model=List[WatchView])
async def list_watches():
    if _service is None:
        return []
    return [to_view(e) for e in await _service.list_watches()]

@router.post("", response_model=AddResponse, status_code=201)
async def add_watch(req: AddRequest):
    result = await _require_service().add_watch(req.handle)
    if not result.added:
        raise DuplicateWatch(f"{result.entity.display_name} is already being monitored.")
    return AddResponse(added=True, is_live=result.is_live, watch=to_view(result.entity))

@router.delete("/{handle}", response_model=RemoveResponse)
async def remove_watch(handle: str):
    result = await _require_service().remove_watch(handle)
    if not result.removed:
        raise UnknownWatch(f"Could not find a monitored streamer with username {handle!r}.")
    return RemoveResponse(removed=True, watch=to_view(result.entity))

@router.post("/status", response_model=StatusResponse)
async def status():
    service = _require_service()
    result = await service.force_sweep_and_report()
    watched = len(await service.list_watches())
    return StatusResponse(
        watched=watched,
        live=[to_view(e) for e in result.live],
        failed=[FailureView(id=f.entity_id, login=f.login, message=f.message) for f in result.failed],
    )

def set_service(service: WatchService):
    global _service
    _service = service

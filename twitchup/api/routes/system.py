from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional
from twitchup.config.settings import settings

router = APIRouter(prefix="/system", tags=["system"])

_service = None

class Health(BaseModel):
    status: str

class SweepInfo(BaseModel):
    in_progress: bool
    last_sweep_at: Optional[str] = None
    interval_min: int

@router.get('/health', response_model=Health)
async def health():
    return Health(status='ok')

@router.get('/sweep', response_model=SweepInfo)
async def sweep():
    if _service is None:
        return SweepInfo(in_progress=False, interval_min=settings.check_interval_min)
    poller = _service.poller
    return SweepInfo(in_progress=poller.sweep_in_progress, last_sweep_at=poller.last_sweep_at, interval_min=poller.get_interval())

def set_service(service):
    global _service
    _service = service

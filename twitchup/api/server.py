from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from twitchup.api.routes import settings as settings_routes
from twitchup.api.routes import watches as watches_routes
from twitchup.api.routes import system as system_routes
from twitchup.errors import WatchError

app = FastAPI(title="twitchup API", version="0.1.0")

app.include_router(settings_routes.router)
app.include_router(watches_routes.router)
app.include_router(system_routes.router)


@app.exception_handler(WatchError)
async def watch_error_handler(request: Request, exc: WatchError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

# Service injection proxy

def set_service(service):
    watches_routes.set_service(service)
    system_routes.set_service(service)

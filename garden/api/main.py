"""
FastAPI app assembly: store lifespan, the command endpoint and error mapping.

Every command from ``garden.api.commands`` is reachable as
``POST /commands/{name}`` with a JSON object of arguments. Failures come back
as ``{"code", "message", "entityId"}``.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI
from starlette.requests import Request
from starlette.responses import JSONResponse

from garden import __version__
from garden.api.commands import COMMANDS, dispatch
from garden.api.deps import get_service
from garden.db.database import Database
from garden.errors import ErrorCode, GardenError
from garden.services import GardenService, build_garden_service
from garden.utils.settings import get_settings

# Configure logging
LOG_LEVEL_NAME = get_settings().log_level
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

_STATUS_BY_CODE = {
    ErrorCode.CHANNEL_NOT_FOUND: 404,
    ErrorCode.BLOCK_NOT_FOUND: 404,
    ErrorCode.CONNECTION_NOT_FOUND: 404,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.DUPLICATE_ERROR: 409,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def status_for(code: ErrorCode) -> int:
    return _STATUS_BY_CODE.get(code, 500)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = Database()
    try:
        db.migrate()
        app.state.database = db
        app.state.service = build_garden_service(db)
        yield
    finally:
        app.state.service = None
        app.state.database = None
        db.close()


app = FastAPI(
    title="Garden Service",
    description="Channels of ordered content blocks, driven by named commands.",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(GardenError)
async def garden_error_handler(request: Request, exc: GardenError):
    if exc.code in (ErrorCode.VALIDATION_ERROR, ErrorCode.DUPLICATE_ERROR):
        logger.info("command rejected: %s %s", exc.code.value, exc.message)
    elif status_for(exc.code) >= 500:
        logger.error("command failed: %s %s", exc.code.value, exc.message)
    return JSONResponse(status_code=status_for(exc.code), content=exc.to_dict())


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "garden"}


@app.get("/commands")
def list_commands():
    return sorted(COMMANDS)


@app.post("/commands/{name}")
def run_command(
    name: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    service: GardenService = Depends(get_service),
):
    return dispatch(service, name, payload)

"""
API dependency helpers.

The store is opened once by the app lifespan and kept on ``app.state``;
routes receive a ``GardenService`` bound to it. Tests override
``get_service``.
"""
from fastapi import HTTPException, Request, status

from garden.db.database import Database
from garden.services import GardenService, build_garden_service


def get_database(request: Request) -> Database:
    db = getattr(request.app.state, "database", None)
    if db is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Store is not open")
    return db


def get_service(request: Request) -> GardenService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        service = build_garden_service(get_database(request))
        request.app.state.service = service
    return service

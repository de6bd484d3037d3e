# app/api/v1/api.py

from fastapi import APIRouter
from app.api.v1.endpoints import (
    offers,
    collaborations,
    internals,
)

# This is the main router for the v1 API.
# It includes the specific endpoint routers.
api_router = APIRouter()

api_router.include_router(offers.router)
api_router.include_router(collaborations.router)
api_router.include_router(internals.router)

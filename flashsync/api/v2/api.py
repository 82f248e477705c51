from fastapi import APIRouter
from .endpoints import (
    cards_router,
    scopes_router,
    stats_router,
)

api_router = APIRouter()

api_router.include_router(cards_router.router, prefix="/cards", tags=["Cards"])
api_router.include_router(scopes_router.router, prefix="/scopes", tags=["Scopes"])
api_router.include_router(stats_router.router, prefix="/stats", tags=["Stats"])

"""
API v1 router
API v1 路由配置
"""

from fastapi import APIRouter

# Import route modules
from guesswho.api.v1.endpoints import auth, games, health, rooms, websocket, word_packs

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["rooms"])
api_router.include_router(games.router, prefix="/rooms", tags=["games"])
api_router.include_router(word_packs.router, prefix="/wordpacks", tags=["word-packs"])
api_router.include_router(websocket.router, prefix="/ws", tags=["websocket"])

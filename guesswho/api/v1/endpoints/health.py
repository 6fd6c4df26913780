"""
Health check endpoints
健康检查端点
"""

from fastapi import APIRouter, Request

from guesswho.core.redis_client import redis_health_check
from guesswho.websocket.connection_manager import connection_manager

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint
    基础健康检查端点
    """
    return {
        "status": "healthy",
        "service": "guesswho",
        "version": "1.0.0"
    }


@router.get("/health/detailed")
async def detailed_health_check(request: Request):
    """数据库、Redis 与 WebSocket 连接状态"""
    db_manager = getattr(request.app.state, "db_manager", None)
    database_ok = bool(db_manager) and await db_manager.health_check()
    redis_status = await redis_health_check()

    overall = "healthy" if database_ok and redis_status["status"] != "unhealthy" else "degraded"
    return {
        "status": overall,
        "database": {"status": "healthy" if database_ok else "unhealthy"},
        "redis": redis_status,
        "websocket": {"connections": connection_manager.get_connection_count()},
    }

"""
API 라우터 모듈
"""

from .health import router as health_router
from .sidecar import router as sidecar_router

__all__ = ["sidecar_router", "health_router"]

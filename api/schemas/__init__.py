"""
API 요청/응답 스키마 모듈
"""

from .request import UpdateConfigRequest
from .response import (
    ErrorResponse,
    HealthResponse,
    LastUpdateTsResponse,
    RuntimeInfoResponse,
    SuccessResponse,
)

__all__ = [
    # Request
    "UpdateConfigRequest",
    # Response
    "SuccessResponse",
    "RuntimeInfoResponse",
    "LastUpdateTsResponse",
    "ErrorResponse",
    "HealthResponse",
]

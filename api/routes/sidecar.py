"""
사이드카 API 라우터

설정 변경, 설정 초기화, 런타임 상태 조회를 제공합니다.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from lib.errors import (
    ConfigurationError,
    ErrorClassifier,
    FileIOError,
    ReloadError,
    SidecarError,
    ValidationError,
    ValidationErrors,
)
from sidecar import ReloadChannel, SidecarService

from ..dependencies import get_reload_channel, get_sidecar_service
from ..schemas.request import UpdateConfigRequest
from ..schemas.response import (
    ErrorResponse,
    LastUpdateTsResponse,
    RuntimeInfoResponse,
    SuccessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/-/sidecar", tags=["Sidecar"])

_error_responses = {
    400: {"model": ErrorResponse, "description": "입력 검증 실패"},
    500: {"model": ErrorResponse, "description": "파일 또는 reload 실패"},
    503: {"model": ErrorResponse, "description": "설정 파일 경로 미지정"},
}


def _to_http_error(action: str, error: SidecarError) -> HTTPException:
    """사이드카 예외 → HTTP 에러 변환"""
    details: dict = {"category": ErrorClassifier.classify(error).value}

    if isinstance(error, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
        code = "VALIDATION_ERROR"
        if isinstance(error, ValidationErrors):
            details["violations"] = [str(e) for e in error]
    elif isinstance(error, ConfigurationError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        code = "CONFIG_UNAVAILABLE"
    elif isinstance(error, ReloadError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        code = "RELOAD_FAILED"
    elif isinstance(error, FileIOError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        code = "IO_ERROR"
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        code = "INTERNAL_ERROR"

    logger.warning(f"[API] {action} 실패: {ErrorClassifier.format_message(error)}")
    return HTTPException(
        status_code=status_code,
        detail={
            "error": code,
            "message": f"{action} error: {error}",
            "details": details,
        },
    )


@router.put(
    "/config",
    response_model=SuccessResponse,
    responses=_error_responses,
    summary="설정 변경",
    description="설정 파일을 교체하고 익스포터에 reload 를 지시합니다. 실패 시 이전 파일로 복원합니다.",
)
async def update_config(
    request: UpdateConfigRequest,
    sidecar_service: SidecarService = Depends(get_sidecar_service),
    reload_ch: ReloadChannel = Depends(get_reload_channel),
) -> SuccessResponse:
    """설정 변경

    Args:
        request: zone_id, yaml

    Returns:
        SuccessResponse: 성공 응답
    """
    try:
        await sidecar_service.update_config_reload(request.to_cmd(), reload_ch)
    except SidecarError as e:
        raise _to_http_error("Update configuration", e)

    logger.info("[API] Completed refreshing configuration")
    return SuccessResponse()


@router.delete(
    "/config",
    response_model=SuccessResponse,
    responses=_error_responses,
    summary="설정 초기화",
    description="설정 파일을 비우고 zone 바인딩과 변경 시각을 초기화합니다.",
)
async def reset_config(
    zone_id: str = Query("", description="현재 바인딩된 zone ID"),
    sidecar_service: SidecarService = Depends(get_sidecar_service),
    reload_ch: ReloadChannel = Depends(get_reload_channel),
) -> SuccessResponse:
    """설정 초기화"""
    try:
        await sidecar_service.reset_config_reload(zone_id, reload_ch)
    except SidecarError as e:
        raise _to_http_error("Reset configuration", e)

    logger.info("[API] Completed resetting configuration")
    return SuccessResponse()


@router.get(
    "/runtimeinfo",
    response_model=RuntimeInfoResponse,
    summary="런타임 상태 조회",
    description="바인딩된 zone ID 와 마지막 설정 변경 시각을 조회합니다.",
)
async def get_runtime_info(
    sidecar_service: SidecarService = Depends(get_sidecar_service),
) -> RuntimeInfoResponse:
    """런타임 상태 조회"""
    info = await sidecar_service.get_runtime_info()
    return RuntimeInfoResponse.from_runtime_info(info)


@router.get(
    "/last-update-ts",
    response_model=LastUpdateTsResponse,
    summary="마지막 변경 시각 조회",
)
async def get_last_update_ts(
    sidecar_service: SidecarService = Depends(get_sidecar_service),
) -> LastUpdateTsResponse:
    """마지막 설정 변경 시각 (Unix 밀리초)"""
    info = await sidecar_service.get_runtime_info()
    return LastUpdateTsResponse(last_update_ts=info.last_update_ms)

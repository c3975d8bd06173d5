"""
헬스체크 API 라우터

서버 상태, reload 리스너 상태, 바인딩 정보를 반환합니다.
"""

import time
from typing import Any

from fastapi import APIRouter, Depends

from sidecar import SidecarService

from ..dependencies import get_config_store, get_reload_listener, get_sidecar_service
from ..schemas.response import HealthResponse

router = APIRouter(tags=["Health"])

# 서버 시작 시각
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="헬스체크",
    description="서버 상태 및 reload 리스너 상태를 반환합니다.",
)
async def health_check(
    sidecar_service: SidecarService = Depends(get_sidecar_service),
    config_store: Any = Depends(get_config_store),
    reload_listener: Any = Depends(get_reload_listener),
) -> HealthResponse:
    """서버 헬스체크

    Returns:
        HealthResponse: 서버 상태 정보
    """
    # 가동 시간 계산
    uptime = int(time.time() - _start_time)

    listener_status = "unknown"
    if reload_listener is not None:
        listener_status = "running" if reload_listener.running else "stopped"

    reload_count = 0
    if config_store is not None:
        reload_count = config_store.reload_count

    info = await sidecar_service.get_runtime_info()

    return HealthResponse(
        status="ok",
        brand=info.brand,
        zone_id=info.zone_id,
        config_file=sidecar_service.config_file,
        reload_listener=listener_status,
        reload_count=reload_count,
        uptime_seconds=uptime,
    )


@router.get(
    "/health/live",
    summary="Liveness 체크",
    description="서버가 살아있는지 확인합니다. (Kubernetes liveness probe용)",
)
async def liveness() -> dict[str, str]:
    """Liveness 체크 (경량)"""
    return {"status": "ok"}


@router.get(
    "/health/ready",
    summary="Readiness 체크",
    description="설정 변경 요청을 처리할 준비가 되었는지 확인합니다. (Kubernetes readiness probe용)",
)
async def readiness(
    sidecar_service: SidecarService = Depends(get_sidecar_service),
    reload_listener: Any = Depends(get_reload_listener),
) -> dict[str, str]:
    """Readiness 체크

    설정 파일 경로가 있고 reload 리스너가 동작 중이면 ready 반환
    """
    if not sidecar_service.config_file.strip():
        return {"status": "not_ready", "error": "no config file path provided"}
    if reload_listener is None or not reload_listener.running:
        return {"status": "not_ready", "error": "reload listener not running"}
    return {"status": "ready"}

"""
FastAPI 앱 정의 및 라우터 통합

익스포터 설정 사이드카 API 서버의 메인 모듈입니다.
create_app() 이 컴포지션 루트로서 SidecarService, reload 채널,
ConfigStore, ReloadListener 를 한 번씩 생성해 app.state 에 보관합니다.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.config_manager import ConfigStore, ReloadListener
from lib.errors import FileIOError
from sidecar import SidecarService, new_reload_channel

from .dependencies import Settings, get_settings
from .routes import health_router, sidecar_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """앱 라이프사이클 관리

    시작 시:
        - 중단된 트랜잭션 복원
        - 설정 파일 최초 로드
        - reload 리스너 시작

    종료 시:
        - reload 리스너 중지
    """
    sidecar_service: SidecarService = app.state.sidecar_service
    config_store: ConfigStore | None = app.state.config_store
    reload_listener: ReloadListener | None = app.state.reload_listener

    # 중단된 트랜잭션 복원
    try:
        if await sidecar_service.recover_pending_transaction():
            logger.warning("[Server] 중단된 설정 변경을 이전 파일로 복원했습니다")
    except FileIOError as e:
        logger.error(f"[Server] 백업 파일 복원 실패: {e}")

    # 설정 최초 로드
    if config_store is not None:
        try:
            await config_store.reload()
            logger.info(f"[Server] ConfigStore 초기화 완료: {config_store.config_path}")
        except Exception as e:
            logger.warning(f"[Server] ConfigStore 초기화 실패: {e}")
    else:
        logger.warning("[Server] 설정 파일 경로 없음 - 설정 변경 기능 비활성화")

    if reload_listener is not None:
        reload_listener.start()

    yield

    # 리소스 정리
    if reload_listener is not None:
        await reload_listener.stop()
    logger.info("[Server] 서버 종료")


def create_app(
    title: str = "Exporter Config Sidecar API",
    version: str = "1.0.0",
    debug: bool = False,
    settings: Settings | None = None,
    sidecar_service: SidecarService | None = None,
    config_store: ConfigStore | None = None,
) -> FastAPI:
    """FastAPI 앱 생성

    Args:
        title: API 제목
        version: API 버전
        debug: 디버그 모드
        settings: 앱 설정 (None 이면 환경변수에서 로드)
        sidecar_service: 주입할 SidecarService (None 이면 설정으로 생성)
        config_store: 주입할 ConfigStore (None 이면 설정으로 생성)

    Returns:
        FastAPI 앱 인스턴스
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=title,
        version=version,
        description="""
# 익스포터 설정 사이드카 API

외부 컨트롤러가 익스포터 설정을 교체하고 reload 를 지시합니다.

## 주요 기능

- **설정 변경**: PUT /-/sidecar/config
- **설정 초기화**: DELETE /-/sidecar/config?zone_id=...
- **런타임 상태 조회**: GET /-/sidecar/runtimeinfo

설정 변경은 트랜잭션으로 처리됩니다. reload 가 실패하면 이전 파일로 복원됩니다.
        """,
        debug=debug or settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # 컴포지션 루트
    if sidecar_service is None:
        sidecar_service = SidecarService(
            settings.config_file,
            brand=settings.brand,
            reload_timeout=settings.reload_timeout,
        )
    if config_store is None and sidecar_service.config_file.strip():
        config_store = ConfigStore(sidecar_service.config_file, sidecar_service.parser)

    reload_ch = new_reload_channel()
    app.state.sidecar_service = sidecar_service
    app.state.reload_ch = reload_ch
    app.state.config_store = config_store
    app.state.reload_listener = (
        ReloadListener(config_store, reload_ch) if config_store is not None else None
    )

    # 라우터 등록
    app.include_router(health_router)  # /health
    app.include_router(sidecar_router)  # /-/sidecar

    # 글로벌 예외 핸들러
    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """글로벌 예외 핸들러"""
        logger.exception(f"[Server] 처리되지 않은 예외: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_ERROR",
                "message": "Internal server error",
                "details": str(exc) if settings.debug else None,
            },
        )

    return app


# 기본 앱 인스턴스
app = create_app()


# 직접 실행 시
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.server:app",
        host=settings.api_host,
        port=settings.api_port,
    )

"""
FastAPI 의존성 주입 모듈

SidecarService, reload 채널, ConfigStore, 환경 설정 의존성을 관리합니다.
인스턴스는 create_app() 이 생성해 app.state 에 보관합니다.
"""

import os
from typing import Any

from fastapi import Request

from lib.types import DEFAULT_BRAND
from sidecar import ReloadChannel, SidecarService


# ============================================================================
# 사이드카 의존성
# ============================================================================
def get_sidecar_service(request: Request) -> SidecarService:
    """SidecarService 의존성"""
    return request.app.state.sidecar_service


def get_reload_channel(request: Request) -> ReloadChannel:
    """reload 채널 의존성"""
    return request.app.state.reload_ch


def get_config_store(request: Request) -> Any:
    """ConfigStore 의존성

    Returns:
        ConfigStore 인스턴스 또는 None
    """
    return getattr(request.app.state, "config_store", None)


def get_reload_listener(request: Request) -> Any:
    """ReloadListener 의존성"""
    return getattr(request.app.state, "reload_listener", None)


# ============================================================================
# 환경 설정 의존성
# ============================================================================
class Settings:
    """앱 설정 클래스"""

    def __init__(self):
        self.env = os.getenv("ENV", "dev")
        self.debug = self.env == "dev"

        # API 서버 설정
        self.api_host = os.getenv("API_HOST", "0.0.0.0")
        self.api_port = int(os.getenv("API_PORT", "9116"))

        # 사이드카 설정
        self.config_file = os.getenv("SIDECAR_CONFIG_FILE", "")
        self.brand = os.getenv("SIDECAR_BRAND", DEFAULT_BRAND)

        reload_timeout = os.getenv("SIDECAR_RELOAD_TIMEOUT", "")
        self.reload_timeout: float | None = (
            float(reload_timeout) if reload_timeout.strip() else None
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """앱 설정 의존성 (싱글톤)

    Returns:
        Settings 인스턴스
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """환경변수 변경 후 설정 다시 읽기 (테스트용)"""
    global _settings
    _settings = None

"""
Pytest 설정 및 공통 Fixture
"""

from pathlib import Path

import pytest

from sidecar import ReloadChannel, SidecarService, new_reload_channel


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """이전 내용 "old" 가 들어 있는 설정 파일"""
    path = tmp_path / "snmp.yml"
    path.write_text("old", encoding="utf-8")
    return path


@pytest.fixture
def sidecar_service(config_file: Path) -> SidecarService:
    """테스트용 SidecarService (미바인딩 상태)"""
    return SidecarService(str(config_file))


@pytest.fixture
def reload_ch() -> ReloadChannel:
    """테스트용 reload 채널"""
    return new_reload_channel()

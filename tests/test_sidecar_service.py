"""
SidecarService 설정 변경 트랜잭션 테스트

검증 실패, 쓰기 실패, reload 실패, 타임아웃, 취소 시
설정 파일과 런타임 상태가 변경 전과 동일한지 확인합니다.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from lib.errors import (
    ConfigurationError,
    FileIOError,
    ReloadError,
    ValidationError,
    ValidationErrors,
)
from lib.fs_utils import ConfigFileUtil
from lib.types import DEFAULT_BRAND, RuntimeInfo, UpdateConfigCmd
from sidecar import SidecarService, new_reload_channel
from tests.sample_data import (
    BAD_SYNTAX_YAML,
    FIRST_YAML,
    NEW_YAML,
    NEWER_YAML,
    SECOND_YAML,
    UNKNOWN_FIELD_YAML,
    VALID_CONFIG_YAML,
    backup_of,
    read_text,
    start_reload_responder,
)


class TestRuntimeInfo:
    """런타임 상태 조회 테스트"""

    @pytest.mark.asyncio
    async def test_initial_state_unbound(self, sidecar_service):
        """초기 상태: 미바인딩, 변경 이력 없음"""
        info = await sidecar_service.get_runtime_info()

        assert info == RuntimeInfo(brand=DEFAULT_BRAND, zone_id="", last_update_ts=None)
        assert not info.is_bound
        assert info.last_update_ms == 0

    @pytest.mark.asyncio
    async def test_repeated_reads_identical(self, sidecar_service):
        """변경 없이 여러 번 조회하면 같은 스냅샷"""
        snapshots = [await sidecar_service.get_runtime_info() for _ in range(5)]

        assert all(s == snapshots[0] for s in snapshots)

    @pytest.mark.asyncio
    async def test_custom_brand(self, config_file):
        """brand 지정"""
        service = SidecarService(str(config_file), brand="blackbox-exporter-mod")
        info = await service.get_runtime_info()

        assert info.brand == "blackbox-exporter-mod"


class TestUpdateConfigReload:
    """설정 변경 성공 경로 테스트"""

    @pytest.mark.asyncio
    async def test_update_success(self, sidecar_service, config_file, reload_ch):
        """성공: 파일 교체, zone 바인딩, 시각 갱신, 백업 없음"""
        before = datetime.now(timezone.utc)
        responder = start_reload_responder(reload_ch)

        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="default", yaml=VALID_CONFIG_YAML), reload_ch
        )
        await responder

        info = await sidecar_service.get_runtime_info()
        assert info.zone_id == "default"
        assert info.last_update_ts is not None
        assert info.last_update_ts >= before
        assert info.last_update_ms > 0

        assert read_text(config_file) == VALID_CONFIG_YAML
        assert not backup_of(config_file).exists()

    @pytest.mark.asyncio
    async def test_zone_id_is_trimmed(self, sidecar_service, reload_ch):
        """zone_id 앞뒤 공백 제거 후 바인딩"""
        start_reload_responder(reload_ch)

        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="  zone-a  ", yaml=VALID_CONFIG_YAML), reload_ch
        )

        info = await sidecar_service.get_runtime_info()
        assert info.zone_id == "zone-a"

    @pytest.mark.asyncio
    async def test_same_zone_update_again(self, sidecar_service, config_file, reload_ch):
        """같은 zone 으로 재변경 가능"""
        start_reload_responder(reload_ch, count=2)

        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="z1", yaml="auths: {}\n"), reload_ch
        )
        first = await sidecar_service.get_runtime_info()

        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
        )
        second = await sidecar_service.get_runtime_info()

        assert second.zone_id == "z1"
        assert second.last_update_ts >= first.last_update_ts
        assert read_text(config_file) == VALID_CONFIG_YAML

    @pytest.mark.asyncio
    async def test_missing_config_file_created(self, tmp_path, reload_ch):
        """설정 파일이 없던 경우 새로 생성"""
        config_file = tmp_path / "custom.yml"
        service = SidecarService(str(config_file))
        start_reload_responder(reload_ch)

        await service.update_config_reload(
            UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
        )

        assert read_text(config_file) == VALID_CONFIG_YAML
        assert not backup_of(config_file).exists()

    @pytest.mark.asyncio
    async def test_scenario_old_new_newer(self, sidecar_service, config_file, reload_ch):
        """old → z1 "new" 성공 → z2 "newer" 거부"""
        start_reload_responder(reload_ch)

        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="z1", yaml=NEW_YAML), reload_ch
        )
        assert read_text(config_file) == NEW_YAML
        bound = await sidecar_service.get_runtime_info()
        assert bound.zone_id == "z1"
        assert bound.last_update_ms > 0

        with pytest.raises(ValidationError):
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z2", yaml=NEWER_YAML), reload_ch
            )

        assert read_text(config_file) == NEW_YAML
        assert await sidecar_service.get_runtime_info() == bound


class TestUpdateValidation:
    """검증 실패 테스트 (잠금/파일/채널 미사용)"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "zone_id,yaml_text,expected",
        [
            ("", VALID_CONFIG_YAML, ["ZoneId must not be blank"]),
            ("   ", VALID_CONFIG_YAML, ["ZoneId must not be blank"]),
            ("z1", "", ["Yaml must not be blank"]),
            ("z1", "  \n ", ["Yaml must not be blank"]),
            ("", "", ["ZoneId must not be blank", "Yaml must not be blank"]),
        ],
    )
    async def test_blank_inputs(
        self, sidecar_service, config_file, reload_ch, zone_id, yaml_text, expected
    ):
        """공백 zone_id / yaml 은 모든 위반을 모아서 반환"""
        with pytest.raises(ValidationErrors) as exc_info:
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id=zone_id, yaml=yaml_text), reload_ch
            )

        assert [str(e) for e in exc_info.value] == expected
        assert read_text(config_file) == "old"
        assert reload_ch.empty()
        assert await sidecar_service.get_runtime_info() == RuntimeInfo()

    @pytest.mark.asyncio
    async def test_bad_yaml_syntax(self, sidecar_service, config_file, reload_ch):
        """YAML 문법 오류"""
        with pytest.raises(ValidationErrors) as exc_info:
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=BAD_SYNTAX_YAML), reload_ch
            )

        violations = [str(e) for e in exc_info.value]
        assert len(violations) == 1
        assert violations[0].startswith("Invalid Yaml: ")
        assert read_text(config_file) == "old"
        assert reload_ch.empty()

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, sidecar_service, config_file, reload_ch):
        """strict 모드: 알 수 없는 필드"""
        with pytest.raises(ValidationErrors):
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=UNKNOWN_FIELD_YAML), reload_ch
            )

        assert read_text(config_file) == "old"

    @pytest.mark.asyncio
    async def test_blank_zone_and_bad_yaml_collected(self, sidecar_service, reload_ch):
        """zone_id 공백 + YAML 오류 동시 보고"""
        with pytest.raises(ValidationErrors) as exc_info:
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="", yaml=BAD_SYNTAX_YAML), reload_ch
            )

        assert len(exc_info.value) == 2

    @pytest.mark.asyncio
    async def test_no_config_file_path(self, reload_ch):
        """설정 파일 경로 미지정"""
        service = SidecarService("")

        with pytest.raises(ConfigurationError, match="no config file path provided"):
            await service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
            )

        with pytest.raises(ConfigurationError):
            await service.reset_config_reload("z1", reload_ch)

        assert reload_ch.empty()


class TestUpdateRollback:
    """실패 시 복원 테스트"""

    @pytest.mark.asyncio
    async def test_reload_error_restores(self, sidecar_service, config_file, reload_ch):
        """reload 에러 응답 → 파일/상태 복원"""
        before = await sidecar_service.get_runtime_info()
        start_reload_responder(reload_ch, error=RuntimeError("on purpose"))

        with pytest.raises(ReloadError, match="on purpose") as exc_info:
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
            )

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert read_text(config_file) == "old"
        assert not backup_of(config_file).exists()
        assert await sidecar_service.get_runtime_info() == before

    @pytest.mark.asyncio
    async def test_reload_error_after_bind_keeps_binding(
        self, sidecar_service, config_file, reload_ch
    ):
        """바인딩 후 reload 실패 → 이전 바인딩/파일 유지"""
        start_reload_responder(reload_ch)
        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="z1", yaml=NEW_YAML), reload_ch
        )
        bound = await sidecar_service.get_runtime_info()

        start_reload_responder(reload_ch, error=RuntimeError("reload failed"))
        with pytest.raises(ReloadError):
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=NEWER_YAML), reload_ch
            )

        assert read_text(config_file) == NEW_YAML
        assert await sidecar_service.get_runtime_info() == bound

    @pytest.mark.asyncio
    async def test_reload_error_without_origin_removes_file(self, tmp_path, reload_ch):
        """원본이 없던 경우 reload 실패 → 새 파일 제거"""
        config_file = tmp_path / "custom.yml"
        service = SidecarService(str(config_file))
        start_reload_responder(reload_ch, error=RuntimeError("on purpose"))

        with pytest.raises(ReloadError):
            await service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
            )

        assert not config_file.exists()
        assert not backup_of(config_file).exists()

    @pytest.mark.asyncio
    async def test_write_error_restores(self, sidecar_service, config_file, reload_ch):
        """쓰기 실패 → 복원, reload 미요청"""
        with patch.object(
            ConfigFileUtil, "write", side_effect=FileIOError("disk full")
        ):
            with pytest.raises(FileIOError, match="disk full"):
                await sidecar_service.update_config_reload(
                    UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
                )

        assert read_text(config_file) == "old"
        assert not backup_of(config_file).exists()
        assert reload_ch.empty()
        assert await sidecar_service.get_runtime_info() == RuntimeInfo()

    @pytest.mark.asyncio
    async def test_backup_error_propagates(self, sidecar_service, config_file, reload_ch):
        """백업 실패 → 즉시 실패, 파일 그대로"""
        with patch.object(
            ConfigFileUtil, "backup", side_effect=FileIOError("rename failed")
        ):
            with pytest.raises(FileIOError, match="rename failed"):
                await sidecar_service.update_config_reload(
                    UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
                )

        assert read_text(config_file) == "old"
        assert reload_ch.empty()

    @pytest.mark.asyncio
    async def test_restore_failure_does_not_mask_error(
        self, sidecar_service, reload_ch, caplog
    ):
        """복원 실패는 경고 로그만, 원래 에러 유지"""
        start_reload_responder(reload_ch, error=RuntimeError("on purpose"))

        with caplog.at_level(logging.WARNING, logger="sidecar.service"):
            with patch.object(
                ConfigFileUtil, "rollback", side_effect=FileIOError("restore boom")
            ):
                with pytest.raises(ReloadError):
                    await sidecar_service.update_config_reload(
                        UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
                    )

        assert "restore boom" in caplog.text
        assert await sidecar_service.get_runtime_info() == RuntimeInfo()

    @pytest.mark.asyncio
    async def test_clean_backup_failure_still_commits(
        self, sidecar_service, reload_ch, caplog
    ):
        """백업 삭제 실패는 경고만, 변경은 커밋"""
        start_reload_responder(reload_ch)

        with caplog.at_level(logging.WARNING, logger="sidecar.service"):
            with patch.object(
                ConfigFileUtil, "clean_backup", side_effect=FileIOError("remove failed")
            ):
                await sidecar_service.update_config_reload(
                    UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
                )

        assert "remove failed" in caplog.text
        assert (await sidecar_service.get_runtime_info()).zone_id == "z1"


class TestReloadTimeoutAndCancel:
    """reload 대기 타임아웃/취소 테스트"""

    @pytest.mark.asyncio
    async def test_timeout_error_reply_keeps_cause(
        self, sidecar_service, config_file, reload_ch
    ):
        """TimeoutError 응답은 대기 타임아웃과 구분"""
        start_reload_responder(reload_ch, error=TimeoutError("exporter busy"))

        with pytest.raises(ReloadError) as exc_info:
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
            )

        assert "exporter busy" in str(exc_info.value)
        assert "no reply" not in str(exc_info.value)
        assert read_text(config_file) == "old"

    @pytest.mark.asyncio
    async def test_timeout_restores(self, sidecar_service, config_file, reload_ch):
        """응답 없음 + 타임아웃 → 복원 후 ReloadError"""
        with pytest.raises(ReloadError, match="no reply"):
            await sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML),
                reload_ch,
                timeout=0.05,
            )

        assert read_text(config_file) == "old"
        assert not backup_of(config_file).exists()
        assert await sidecar_service.get_runtime_info() == RuntimeInfo()

        # 남아 있는 응답 슬롯은 취소 상태
        stale = reload_ch.get_nowait()
        assert stale.cancelled()

    @pytest.mark.asyncio
    async def test_default_timeout_from_constructor(self, config_file, reload_ch):
        """생성자 기본 타임아웃 적용"""
        service = SidecarService(str(config_file), reload_timeout=0.05)

        with pytest.raises(ReloadError):
            await service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
            )

        assert read_text(config_file) == "old"

    @pytest.mark.asyncio
    async def test_cancel_restores(self, sidecar_service, config_file, reload_ch):
        """호출 태스크 취소 → 복원 후 취소 전파"""
        task = asyncio.create_task(
            sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=VALID_CONFIG_YAML), reload_ch
            )
        )
        reply = await reload_ch.get()
        assert read_text(config_file) == VALID_CONFIG_YAML

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert reply.cancelled()
        assert read_text(config_file) == "old"
        assert not backup_of(config_file).exists()
        assert await sidecar_service.get_runtime_info() == RuntimeInfo()


class TestSerialization:
    """동시 요청 직렬화 테스트"""

    @pytest.mark.asyncio
    async def test_second_update_waits_for_first(
        self, sidecar_service, config_file, reload_ch
    ):
        """첫 트랜잭션이 끝날 때까지 두 번째는 시작하지 않음"""
        first = asyncio.create_task(
            sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=FIRST_YAML), reload_ch
            )
        )
        first_reply = await reload_ch.get()

        second = asyncio.create_task(
            sidecar_service.update_config_reload(
                UpdateConfigCmd(zone_id="z1", yaml=SECOND_YAML), reload_ch
            )
        )
        reader = asyncio.create_task(sidecar_service.get_runtime_info())
        await asyncio.sleep(0.05)

        # 두 번째 요청과 조회는 잠금 대기 중
        assert reload_ch.empty()
        assert not reader.done()
        assert read_text(config_file) == FIRST_YAML

        first_reply.set_result(None)
        await first

        second_reply = await reload_ch.get()
        second_reply.set_result(None)
        await second

        # 조회는 첫 번째 커밋 이후 상태를 봄
        assert (await reader).zone_id == "z1"
        assert read_text(config_file) == SECOND_YAML


class TestResetConfigReload:
    """설정 초기화 테스트"""

    @pytest.mark.asyncio
    async def test_reset_after_bind(self, sidecar_service, config_file, reload_ch):
        """바인딩 후 초기화 → 빈 파일, 바인딩 해제"""
        start_reload_responder(reload_ch, count=2)
        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="z1", yaml=NEW_YAML), reload_ch
        )

        await sidecar_service.reset_config_reload("z1", reload_ch)

        assert read_text(config_file) == ""
        assert not backup_of(config_file).exists()
        info = await sidecar_service.get_runtime_info()
        assert info.zone_id == ""
        assert info.last_update_ts is None

    @pytest.mark.asyncio
    async def test_reset_unbound_accepts_any_zone(self, sidecar_service, config_file, reload_ch):
        """미바인딩 상태에서는 어떤 zone 으로도 초기화 가능"""
        start_reload_responder(reload_ch)

        await sidecar_service.reset_config_reload("anything", reload_ch)

        assert read_text(config_file) == ""
        assert await sidecar_service.get_runtime_info() == RuntimeInfo()

    @pytest.mark.asyncio
    async def test_reset_zone_mismatch(self, sidecar_service, config_file, reload_ch):
        """다른 zone 으로 초기화 시도 → 거부"""
        start_reload_responder(reload_ch)
        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="z1", yaml=NEW_YAML), reload_ch
        )
        bound = await sidecar_service.get_runtime_info()

        with pytest.raises(ValidationError, match="mismatch"):
            await sidecar_service.reset_config_reload("z2", reload_ch)

        assert read_text(config_file) == NEW_YAML
        assert await sidecar_service.get_runtime_info() == bound
        assert reload_ch.empty()

    @pytest.mark.asyncio
    async def test_reset_blank_zone(self, sidecar_service, config_file, reload_ch):
        """공백 zone_id → 검증 실패"""
        with pytest.raises(ValidationError, match="ZoneId must not be blank"):
            await sidecar_service.reset_config_reload("  ", reload_ch)

        assert read_text(config_file) == "old"
        assert reload_ch.empty()

    @pytest.mark.asyncio
    async def test_reset_reload_error_restores(self, sidecar_service, config_file, reload_ch):
        """초기화 reload 실패 → 이전 파일/바인딩 유지"""
        start_reload_responder(reload_ch)
        await sidecar_service.update_config_reload(
            UpdateConfigCmd(zone_id="z1", yaml=NEW_YAML), reload_ch
        )
        bound = await sidecar_service.get_runtime_info()

        start_reload_responder(reload_ch, error=RuntimeError("on purpose"))
        with pytest.raises(ReloadError):
            await sidecar_service.reset_config_reload("z1", reload_ch)

        assert read_text(config_file) == NEW_YAML
        assert await sidecar_service.get_runtime_info() == bound


class TestRecoverPendingTransaction:
    """중단된 트랜잭션 복원 테스트"""

    @pytest.mark.asyncio
    async def test_recover_restores_backup(self, sidecar_service, config_file):
        """남은 백업 파일로 복원"""
        backup_of(config_file).write_text("committed", encoding="utf-8")
        config_file.write_text("partial", encoding="utf-8")

        assert await sidecar_service.recover_pending_transaction() is True

        assert read_text(config_file) == "committed"
        assert not backup_of(config_file).exists()

    @pytest.mark.asyncio
    async def test_recover_noop_without_backup(self, sidecar_service, config_file):
        """백업 파일이 없으면 아무 일도 없음"""
        assert await sidecar_service.recover_pending_transaction() is False
        assert read_text(config_file) == "old"

    @pytest.mark.asyncio
    async def test_recover_without_config_path(self):
        """설정 파일 경로 미지정이면 건너뜀"""
        assert await SidecarService("").recover_pending_transaction() is False


@pytest.mark.asyncio
async def test_reload_channel_not_stored(config_file):
    """reload 채널은 호출마다 전달 (서비스가 보관하지 않음)"""
    service = SidecarService(str(config_file))
    ch_a = new_reload_channel()
    ch_b = new_reload_channel()
    start_reload_responder(ch_a)
    start_reload_responder(ch_b)

    await service.update_config_reload(UpdateConfigCmd(zone_id="z1", yaml=FIRST_YAML), ch_a)
    await service.update_config_reload(UpdateConfigCmd(zone_id="z1", yaml=SECOND_YAML), ch_b)

    assert read_text(Path(config_file)) == SECOND_YAML

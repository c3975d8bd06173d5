"""
설정 변경 코디네이터

외부 컨트롤러가 보낸 설정을 검증하고 파일에 기록한 뒤 reload 를 지시합니다.
디스크의 설정 파일과 메모리의 바인딩 상태(RuntimeInfo)는
함께 바뀌거나 둘 다 바뀌지 않습니다.

트랜잭션 순서 (하나의 asyncio.Lock 으로 직렬화):
    검증 → 잠금 → zone 일치 확인 → 백업 → 쓰기 → reload 핸드셰이크
    → 성공: 백업 삭제 + 상태 커밋 / 실패: 복원 (상태는 그대로)

메모리 상태는 반드시 파일 커밋 이후에만 변경합니다.

사용법:
    ```python
    service = SidecarService("/etc/snmp_exporter/custom.yml")
    reload_ch = new_reload_channel()
    # 리스너가 reload_ch 를 먼저 소비하고 있어야 함

    await service.update_config_reload(
        UpdateConfigCmd(zone_id="z1", yaml=text), reload_ch, timeout=30
    )
    info = await service.get_runtime_info()
    ```
"""

import asyncio
import logging
from datetime import datetime, timezone

from lib.config_parser import ConfigParser, YamlConfigParser
from lib.errors import (
    ConfigurationError,
    ErrorClassifier,
    FileIOError,
    FileIOErrors,
    ValidationError,
)
from lib.fs_utils import ConfigFileUtil
from lib.types import DEFAULT_BRAND, RuntimeInfo, UpdateConfigCmd

from .reload import ReloadChannel, request_reload

logger = logging.getLogger(__name__)


class SidecarService:
    """설정 변경 코디네이터

    프로세스당 하나의 인스턴스를 컴포지션 루트(API 서버 lifespan)가 생성해
    보관합니다.
    """

    def __init__(
        self,
        config_file: str,
        parser: ConfigParser | None = None,
        brand: str = DEFAULT_BRAND,
        reload_timeout: float | None = None,
    ):
        """
        Args:
            config_file: 관리할 설정 파일 경로
            parser: strict 설정 파서 (기본: YamlConfigParser)
            brand: RuntimeInfo 에 표시할 식별 문자열
            reload_timeout: 기본 reload 응답 대기 한도 (초)
        """
        self.config_file = config_file
        self.parser = parser or YamlConfigParser()
        self.brand = brand
        self.reload_timeout = reload_timeout

        self._lock = asyncio.Lock()
        self._bound_zone_id: str = ""  # 현재 바인딩된 zoneId
        self._last_update_ts: datetime | None = None  # 마지막 설정 변경 시각

    async def get_runtime_info(self) -> RuntimeInfo:
        """현재 바인딩 상태 스냅샷"""
        async with self._lock:
            return RuntimeInfo(
                brand=self.brand,
                zone_id=self._bound_zone_id,
                last_update_ts=self._last_update_ts,
            )

    async def update_config_reload(
        self,
        cmd: UpdateConfigCmd,
        reload_ch: ReloadChannel,
        timeout: float | None = None,
    ) -> None:
        """설정 파일 교체 후 reload 지시

        Args:
            cmd: 설정 변경 명령
            reload_ch: reload 채널
            timeout: reload 응답 대기 한도 (초). None 이면 기본값 사용

        Raises:
            ConfigurationError: 설정 파일 경로 미지정
            ValidationErrors: 명령 검증 실패 (모든 위반 포함)
            ValidationError: 바인딩된 zoneId 와 불일치
            FileIOError: 백업/쓰기 실패
            ReloadError: reload 실패 또는 타임아웃
        """
        self._assert_config_file()

        errors = cmd.validate(self.parser)
        if errors:
            raise errors

        async with self._lock:
            self._assert_zone_id_match(cmd.zone_id)
            await self._apply(cmd.yaml, reload_ch, timeout)

            self._last_update_ts = datetime.now(timezone.utc)
            self._bound_zone_id = cmd.zone_id

        logger.info(f"[Sidecar] 설정 변경 완료: zone={cmd.zone_id}")

    async def reset_config_reload(
        self,
        zone_id: str,
        reload_ch: ReloadChannel,
        timeout: float | None = None,
    ) -> None:
        """설정 파일을 비우고 reload 지시

        성공하면 zoneId 바인딩과 변경 시각을 초기화합니다.

        Raises:
            ConfigurationError: 설정 파일 경로 미지정
            ValidationError: zoneId 공백 또는 바인딩 불일치
            FileIOError: 백업/쓰기 실패
            ReloadError: reload 실패 또는 타임아웃
        """
        self._assert_config_file()

        zone_id = (zone_id or "").strip()
        if not zone_id:
            raise ValidationError("ZoneId must not be blank")

        async with self._lock:
            self._assert_zone_id_match(zone_id)
            await self._apply("", reload_ch, timeout)

            self._last_update_ts = None
            self._bound_zone_id = ""

        logger.info(f"[Sidecar] 설정 초기화 완료: zone={zone_id} 바인딩 해제")

    async def recover_pending_transaction(self) -> bool:
        """중단된 트랜잭션의 백업 파일에서 복원

        프로세스가 트랜잭션 도중 종료되면 `<path>.del` 이 남습니다.
        서비스 시작 시 한 번 호출합니다.

        Returns:
            bool: 복원 수행 여부
        """
        if not self.config_file.strip():
            return False

        async with self._lock:
            file_util = ConfigFileUtil(self.config_file)
            if not file_util.has_backup():
                return False
            logger.warning(
                f"[Sidecar] 중단된 트랜잭션 백업 발견 - 복원: {self.config_file}"
            )
            file_util.restore()
            return True

    async def _apply(
        self, content: str, reload_ch: ReloadChannel, timeout: float | None
    ) -> None:
        """백업 → 쓰기 → reload. 실패 시 복원 후 원래 예외 전파"""
        file_util = ConfigFileUtil(self.config_file)
        file_util.backup()

        try:
            file_util.write(content)
            await request_reload(reload_ch, self._effective_timeout(timeout))
        except BaseException as e:
            logger.warning(f"[Sidecar] 설정 변경 실패 - 복원: {ErrorClassifier.format_message(e)}")
            self._run_cleanup(file_util.rollback)
            raise

        self._run_cleanup(file_util.clean_backup)

    def _effective_timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self.reload_timeout

    def _assert_config_file(self) -> None:
        if not (self.config_file or "").strip():
            raise ConfigurationError("no config file path provided")

    def _assert_zone_id_match(self, zone_id: str) -> None:
        if self._bound_zone_id == "":
            # 아직 zone 에 바인딩되지 않음
            return
        if self._bound_zone_id != zone_id:
            raise ValidationError(
                f"bound zoneId mismatches command zoneId: "
                f"bound zoneId={self._bound_zone_id}, command zoneId={zone_id}"
            )

    def _run_cleanup(self, action) -> None:
        """정리 작업 실행. 실패는 경고 로그만 남김"""
        try:
            action()
        except FileIOErrors as errs:
            for err in errs.errors:
                logger.warning(f"[Sidecar] {err}")
        except FileIOError as err:
            logger.warning(f"[Sidecar] {err}")

"""
공용 타입 정의

사이드카 런타임 상태와 설정 변경 명령.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from .errors import ConfigParseError, ValidationError, ValidationErrors

if TYPE_CHECKING:
    from .config_parser import ConfigParser

DEFAULT_BRAND = "snmp-exporter-mod"


@dataclass(frozen=True)
class RuntimeInfo:
    """현재 커밋된 바인딩 상태 스냅샷

    Attributes:
        brand: 사이드카 식별 문자열
        zone_id: 바인딩된 zone ID ("" 이면 미바인딩)
        last_update_ts: 마지막 설정 변경 시각 (None 이면 변경 이력 없음)
    """

    brand: str = DEFAULT_BRAND
    zone_id: str = ""
    last_update_ts: datetime | None = None

    @property
    def is_bound(self) -> bool:
        return self.zone_id != ""

    @property
    def last_update_ms(self) -> int:
        """Unix 밀리초 (변경 이력 없으면 0)"""
        if self.last_update_ts is None:
            return 0
        return int(self.last_update_ts.timestamp() * 1000)

    def to_dict(self) -> dict[str, object]:
        return {
            "brand": self.brand,
            "zone_id": self.zone_id,
            "last_update_ts": self.last_update_ms,
        }


@dataclass
class UpdateConfigCmd:
    """설정 변경 명령

    디스크에는 yaml 내용만 기록됩니다.
    """

    zone_id: str
    yaml: str

    def validate(self, parser: "ConfigParser") -> ValidationErrors:
        """명령 검증

        첫 번째 위반에서 멈추지 않고 모든 위반을 수집합니다.
        zone_id 는 앞뒤 공백이 제거된 값으로 정규화됩니다.

        Args:
            parser: strict 모드 설정 파서

        Returns:
            ValidationErrors: 위반 목록 (비어 있으면 통과)
        """
        errors = ValidationErrors()
        self.zone_id = (self.zone_id or "").strip()
        if not self.zone_id:
            errors.append("ZoneId must not be blank")
        if not (self.yaml or "").strip():
            errors.append("Yaml must not be blank")

        # 설정 파일 내용 검증
        try:
            parser.parse(self.yaml or "")
        except ConfigParseError as e:
            errors.append(ValidationError(str(e)).prefix("Invalid Yaml: "))

        return errors

"""
API 응답 스키마 정의

사이드카 작업 결과와 런타임 상태를 반환하는 Pydantic 모델입니다.
"""

from typing import Any

from pydantic import BaseModel, Field

from lib.types import RuntimeInfo


class SuccessResponse(BaseModel):
    """작업 성공 응답"""

    code: int = Field(default=200, description="결과 코드")
    message: str = Field(default="success", description="결과 메시지")


class RuntimeInfoResponse(SuccessResponse):
    """런타임 상태 응답

    GET /-/sidecar/runtimeinfo 응답으로 반환됩니다.
    """

    brand: str = Field(..., description="사이드카 식별 문자열")
    zone_id: str = Field(default="", description="바인딩된 zone ID (빈 값이면 미바인딩)")
    last_update_ts: int = Field(
        default=0,
        description="마지막 설정 변경 시각 (Unix 밀리초, 0 이면 변경 이력 없음)",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": 200,
                "message": "success",
                "brand": "snmp-exporter-mod",
                "zone_id": "zone-a",
                "last_update_ts": 1768559400000,
            }
        }
    }

    @classmethod
    def from_runtime_info(cls, info: RuntimeInfo) -> "RuntimeInfoResponse":
        return cls(**info.to_dict())


class LastUpdateTsResponse(SuccessResponse):
    """마지막 변경 시각 응답"""

    last_update_ts: int = Field(default=0, description="Unix 밀리초")


class ErrorResponse(BaseModel):
    """API 에러 응답"""

    error: str = Field(..., description="에러 코드")
    message: str = Field(..., description="에러 메시지")
    details: dict[str, Any] | None = Field(
        default=None,
        description="상세 에러 정보",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "VALIDATION_ERROR",
                "message": "[ZoneId must not be blank, Yaml must not be blank]",
                "details": {
                    "violations": ["ZoneId must not be blank", "Yaml must not be blank"],
                    "category": "non_retryable",
                },
            }
        }
    }


class HealthResponse(BaseModel):
    """헬스체크 응답"""

    status: str = Field(..., description="서버 상태")
    brand: str = Field(..., description="사이드카 식별 문자열")
    zone_id: str = Field(default="", description="바인딩된 zone ID")
    config_file: str = Field(default="", description="관리 중인 설정 파일 경로")
    reload_listener: str = Field(default="unknown", description="reload 리스너 상태")
    reload_count: int = Field(default=0, description="성공한 reload 횟수")
    uptime_seconds: int = Field(default=0, description="가동 시간 (초)")

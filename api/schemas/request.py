"""
API 요청 스키마 정의

외부 컨트롤러가 설정 변경을 요청할 때 사용하는 Pydantic 모델입니다.
"""

from pydantic import BaseModel, Field

from lib.types import UpdateConfigCmd


class UpdateConfigRequest(BaseModel):
    """설정 변경 요청 스키마

    내용 검증(공백, YAML 문법)은 SidecarService 가 수행하므로
    여기서는 타입만 확인합니다.

    Example:
        ```python
        request = UpdateConfigRequest(
            zone_id="zone-a",
            yaml="auths:\\n  public_v2:\\n    community: public\\n",
        )
        ```
    """

    zone_id: str = Field(
        default="",
        description="설정이 속한 zone ID (최초 변경 시 바인딩됨)",
        examples=["zone-a"],
    )
    yaml: str = Field(
        default="",
        description="새 익스포터 설정 YAML 전체",
        examples=["auths:\n  public_v2:\n    community: public\n    version: 2\n"],
    )

    def to_cmd(self) -> UpdateConfigCmd:
        return UpdateConfigCmd(zone_id=self.zone_id, yaml=self.yaml)

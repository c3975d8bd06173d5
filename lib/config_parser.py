"""
익스포터 설정 파서

YAML 문법 검증 후 pydantic 모델로 strict 검증합니다.
알 수 없는 필드는 에러로 처리합니다.

사용법:
    ```python
    parser = YamlConfigParser()
    config = parser.parse(yaml_text)  # ConfigParseError 발생 가능
    ```
"""

from typing import Any, Protocol

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigParseError


class AuthConfig(BaseModel):
    """SNMP 인증 설정"""

    model_config = ConfigDict(extra="forbid")

    community: str = "public"
    security_level: str = "noAuthNoPriv"
    username: str = ""
    password: str = ""
    auth_protocol: str = "MD5"
    priv_protocol: str = "DES"
    priv_password: str = ""
    context_name: str = ""
    version: int = Field(default=2, ge=1, le=3)


class ExporterConfig(BaseModel):
    """익스포터 설정 문서 (최상위)

    modules 하위 구조는 익스포터 고유 의미이므로 여기서 해석하지 않습니다.
    """

    model_config = ConfigDict(extra="forbid")

    auths: dict[str, AuthConfig] = Field(default_factory=dict)
    modules: dict[str, dict[str, Any]] = Field(default_factory=dict)
    version: int | None = None


class ConfigParser(Protocol):
    """설정 파서 인터페이스"""

    def parse(self, yaml_text: str) -> Any:
        """설정 텍스트 파싱

        Raises:
            ConfigParseError: 파싱/검증 실패
        """
        ...


class YamlConfigParser:
    """YAML + pydantic strict 설정 파서"""

    def __init__(self, model: type[BaseModel] = ExporterConfig):
        self.model = model

    def parse(self, yaml_text: str) -> BaseModel:
        try:
            raw = yaml.safe_load(yaml_text)
        except yaml.YAMLError as e:
            raise ConfigParseError(f"error parsing config file: {e}") from e

        # 빈 문서는 빈 설정
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigParseError(
                f"error parsing config file: top-level must be a mapping, got {type(raw).__name__}"
            )

        try:
            return self.model.model_validate(raw)
        except PydanticValidationError as e:
            raise ConfigParseError(f"error parsing config file: {e}") from e

"""
에러 분류 시스템

사이드카 설정 변경 트랜잭션에서 발생하는 예외 계층과
재시도 가능 여부 분류기를 제공합니다.

코어는 재시도하지 않습니다. 분류 결과는 호출자(HTTP 레이어)가
응답 코드와 로그 메시지를 결정하는 데 사용합니다.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """에러 카테고리"""

    RETRYABLE = "retryable"  # reload 실패, 타임아웃
    NON_RETRYABLE = "non_retryable"  # 입력 오류, 설정 누락
    UNKNOWN = "unknown"


# 재시도 가능 에러 패턴
RETRYABLE_PATTERNS = [
    "timeout",
    "timed out",
    "temporarily",
    "unavailable",
    "resource busy",
    "reload",
]

# 재시도 불가 에러 패턴
NON_RETRYABLE_PATTERNS = [
    "must not be blank",
    "mismatch",
    "invalid yaml",
    "not provided",
    "permission",
    "read-only",
]


class SidecarError(Exception):
    """사이드카 기본 에러"""

    category = ErrorCategory.UNKNOWN

    def __init__(self, message: str, category: ErrorCategory | None = None):
        super().__init__(message)
        if category is not None:
            self.category = category


class ConfigurationError(SidecarError):
    """필수 설정 누락 (예: 설정 파일 경로 미지정)"""

    category = ErrorCategory.NON_RETRYABLE


class ValidationError(SidecarError):
    """입력 검증 실패 (단일 항목)"""

    category = ErrorCategory.NON_RETRYABLE

    def prefix(self, prefix: str) -> "ValidationError":
        return ValidationError(f"{prefix}{self}")

    def suffix(self, suffix: str) -> "ValidationError":
        return ValidationError(f"{self}{suffix}")


class ValidationErrors(ValidationError):
    """입력 검증 실패 목록

    첫 번째 위반만이 아니라 모든 위반을 모아서 한 번에 반환합니다.
    """

    def __init__(self, errors: list[ValidationError] | None = None):
        self.errors: list[ValidationError] = list(errors or [])
        super().__init__(self._render())

    def _render(self) -> str:
        return "[" + ", ".join(str(e) for e in self.errors) + "]"

    def append(self, error: ValidationError | str) -> None:
        if isinstance(error, str):
            error = ValidationError(error)
        self.errors.append(error)
        self.args = (self._render(),)

    def prefix(self, prefix: str) -> "ValidationErrors":
        return ValidationErrors([e.prefix(prefix) for e in self.errors])

    def suffix(self, suffix: str) -> "ValidationErrors":
        return ValidationErrors([e.suffix(suffix) for e in self.errors])

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    def __bool__(self) -> bool:
        # 위반 항목 존재 여부
        return bool(self.errors)


class ConfigParseError(SidecarError):
    """설정 YAML 파싱 실패 (strict 모드)"""

    category = ErrorCategory.NON_RETRYABLE


class FileIOError(SidecarError):
    """백업/쓰기/복원/정리 중 파일 시스템 오류"""


class FileIOErrors(FileIOError):
    """여러 파일 작업의 실패 목록 (디렉토리 일괄 작업용)"""

    def __init__(self, errors: list[FileIOError]):
        self.errors = list(errors)
        super().__init__(
            "\n".join(f"error[{i}]: {e}" for i, e in enumerate(self.errors))
        )


class ReloadError(SidecarError):
    """reload 핸드셰이크 실패 (에러 응답, 타임아웃, 취소)"""

    category = ErrorCategory.RETRYABLE


class ErrorClassifier:
    """에러 분류기"""

    @classmethod
    def classify(cls, error: Exception) -> ErrorCategory:
        """에러를 분류하여 카테고리 반환

        Args:
            error: 분류할 예외 객체

        Returns:
            ErrorCategory: 재시도 가능 여부에 따른 카테고리
        """
        # 사이드카 예외는 자체 카테고리 우선
        if isinstance(error, SidecarError) and error.category != ErrorCategory.UNKNOWN:
            return error.category

        error_str = str(error).lower()

        # 패턴 매칭 (우선순위: NON_RETRYABLE > RETRYABLE)
        for pattern in NON_RETRYABLE_PATTERNS:
            if pattern in error_str:
                return ErrorCategory.NON_RETRYABLE

        for pattern in RETRYABLE_PATTERNS:
            if pattern in error_str:
                return ErrorCategory.RETRYABLE

        # 예외 타입 기반 분류
        if isinstance(error, (PermissionError, IsADirectoryError)):
            return ErrorCategory.NON_RETRYABLE

        if isinstance(error, (TimeoutError, InterruptedError)):
            return ErrorCategory.RETRYABLE

        return ErrorCategory.UNKNOWN

    @classmethod
    def format_message(
        cls, error: Exception, include_traceback: bool = False
    ) -> str:
        """에러 메시지 포맷팅

        Args:
            error: 포맷팅할 예외 객체
            include_traceback: 상세 스택 트레이스 포함 여부

        Returns:
            str: 카테고리 라벨이 포함된 에러 메시지
        """
        category = cls.classify(error)
        label = {
            ErrorCategory.RETRYABLE: "[재시도 가능]",
            ErrorCategory.NON_RETRYABLE: "[재시도 불가]",
            ErrorCategory.UNKNOWN: "[분류되지 않음]",
        }

        message = f"{label[category]} {type(error).__name__}: {str(error)}"

        if include_traceback:
            import traceback

            message += f"\n\n상세 정보:\n{traceback.format_exc()}"

        return message

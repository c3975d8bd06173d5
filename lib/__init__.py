"""
exporter_sidecar 공통 라이브러리

에러 분류, 파일 백업/복원 유틸리티, 설정 파서, 공용 타입 제공.
"""

from .config_parser import AuthConfig, ConfigParser, ExporterConfig, YamlConfigParser
from .errors import (
    NON_RETRYABLE_PATTERNS,
    RETRYABLE_PATTERNS,
    ConfigParseError,
    ConfigurationError,
    ErrorCategory,
    ErrorClassifier,
    FileIOError,
    FileIOErrors,
    ReloadError,
    SidecarError,
    ValidationError,
    ValidationErrors,
)
from .fs_utils import (
    BACKUP_SUFFIX,
    ConfigFileUtil,
    backup_dir_files,
    backup_file,
    clean_backup_dir_files,
    clean_backup_file,
    restore_dir_files,
    restore_file,
    write_file,
)
from .types import DEFAULT_BRAND, RuntimeInfo, UpdateConfigCmd

__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorClassifier",
    "SidecarError",
    "ConfigurationError",
    "ValidationError",
    "ValidationErrors",
    "ConfigParseError",
    "FileIOError",
    "FileIOErrors",
    "ReloadError",
    "NON_RETRYABLE_PATTERNS",
    "RETRYABLE_PATTERNS",
    # File utils
    "BACKUP_SUFFIX",
    "ConfigFileUtil",
    "backup_file",
    "restore_file",
    "clean_backup_file",
    "write_file",
    "backup_dir_files",
    "restore_dir_files",
    "clean_backup_dir_files",
    # Parser
    "AuthConfig",
    "ConfigParser",
    "ExporterConfig",
    "YamlConfigParser",
    # Types
    "DEFAULT_BRAND",
    "RuntimeInfo",
    "UpdateConfigCmd",
]

"""
파일 백업/복원 유틸리티

단일 파일 변경을 되돌릴 수 있게 만드는 rename 기반 백업 도구.

- 백업: 원본 파일을 `<path>.del` 로 이름 변경
- 복원: `<path>.del` 을 원본 경로로 되돌림
- 정리: `<path>.del` 삭제

모든 함수는 대상이 없으면 아무 일도 하지 않습니다 (멱등).
잠금이나 트랜잭션 개념은 없습니다. 순서 보장은 호출자 책임입니다.
"""

import glob
import os
from pathlib import Path

from .errors import FileIOError, FileIOErrors

BACKUP_SUFFIX = ".del"
CONFIG_FILE_MODE = 0o644


def backup_path(origin_file: str) -> str:
    """원본 파일의 백업 경로"""
    return origin_file + BACKUP_SUFFIX


def backup_file(origin_file: str) -> None:
    """원본 파일을 `*.del` 로 이름 변경. 원본이 없으면 아무 일도 없음

    Raises:
        FileIOError: rename 실패 (권한, 다른 디바이스 등)
    """
    target = backup_path(origin_file)
    try:
        os.rename(origin_file, target)
    except FileNotFoundError:
        return
    except OSError as e:
        raise FileIOError(f"Move file {origin_file!r} => {target!r} failed: {e}") from e


def restore_file(origin_file: str) -> None:
    """`*.del` 파일에서 원본 복원. 백업이 없으면 아무 일도 없음

    Raises:
        FileIOError: rename 실패
    """
    source = backup_path(origin_file)
    try:
        os.replace(source, origin_file)
    except FileNotFoundError:
        return
    except OSError as e:
        raise FileIOError(f"Restore file {source!r} failed: {e}") from e


def clean_backup_file(origin_file: str) -> None:
    """`*.del` 백업 파일 삭제. 백업이 없으면 아무 일도 없음

    Raises:
        FileIOError: 삭제 실패
    """
    target = backup_path(origin_file)
    try:
        os.remove(target)
    except FileNotFoundError:
        return
    except OSError as e:
        raise FileIOError(f"Remove backup file {target!r} failed: {e}") from e


def write_file(path: str, content: str, mode: int = CONFIG_FILE_MODE) -> None:
    """파일 내용을 통째로 덮어쓰기

    Args:
        path: 대상 파일 경로
        content: 새 내용
        mode: 파일 생성 시 권한

    Raises:
        FileIOError: 쓰기 실패
    """
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise FileIOError(f"Write config file {path!r} failed: {e}") from e


# ============================================================================
# 디렉토리 일괄 작업
# ============================================================================
def _collect(errors: list[FileIOError]) -> None:
    if errors:
        raise FileIOErrors(errors)


def backup_dir_files(dir_path: str, file_pattern: str) -> None:
    """패턴에 맞는 모든 파일을 `*.del` 로 이름 변경

    개별 실패는 모아서 한 번에 FileIOErrors 로 던집니다.
    """
    errors: list[FileIOError] = []
    for file in glob.glob(os.path.join(dir_path, file_pattern)):
        try:
            backup_file(file)
        except FileIOError as e:
            errors.append(e)
    _collect(errors)


def restore_dir_files(dir_path: str, origin_file_pattern: str) -> None:
    """패턴에 맞는 모든 `*.del` 파일에서 원본 복원"""
    errors: list[FileIOError] = []
    pattern = os.path.join(dir_path, origin_file_pattern + BACKUP_SUFFIX)
    for file in glob.glob(pattern):
        try:
            restore_file(file[: -len(BACKUP_SUFFIX)])
        except FileIOError as e:
            errors.append(e)
    _collect(errors)


def clean_backup_dir_files(dir_path: str, origin_file_pattern: str) -> None:
    """패턴에 맞는 모든 `*.del` 백업 파일 삭제"""
    errors: list[FileIOError] = []
    pattern = os.path.join(dir_path, origin_file_pattern + BACKUP_SUFFIX)
    for file in glob.glob(pattern):
        try:
            clean_backup_file(file[: -len(BACKUP_SUFFIX)])
        except FileIOError as e:
            errors.append(e)
    _collect(errors)


class ConfigFileUtil:
    """단일 설정 파일용 백업/쓰기/복원 래퍼"""

    def __init__(self, config_file: str):
        self.config_file = config_file
        # backup() 시점에 원본 파일이 있었는지
        self._had_origin = True

    def backup(self) -> None:
        self._had_origin = Path(self.config_file).exists()
        backup_file(self.config_file)

    def restore(self) -> None:
        restore_file(self.config_file)

    def rollback(self) -> None:
        """backup() 이전 상태로 되돌림

        원본이 없던 경우에는 새로 쓴 파일을 지웁니다.
        """
        if self._had_origin:
            restore_file(self.config_file)
            return
        try:
            os.remove(self.config_file)
        except FileNotFoundError:
            return
        except OSError as e:
            raise FileIOError(f"Remove config file {self.config_file!r} failed: {e}") from e

    def clean_backup(self) -> None:
        clean_backup_file(self.config_file)

    def write(self, content: str) -> None:
        write_file(self.config_file, content)

    def has_backup(self) -> bool:
        """진행 중이거나 중단된 트랜잭션의 백업 파일 존재 여부"""
        return Path(backup_path(self.config_file)).exists()

    def read(self) -> str:
        """현재 파일 내용 (없으면 빈 문자열)"""
        path = Path(self.config_file)
        if not path.exists():
            return ""
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise FileIOError(f"Read config file {self.config_file!r} failed: {e}") from e

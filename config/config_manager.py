"""
익스포터 설정 저장소 및 reload 리스너

사이드카가 설정 파일을 교체하면 reload 채널로 신호가 오고,
ReloadListener 가 ConfigStore 를 다시 로드한 뒤 결과를 응답합니다.

설계 원칙:
- 설정 파일이 없거나 비어 있으면 빈 설정으로 취급
- 파싱 실패는 reload 실패로 응답 (사이드카가 파일을 복원함)
- 전역 싱글톤 대신 컴포지션 루트가 인스턴스를 소유

사용법:
    ```python
    store = ConfigStore("/etc/snmp_exporter/custom.yml")
    await store.reload()

    reload_ch = new_reload_channel()
    listener = ReloadListener(store, reload_ch)
    listener.start()

    # 앱 종료 시
    await listener.stop()
    ```
"""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from lib.config_parser import ConfigParser, YamlConfigParser
from lib.errors import ErrorClassifier
from sidecar.reload import ReloadChannel, reply_reload

logger = logging.getLogger(__name__)


class ConfigStore:
    """설정 저장소

    파싱된 설정과 reload 이력을 보관합니다.
    """

    def __init__(self, config_path: str, parser: ConfigParser | None = None):
        """
        Args:
            config_path: 설정 파일 경로
            parser: strict 설정 파서 (기본: YamlConfigParser)
        """
        self._config_path = config_path
        self._parser = parser or YamlConfigParser()
        self._config: Any = None
        self._reload_count: int = 0
        self._last_reload_at: datetime | None = None
        self._lock = asyncio.Lock()
        self._callbacks: list[Callable] = []

    async def reload(self) -> None:
        """설정 파일 리로드

        Raises:
            ConfigParseError: 설정 파싱 실패 (기존 설정 유지)
            OSError: 파일 읽기 실패
        """
        async with self._lock:
            logger.info(f"[ConfigStore] 설정 리로드 시작: {self._config_path}")

            try:
                path = Path(self._config_path)
                if path.exists():
                    with open(path, encoding="utf-8") as f:
                        text = f.read()
                else:
                    logger.warning(f"[ConfigStore] 설정 파일 없음: {self._config_path}")
                    text = ""

                self._config = self._parser.parse(text)
                self._reload_count += 1
                self._last_reload_at = datetime.now(timezone.utc)

                logger.info(
                    f"[ConfigStore] 설정 리로드 완료: #{self._reload_count}"
                )

            except Exception as e:
                logger.error(f"[ConfigStore] 설정 리로드 실패: {e}")
                raise

            # 콜백 호출
            for callback in self._callbacks:
                try:
                    if inspect.iscoroutinefunction(callback):
                        await callback()
                    else:
                        callback()
                except Exception as e:
                    logger.error(f"[ConfigStore] 콜백 실행 실패: {e}")

    def on_reload(self, callback: Callable) -> None:
        """리로드 콜백 등록"""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable) -> None:
        """리로드 콜백 제거"""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    @property
    def config(self) -> Any:
        """현재 적용된 설정 (로드 전이면 None)"""
        return self._config

    @property
    def config_path(self) -> str:
        return self._config_path

    @property
    def reload_count(self) -> int:
        """성공한 리로드 횟수"""
        return self._reload_count

    @property
    def last_reload_at(self) -> datetime | None:
        return self._last_reload_at


class ReloadListener:
    """reload 채널 소비자

    채널에서 응답 슬롯을 꺼내 ConfigStore 를 리로드하고
    슬롯마다 정확히 한 번 응답합니다.
    """

    def __init__(self, config_store: ConfigStore, reload_ch: ReloadChannel):
        """
        Args:
            config_store: 리로드할 ConfigStore
            reload_ch: reload 채널
        """
        self.config_store = config_store
        self.reload_ch = reload_ch
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        """리스너 태스크 시작"""
        if self._task and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._serve())
        logger.info("[Reload] reload 리스너 시작")

    async def stop(self) -> None:
        """리스너 태스크 중지"""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("[Reload] reload 리스너 중지")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _serve(self) -> None:
        while True:
            reply = await self.reload_ch.get()
            try:
                if reply.done():
                    # 타임아웃/취소된 요청
                    continue
                await self.handle(reply)
            finally:
                self.reload_ch.task_done()

    async def handle(self, reply: asyncio.Future) -> None:
        """단일 reload 요청 처리

        요청자가 응답 전에 떠나면(타임아웃/취소) 사이드카가 파일을 복원하므로
        복원된 파일을 다시 읽어 메모리 설정을 디스크와 맞춥니다.
        """
        try:
            await self.config_store.reload()
        except Exception as e:
            logger.error(f"[Reload] reload 실패: {ErrorClassifier.format_message(e)}")
            reply_reload(reply, e)
            return

        if not reply_reload(reply):
            await self._resync()

    async def _resync(self) -> None:
        """복원된 설정 파일 다시 로드"""
        logger.warning(
            f"[Reload] 응답 없이 끝난 요청 - 설정 다시 로드: {self.config_store.config_path}"
        )
        try:
            await self.config_store.reload()
        except Exception as e:
            logger.error(f"[Reload] 설정 재동기화 실패: {ErrorClassifier.format_message(e)}")

"""
reload 핸드셰이크

사이드카가 설정 파일을 바꾼 뒤 익스포터에게 reload 를 지시하고
결과를 동기적으로 기다리는 요청/응답 랑데부입니다.

채널 구조:
    reload 채널은 응답 슬롯(asyncio.Future)을 나르는 asyncio.Queue 입니다.

    1. 사이드카가 새 Future 를 채널에 넣고 그 Future 를 기다립니다.
    2. reload 담당자(리스너)는 채널에서 Future 를 꺼내 reload 를 수행하고
       정확히 한 번 응답합니다.
       - 성공: future.set_result(None)
       - 실패: future.set_exception(err)
    3. 이미 완료된 Future (타임아웃/취소된 요청) 는 건너뛰어야 합니다.

리스너가 없고 타임아웃도 없으면 호출은 무한정 대기합니다.
반드시 리스너를 먼저 시작하세요.
"""

import asyncio
import logging

from lib.errors import ReloadError

logger = logging.getLogger(__name__)

ReloadReply = asyncio.Future
ReloadChannel = asyncio.Queue


def new_reload_channel() -> ReloadChannel:
    """reload 채널 생성 (단일 슬롯)"""
    return asyncio.Queue(maxsize=1)


async def request_reload(
    reload_ch: ReloadChannel, timeout: float | None = None
) -> None:
    """reload 지시 후 응답 대기

    Args:
        reload_ch: reload 채널
        timeout: 응답 대기 한도 (초). None 이면 무제한

    Raises:
        ReloadError: 에러 응답 또는 타임아웃
        asyncio.CancelledError: 호출 태스크 취소 시 그대로 전파
    """
    reply: ReloadReply = asyncio.get_running_loop().create_future()

    async def _handshake() -> None:
        await reload_ch.put(reply)
        await reply

    try:
        await asyncio.wait_for(_handshake(), timeout)
    except ReloadError:
        raise
    except asyncio.TimeoutError as e:
        if reply.done() and not reply.cancelled():
            # 응답 자체가 TimeoutError
            raise ReloadError(f"sidecar failed to reload config: {e}") from e
        raise ReloadError(
            f"sidecar failed to reload config: no reply within {timeout}s"
        ) from e
    except Exception as e:
        raise ReloadError(f"sidecar failed to reload config: {e}") from e


def reply_reload(reply: ReloadReply, error: BaseException | None = None) -> bool:
    """응답 슬롯에 결과 전달

    Returns:
        bool: 전달 여부 (이미 완료/취소된 슬롯이면 False)
    """
    if reply.done():
        logger.warning("[Reload] 요청자가 이미 떠난 reload 요청 - 응답 생략")
        return False
    if error is None:
        reply.set_result(None)
    else:
        reply.set_exception(error)
    return True

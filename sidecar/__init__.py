"""
사이드카 모듈

외부 컨트롤러의 설정 변경 요청을 트랜잭션으로 처리하고
익스포터에게 reload 를 지시합니다.
"""

from .reload import (
    ReloadChannel,
    new_reload_channel,
    reply_reload,
    request_reload,
)
from .service import SidecarService

__all__ = [
    "SidecarService",
    "ReloadChannel",
    "new_reload_channel",
    "request_reload",
    "reply_reload",
]

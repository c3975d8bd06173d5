"""
익스포터 설정 사이드카 API 모듈

FastAPI 기반 HTTP API로 외부 컨트롤러가 설정 변경을 요청할 수 있습니다.
"""

from .server import app, create_app

__all__ = ["app", "create_app"]

"""
설정 관리 모듈

ConfigStore, ReloadListener 를 통해 익스포터 설정을 관리하고 reload 를 처리합니다.
"""

from .config_manager import ConfigStore, ReloadListener

__all__ = ["ConfigStore", "ReloadListener"]

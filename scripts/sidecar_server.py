#!/usr/bin/env python
"""
익스포터 설정 사이드카 API 서버 실행 스크립트

사용법:
    # 개발 모드
    python scripts/sidecar_server.py --env dev --config.file ./custom.yml

    # 프로덕션 모드
    python scripts/sidecar_server.py --env prod --config.file /etc/snmp_exporter/custom.yml \\
        --reload-timeout 30

    # 커스텀 포트
    python scripts/sidecar_server.py --port 9117

바인딩 상태는 프로세스 메모리에 있으므로 항상 단일 프로세스로 실행합니다.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# 프로젝트 루트를 Python 경로에 추가
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def setup_logging(level: str = "INFO") -> None:
    """로깅 설정"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_env_file(env: str) -> None:
    """환경별 .env 파일 로드"""
    env_files = [
        PROJECT_ROOT / f".env.{env}",
        PROJECT_ROOT / ".env.local",
        PROJECT_ROOT / ".env",
    ]

    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file)
            print(f"[Config] 환경 파일 로드: {env_file}")
            break


def build_parser() -> argparse.ArgumentParser:
    """CLI 인자 파서 생성"""
    parser = argparse.ArgumentParser(
        description="익스포터 설정 사이드카 API 서버",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
예시:
    python scripts/sidecar_server.py --config.file ./custom.yml
    python scripts/sidecar_server.py --host 0.0.0.0 --port 9117 --log-level DEBUG
        """,
    )

    # 환경 설정
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="실행 환경 (기본: dev)",
    )

    # 서버 설정
    parser.add_argument(
        "--host",
        default=None,
        help="바인딩 호스트 (기본: 환경변수 API_HOST 또는 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="바인딩 포트 (기본: 환경변수 API_PORT 또는 9116)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="로그 레벨",
    )

    # 사이드카 설정
    parser.add_argument(
        "--config.file",
        dest="config_file",
        default=None,
        help="사이드카가 관리할 설정 파일 경로 (기본: 환경변수 SIDECAR_CONFIG_FILE)",
    )
    parser.add_argument(
        "--reload-timeout",
        type=float,
        default=None,
        help="reload 응답 대기 한도 (초, 기본: 환경변수 SIDECAR_RELOAD_TIMEOUT 또는 무제한)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """메인 함수"""
    args = build_parser().parse_args(argv)

    # 환경 설정
    os.environ["ENV"] = args.env
    load_env_file(args.env)

    # 로깅 설정
    log_level = args.log_level or ("DEBUG" if args.env == "dev" else "INFO")
    setup_logging(log_level)

    # 서버 설정
    host = args.host or os.getenv("API_HOST", "0.0.0.0")
    port = args.port or int(os.getenv("API_PORT", "9116"))

    # 사이드카 설정은 환경변수로 앱에 전달
    if args.config_file is not None:
        os.environ["SIDECAR_CONFIG_FILE"] = args.config_file
    if args.reload_timeout is not None:
        os.environ["SIDECAR_RELOAD_TIMEOUT"] = str(args.reload_timeout)

    config_file = os.getenv("SIDECAR_CONFIG_FILE", "")
    if not config_file:
        print("[Warning] --config.file 미지정 - 설정 변경 요청은 모두 실패합니다")

    print(f"[Server] 환경={args.env} 호스트={host} 포트={port} 설정={config_file or '-'}")

    try:
        import uvicorn

        uvicorn.run(
            "api.server:app",
            host=host,
            port=port,
            log_level=log_level.lower(),
            workers=1,
        )
    except KeyboardInterrupt:
        print("\n[Server] 서버 종료")
    except Exception as e:
        print(f"[Error] 서버 시작 실패: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

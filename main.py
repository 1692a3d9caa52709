"""애플리케이션 진입점 (DI Container 기반)

Redis 공유 환율 캐시 CLI
- 단건 조회 / 강제 갱신 / evict
- --watch: 주기 조회 (RATE_CACHE_AUTO_UPDATE=true면 백그라운드 자동 갱신 동작 확인용)

Usage:
    python main.py USD EUR
    python main.py USD EUR --force
    python main.py USD EUR --evict
    RATE_CACHE_AUTO_UPDATE=true RATE_CACHE_EXPIRATION_SECONDS=1 python main.py USD EUR --watch 10
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from fx_rate_cache.common.exceptions.errors import RateCacheError
from fx_rate_cache.common.logger import PipelineLogger
from fx_rate_cache.config.containers import ApplicationContainer
from fx_rate_cache.core.cache.rate_cache import RateCache

logger = PipelineLogger.get_logger("main", "app")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Redis 공유 환율 캐시 조회",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
사용 예시:
  # 캐시 우선 조회
  python main.py USD EUR

  # 캐시 무시하고 업스트림 강제 갱신
  python main.py USD EUR --force

  # 10초 동안 2초 간격으로 조회
  python main.py USD EUR --watch 10 --interval 2
        """,
    )
    parser.add_argument("source", help="원화 통화 코드 (예: USD)")
    parser.add_argument("target", help="대상 통화 코드 (예: EUR)")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--force", action="store_true", help="강제 갱신")
    action.add_argument("--evict", action="store_true", help="캐시 항목 삭제")
    parser.add_argument(
        "--watch", type=float, default=0.0, help="주기 조회를 계속할 시간(초), 0이면 1회"
    )
    parser.add_argument("--interval", type=float, default=2.0, help="--watch 조회 간격(초)")
    return parser


class Application:
    """애플리케이션 메인 클래스

    책임:
    - DI Container 관리
    - 갱신 실패 디스패처 등록
    - 명령 실행 및 Graceful Shutdown
    """

    def __init__(self, container: ApplicationContainer | None = None) -> None:
        self.container = container or ApplicationContainer()
        self.cache: RateCache | None = None

    async def initialize(self) -> None:
        logger.info("Resource 초기화 시작...")
        self.cache = await self.container.rate_cache()
        self.container.error_dispatcher().register()
        logger.info(
            "✅ RateCache 준비 완료",
            key_prefix=self.cache.key_prefix,
            auto_update=self.cache.auto_update,
            expiration_seconds=self.cache.expiration_time,
        )

    async def run(self, args: argparse.Namespace) -> int:
        cache = self.cache
        if cache is None:
            raise RuntimeError("Application.initialize() must be called first")

        if args.evict:
            await cache.evict(args.source, args.target)
            print(f"evicted {args.source}/{args.target}")
            return 0

        rate = await cache.convert(args.source, args.target, force_refresh=args.force)
        print(f"{args.source}/{args.target} = {rate}")

        elapsed = 0.0
        while elapsed < args.watch:
            await asyncio.sleep(args.interval)
            elapsed += args.interval
            rate = await cache.get_exchange_rate(args.source, args.target)
            print(f"[{elapsed:>6.1f}s] {args.source}/{args.target} = {rate}")
        return 0

    async def shutdown(self) -> None:
        logger.info("정리 작업 시작...")
        self.container.error_dispatcher().unregister()
        await self.container.shutdown_resources()
        logger.info("✅ 프로그램 종료 완료")


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    app = Application()

    try:
        await app.initialize()
        return await app.run(args)
    except RateCacheError as e:
        logger.error(f"환율 조회 실패: {e}", **e.to_dict())
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        await app.shutdown()


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n프로그램이 종료되었습니다.")

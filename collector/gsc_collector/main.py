"""Search Console 日次データ取り込み — メインエントリーポイント.

処理フロー:
  1. 認証情報を読み込み、API クライアントと Supabase クライアントを 1 度だけ生成
  2. 指定期間を 1 日ずつ取得・正規化・書き込み
  3. 結果のサマリをログに出力
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import date, datetime, timedelta

from supabase import SupabaseException, create_client

from gsc_collector.config import (
    COLLECTION_PATH,
    DEFAULT_LAG_DAYS,
    LOG_DIR,
    SITE_PROPERTY,
    get_supabase_settings,
    load_service_account_info,
)
from gsc_collector.db import SupabaseDocumentStore
from gsc_collector.errors import ConfigError
from gsc_collector.fetcher import PaginatedFetcher
from gsc_collector.gsc_client import SearchConsoleClient
from gsc_collector.orchestrator import IngestionOrchestrator

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_PARTIAL = 2


def setup_logging() -> None:
    """ロギングの初期設定."""
    log_file = LOG_DIR / f"collector_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    default_day = (date.today() - timedelta(days=DEFAULT_LAG_DAYS)).isoformat()
    parser = argparse.ArgumentParser(description="Search Console の日次データを取り込む")
    parser.add_argument("--site", default=SITE_PROPERTY, help="サイトプロパティ (例: sc-domain:example.com)")
    parser.add_argument("--start", default=default_day, help="開始日 YYYY-MM-DD")
    parser.add_argument("--end", default=None, help="終了日 YYYY-MM-DD (省略時は開始日)")
    parser.add_argument("--collection", default=COLLECTION_PATH, help="書き込み先コレクションパス")
    args = parser.parse_args(argv)
    if args.end is None:
        args.end = args.start
    return args


def build_orchestrator(collection_path: str) -> IngestionOrchestrator:
    """認証情報からクライアントを生成し、オーケストレーターに注入する.

    Raises:
        ConfigError: 認証情報が無い・不正な場合。
    """
    service_account_info = load_service_account_info()
    supabase_url, supabase_key = get_supabase_settings()

    try:
        gsc_client = SearchConsoleClient.from_service_account(service_account_info)
    except ValueError as e:
        raise ConfigError(f"サービスアカウント認証情報が不正です: {e}") from e

    try:
        supabase_client = create_client(supabase_url, supabase_key)
    except SupabaseException as e:
        raise ConfigError(f"Supabase クライアントを生成できません: {e}") from e

    store = SupabaseDocumentStore(supabase_client)
    return IngestionOrchestrator(
        fetcher=PaginatedFetcher(gsc_client),
        store=store,
        collection_path=collection_path,
    )


def run(argv: list[str] | None = None) -> int:
    """メイン処理. 終了コードを返す."""
    setup_logging()
    logger = logging.getLogger(__name__)
    args = parse_args(argv)

    try:
        orchestrator = build_orchestrator(args.collection)
    except ConfigError as e:
        logger.critical("起動に失敗: %s", e)
        return EXIT_INVALID

    start_time = time.time()
    result = orchestrator.run(args.site, args.start, args.end)
    elapsed = time.time() - start_time

    logger.info("結果: %s", json.dumps(result.to_dict(), ensure_ascii=False))
    logger.info("所要時間: %.1f 秒", elapsed)

    if not result.success:
        return EXIT_INVALID
    if result.failed_dates:
        return EXIT_PARTIAL
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(run())

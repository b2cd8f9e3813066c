"""期間指定の取り込みオーケストレーション.

処理フロー（日単位・昇順・逐次）:
  1. PaginatedFetcher で 1 日分の全行を取得
  2. 行順を保ったまま正規化
  3. persist_in_batches でストアに書き込み
日単位の失敗はログに残して次の日へ進む。
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterator

from gsc_collector.config import BATCH_SIZE, COLLECTION_PATH
from gsc_collector.db import DocumentStore, persist_in_batches
from gsc_collector.fetcher import PaginatedFetcher
from gsc_collector.models import DayOutcome, IngestionResult
from gsc_collector.normalizer import normalize_row

logger = logging.getLogger(__name__)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """start から end まで（両端含む）の日付を昇順に返す."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _to_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


class IngestionOrchestrator:
    """取得・正規化・書き込みを日ごとに回す."""

    def __init__(
        self,
        fetcher: PaginatedFetcher,
        store: DocumentStore,
        collection_path: str = COLLECTION_PATH,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._collection_path = collection_path
        self._batch_size = batch_size

    def run(
        self,
        site_property: str | None,
        start_date: str | date | None,
        end_date: str | date | None,
    ) -> IngestionResult:
        """期間内の全日を取り込む.

        入力が欠けている・日付として読めない場合は何にも触れずに
        success=False で返す。日単位の失敗では success は False にならない。
        """
        if not site_property or not start_date or not end_date:
            logger.error("site_property, start_date, end_date はすべて必須です")
            return IngestionResult(success=False, total_rows_written=0)

        try:
            start = _to_date(start_date)
            end = _to_date(end_date)
        except (ValueError, TypeError) as e:
            logger.error("日付を解釈できません: start=%s, end=%s, error=%s", start_date, end_date, e)
            return IngestionResult(success=False, total_rows_written=0)

        logger.info("=== 取り込み開始: site=%s, %s 〜 %s ===", site_property, start, end)
        total_rows_written = 0
        outcomes: list[DayOutcome] = []

        for day in iter_dates(start, end):
            outcome = self._process_day(site_property, day.isoformat())
            outcomes.append(outcome)
            total_rows_written += outcome.rows_written

        failed = [o.date for o in outcomes if not o.ok]
        logger.info("=== 取り込み完了: 書き込み合計 %d 件 ===", total_rows_written)
        if failed:
            logger.warning("失敗した日付: %s", ", ".join(failed))

        return IngestionResult(
            success=True,
            total_rows_written=total_rows_written,
            days=tuple(outcomes),
        )

    def _process_day(self, site_property: str, day: str) -> DayOutcome:
        logger.info("処理中: date=%s", day)
        rows_fetched = 0
        try:
            raw_rows = self._fetcher.fetch(site_property, day)
            rows_fetched = len(raw_rows)
            records = [normalize_row(row, site_property, day) for row in raw_rows]
            persist_in_batches(self._store, self._collection_path, records, self._batch_size)
        except Exception as e:
            logger.exception("date=%s の処理に失敗", day)
            return DayOutcome(date=day, rows_fetched=rows_fetched, error=str(e) or type(e).__name__)

        logger.info("date=%s: %d 件書き込み", day, len(records))
        return DayOutcome(date=day, rows_fetched=rows_fetched, rows_written=len(records))

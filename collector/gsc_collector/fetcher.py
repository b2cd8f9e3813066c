"""1 日分のアナリティクス取得（ページング + リトライ）."""

from __future__ import annotations

import logging
import random
import time
from typing import Callable

from gsc_collector.backoff import BackoffPolicy
from gsc_collector.config import ROW_LIMIT
from gsc_collector.errors import FetchError
from gsc_collector.gsc_client import AnalyticsClient
from gsc_collector.models import RawAnalyticsRow

logger = logging.getLogger(__name__)


class PaginatedFetcher:
    """AnalyticsClient から 1 日分の全行を取得する.

    直前のページがちょうど row_limit 件だった間だけ次のページを要求する。
    リトライはページ単位で、成功するたびに試行回数を 0 に戻す。
    """

    def __init__(
        self,
        client: AnalyticsClient,
        backoff: BackoffPolicy | None = None,
        row_limit: int = ROW_LIMIT,
        sleep: Callable[[float], None] = time.sleep,
        rand: Callable[[], float] = random.random,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
    ) -> None:
        self._client = client
        self._backoff = backoff or BackoffPolicy()
        self._row_limit = row_limit
        self._sleep = sleep
        self._rand = rand
        self._retry_on = retry_on

    def fetch(self, site_property: str, date: str) -> list[RawAnalyticsRow]:
        """指定日の全行をリクエスト順に連結して返す.

        Raises:
            FetchError: 1 ページの試行回数が上限に達した場合。
        """
        logger.info("取得開始: site=%s, date=%s", site_property, date)
        all_rows: list[RawAnalyticsRow] = []
        start_row = 0

        while True:
            rows = self._fetch_page(site_property, date, start_row)
            all_rows.extend(rows)
            start_row += len(rows)
            if len(rows) < self._row_limit:
                break
            logger.info("%d 件取得。次のページを要求 (startRow=%d)", len(rows), start_row)

        logger.info("取得完了: date=%s, 合計 %d 件", date, len(all_rows))
        return all_rows

    def _fetch_page(self, site_property: str, date: str, start_row: int) -> list[RawAnalyticsRow]:
        """1 ページを取得する. 失敗時はバックオフして同じ startRow で再試行."""
        attempt = 0
        while True:
            try:
                return self._client.query(site_property, date, start_row, self._row_limit)
            except self._retry_on as e:
                attempt += 1
                logger.error(
                    "API エラー (試行 %d/%d): date=%s, startRow=%d, error=%s",
                    attempt, self._backoff.max_attempts, date, start_row, e,
                )
                if attempt >= self._backoff.max_attempts:
                    logger.error("リトライ上限に到達。date=%s の取得を中止", date)
                    raise FetchError(date, self._backoff.max_attempts) from e

                delay = self._backoff.delay(attempt, self._rand)
                logger.info("%.1f 秒後にリトライ", delay)
                self._sleep(delay)

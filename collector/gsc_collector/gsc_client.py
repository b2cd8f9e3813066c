"""Search Console API クライアント.

取得処理は AnalyticsClient プロトコルだけに依存する。
具体的な API との通信はこのモジュールのアダプタに閉じ込める。
"""

from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import quote

import requests
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from gsc_collector.config import (
    DIMENSIONS,
    REQUEST_TIMEOUT,
    SEARCH_ANALYTICS_URL_TEMPLATE,
    SEARCH_CONSOLE_SCOPES,
    SEARCH_TYPE,
)
from gsc_collector.errors import AnalyticsApiError
from gsc_collector.models import RawAnalyticsRow

logger = logging.getLogger(__name__)


class AnalyticsClient(Protocol):
    """1 日分のアナリティクスを 1 ページ取得する能力."""

    def query(
        self, site_property: str, date: str, start_row: int, row_limit: int
    ) -> list[RawAnalyticsRow]:
        ...


class SearchConsoleClient:
    """Search Console searchAnalytics.query の REST アダプタ."""

    def __init__(self, session: requests.Session, timeout: float = REQUEST_TIMEOUT) -> None:
        self._session = session
        self._timeout = timeout

    @classmethod
    def from_service_account(cls, info: dict, timeout: float = REQUEST_TIMEOUT) -> SearchConsoleClient:
        """サービスアカウント情報から認証済みセッションを作る."""
        credentials = service_account.Credentials.from_service_account_info(
            info, scopes=SEARCH_CONSOLE_SCOPES
        )
        return cls(AuthorizedSession(credentials), timeout=timeout)

    def query(
        self, site_property: str, date: str, start_row: int, row_limit: int
    ) -> list[RawAnalyticsRow]:
        """startDate == endDate == date の 1 ページを取得する.

        Raises:
            AnalyticsApiError: 通信失敗・HTTP エラー・不正なレスポンス。
        """
        url = SEARCH_ANALYTICS_URL_TEMPLATE.format(site=quote(site_property, safe=""))
        body = {
            "startDate": date,
            "endDate": date,
            "dimensions": DIMENSIONS,
            "rowLimit": row_limit,
            "startRow": start_row,
            "type": SEARCH_TYPE,
        }

        try:
            resp = self._session.post(url, json=body, timeout=self._timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise AnalyticsApiError(f"Search Console API エラー: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise AnalyticsApiError(f"Search Console API 通信失敗: {e}") from e
        except ValueError as e:
            raise AnalyticsApiError(f"Search Console API レスポンスが JSON ではありません: {e}") from e

        return [RawAnalyticsRow.from_api(row) for row in payload.get("rows") or []]

"""例外定義."""

from __future__ import annotations


class CollectorError(Exception):
    """コレクター全体の基底例外."""


class ConfigError(CollectorError):
    """認証情報・設定値の不足や不正. 起動時に致命的."""


class AnalyticsApiError(CollectorError):
    """Search Console API への 1 リクエストの失敗."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FetchError(CollectorError):
    """1 日分の取得がリトライ上限に達した (その日のみ致命的)."""

    def __init__(self, date: str, attempts: int) -> None:
        super().__init__(
            f"Failed to fetch Search Console data for {date} after {attempts} attempts."
        )
        self.date = date
        self.attempts = attempts

"""fetcher モジュールのユニットテスト."""

from unittest.mock import MagicMock

import pytest

from gsc_collector.backoff import BackoffPolicy
from gsc_collector.errors import AnalyticsApiError, FetchError
from gsc_collector.fetcher import PaginatedFetcher
from gsc_collector.models import RawAnalyticsRow

SITE = "sc-domain:example.com"
DATE = "2023-01-01"
ROW_LIMIT = 25000


def _rows(count: int, page: str = "page1.html", clicks: float = 1) -> list[RawAnalyticsRow]:
    return [RawAnalyticsRow(keys=(page,), clicks=clicks, impressions=10)] * count


def _fetcher(client, sleeps: list[float] | None = None, **kwargs) -> PaginatedFetcher:
    recorded = sleeps if sleeps is not None else []
    return PaginatedFetcher(client, sleep=recorded.append, rand=lambda: 0.0, **kwargs)


def _start_rows(client: MagicMock) -> list[int]:
    return [c.args[2] for c in client.query.call_args_list]


class TestPagination:
    """ページングのテスト."""

    def test_full_page_then_partial(self):
        """満杯ページの後に端数ページが来たら 2 回で終わること."""
        client = MagicMock()
        client.query.side_effect = [_rows(ROW_LIMIT), _rows(100, "page2.html", clicks=2)]

        results = _fetcher(client).fetch(SITE, DATE)

        assert client.query.call_count == 2
        assert _start_rows(client) == [0, ROW_LIMIT]
        assert len(results) == ROW_LIMIT + 100
        assert results[0].clicks == 1
        assert results[ROW_LIMIT].clicks == 2

    def test_n_full_pages(self):
        client = MagicMock()
        client.query.side_effect = [_rows(3), _rows(3), _rows(3), _rows(1)]

        results = _fetcher(client, row_limit=3).fetch(SITE, DATE)

        assert client.query.call_count == 4
        assert _start_rows(client) == [0, 3, 6, 9]
        assert len(results) == 10

    def test_request_arguments(self):
        client = MagicMock()
        client.query.return_value = []

        _fetcher(client).fetch(SITE, DATE)

        client.query.assert_called_once_with(SITE, DATE, 0, ROW_LIMIT)

    def test_empty_first_page(self):
        """初回 0 件は空リストを返しエラーにしないこと."""
        client = MagicMock()
        client.query.return_value = []

        assert _fetcher(client).fetch(SITE, DATE) == []
        assert client.query.call_count == 1

    def test_full_page_followed_by_empty_page(self):
        client = MagicMock()
        client.query.side_effect = [_rows(2), []]

        results = _fetcher(client, row_limit=2).fetch(SITE, DATE)

        assert client.query.call_count == 2
        assert len(results) == 2


class TestRetry:
    """リトライ・バックオフのテスト."""

    def test_retry_then_success(self):
        """2 回失敗した後に成功すれば 3 回呼び出して結果を返すこと."""
        client = MagicMock()
        client.query.side_effect = [
            AnalyticsApiError("API rate limit exceeded", status_code=429),
            AnalyticsApiError("Server error 503", status_code=503),
            [RawAnalyticsRow(keys=("final-page.html",), clicks=100, impressions=1000)],
        ]
        sleeps: list[float] = []

        results = _fetcher(client, sleeps).fetch(SITE, DATE)

        assert client.query.call_count == 3
        assert len(results) == 1
        assert results[0].clicks == 100
        assert sleeps == [2.0, 4.0]
        assert sum(sleeps) >= 2 ** 1 * 1.0 + 2 ** 2 * 1.0

    def test_retry_uses_same_start_row(self):
        client = MagicMock()
        client.query.side_effect = [_rows(2), RuntimeError("boom"), _rows(1)]

        _fetcher(client, row_limit=2).fetch(SITE, DATE)

        assert _start_rows(client) == [0, 2, 2]

    def test_max_retries_exceeded(self):
        """失敗し続けたら max_attempts 回で FetchError になること."""
        client = MagicMock()
        client.query.side_effect = AnalyticsApiError("Persistent API error")
        sleeps: list[float] = []

        with pytest.raises(FetchError) as exc_info:
            _fetcher(client, sleeps).fetch(SITE, DATE)

        assert client.query.call_count == 5
        assert exc_info.value.date == DATE
        assert exc_info.value.attempts == 5
        assert str(exc_info.value) == (
            f"Failed to fetch Search Console data for {DATE} after 5 attempts."
        )
        assert isinstance(exc_info.value.__cause__, AnalyticsApiError)
        assert sleeps == [2.0, 4.0, 8.0, 16.0]

    def test_custom_attempt_budget(self):
        client = MagicMock()
        client.query.side_effect = RuntimeError("down")
        fetcher = _fetcher(client, backoff=BackoffPolicy(max_attempts=2, base_delay=0.5))

        with pytest.raises(FetchError, match="after 2 attempts"):
            fetcher.fetch(SITE, DATE)
        assert client.query.call_count == 2

    def test_attempt_counter_resets_per_page(self):
        """成功後は試行回数が 0 に戻り、バックオフが累積しないこと."""
        client = MagicMock()
        client.query.side_effect = [
            RuntimeError("first page fails"),
            _rows(2),
            RuntimeError("second page fails"),
            _rows(1),
        ]
        sleeps: list[float] = []

        results = _fetcher(client, sleeps, row_limit=2).fetch(SITE, DATE)

        assert len(results) == 3
        assert sleeps == [2.0, 2.0]

    def test_four_failures_then_success_on_last_attempt(self):
        client = MagicMock()
        client.query.side_effect = [RuntimeError("x")] * 4 + [_rows(1)]

        results = _fetcher(client).fetch(SITE, DATE)

        assert client.query.call_count == 5
        assert len(results) == 1

    def test_non_retryable_error_propagates(self):
        """retry_on に含まれない例外は即座に送出されること."""
        client = MagicMock()
        client.query.side_effect = KeyError("bad request shape")
        sleeps: list[float] = []

        with pytest.raises(KeyError):
            _fetcher(client, sleeps, retry_on=(AnalyticsApiError,)).fetch(SITE, DATE)

        assert client.query.call_count == 1
        assert sleeps == []


class TestJitter:
    """ジッターのテスト."""

    def test_jitter_added_to_each_delay(self):
        client = MagicMock()
        client.query.side_effect = [RuntimeError("a"), RuntimeError("b"), []]
        sleeps: list[float] = []
        fetcher = PaginatedFetcher(client, sleep=sleeps.append, rand=lambda: 0.5)

        fetcher.fetch(SITE, DATE)

        assert sleeps == [2.5, 4.5]

    def test_default_random_jitter_within_ceiling(self):
        client = MagicMock()
        client.query.side_effect = [RuntimeError("a"), RuntimeError("b"), []]
        sleeps: list[float] = []
        fetcher = PaginatedFetcher(client, sleep=sleeps.append)

        fetcher.fetch(SITE, DATE)

        assert 2.0 <= sleeps[0] < 3.0
        assert 4.0 <= sleeps[1] < 5.0

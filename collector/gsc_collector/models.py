"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RawAnalyticsRow:
    """Search Console API が返す 1 行 (page, query, device, country, searchAppearance)."""

    keys: tuple[str | None, ...] = ()
    clicks: float | None = None
    impressions: float | None = None
    ctr: float | None = None
    position: float | None = None

    @classmethod
    def from_api(cls, payload: dict) -> RawAnalyticsRow:
        """API レスポンスの rows[] 要素から生成する."""
        return cls(
            keys=tuple(payload.get("keys") or ()),
            clicks=payload.get("clicks"),
            impressions=payload.get("impressions"),
            ctr=payload.get("ctr"),
            position=payload.get("position"),
        )


@dataclass(frozen=True)
class NormalizedRecord:
    """ストアに書き込む正規化済みレコード.

    ingested_at と id はストア側で付与するため持たない。
    """

    site_property: str
    normalized_url: str
    query: str
    date: str  # YYYY-MM-DD
    impressions: float
    clicks: float
    position: float
    ctr: float
    device: str
    country: str
    search_appearance: str

    def to_document(self) -> dict:
        """ストアのカラム名に合わせた dict を返す."""
        return {
            "site_property": self.site_property,
            "normalized_url": self.normalized_url,
            "query": self.query,
            "date": self.date,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "position": self.position,
            "ctr": self.ctr,
            "device": self.device,
            "country": self.country,
            "search_appearance": self.search_appearance,
        }


@dataclass(frozen=True)
class DayOutcome:
    """1 日分の処理結果."""

    date: str
    rows_fetched: int = 0
    rows_written: int = 0
    error: str | None = None  # None = 成功

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class IngestionResult:
    """期間全体の取り込み結果.

    success はループが最後まで回ったかどうかを表す。
    日単位の失敗は days / failed_dates で確認する。
    """

    success: bool
    total_rows_written: int
    days: tuple[DayOutcome, ...] = field(default_factory=tuple)

    @property
    def failed_dates(self) -> list[str]:
        return [d.date for d in self.days if not d.ok]

    @property
    def all_days_succeeded(self) -> bool:
        return self.success and not self.failed_dates

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "totalRowsWritten": self.total_rows_written,
            "failedDates": self.failed_dates,
        }

"""API 行の正規化モジュール.

正規化は純粋関数で、例外を投げない。
パースできない URL は INVALID_URL に置き換える。
"""

from __future__ import annotations

import logging
from urllib.parse import unquote_plus, urlsplit

from gsc_collector.models import NormalizedRecord, RawAnalyticsRow

logger = logging.getLogger(__name__)

INVALID_URL = "INVALID_URL"
UNKNOWN = "UNKNOWN"
NO_SEARCH_APPEARANCE = "NONE"

_TRACKING_PREFIX = "utm_"
_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(raw_url: str | None) -> str:
    """URL を正規化する.

    - utm_* パラメータを除去（大文字小文字を区別しない）。残りは順序・値を維持
    - スキーム・ホスト・パスを小文字化
    - パス末尾の / を除去（ルート / も含む）
    - フラグメント・ユーザー情報・デフォルトポートは落とす

    Returns:
        正規化後の URL。空文字やパース不能な場合は INVALID_URL。
    """
    if not raw_url:
        return INVALID_URL

    try:
        parts = urlsplit(raw_url.strip())
        host = parts.hostname
        port = parts.port
    except ValueError:
        # 不正なポート・IPv6 ブラケットなど
        logger.warning("URL をパースできません: %r", raw_url)
        return INVALID_URL

    if not parts.scheme or not host:
        logger.warning("URL をパースできません: %r", raw_url)
        return INVALID_URL

    scheme = parts.scheme.lower()
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{port}"

    path = parts.path.lower().rstrip("/")
    query = _strip_tracking_params(parts.query)

    url = f"{scheme}://{netloc}{path}"
    if query:
        url = f"{url}?{query}"
    return url


def _strip_tracking_params(query: str) -> str:
    """クエリ文字列から utm_* を除去する. 残りのセグメントは生のまま返す."""
    kept = []
    for segment in query.split("&"):
        if not segment:
            continue
        name = unquote_plus(segment.split("=", 1)[0])
        if name.lower().startswith(_TRACKING_PREFIX):
            continue
        kept.append(segment)
    return "&".join(kept)


def normalize_row(raw_row: RawAnalyticsRow, site_property: str, date: str) -> NormalizedRecord:
    """API の 1 行を正規化済みレコードに変換する."""
    keys = list(raw_row.keys[:5])
    keys += [None] * (5 - len(keys))
    page, query, device, country, search_appearance = keys

    return NormalizedRecord(
        site_property=site_property,
        normalized_url=normalize_url(page),
        query=query or "",
        date=date,
        impressions=raw_row.impressions or 0,
        clicks=raw_row.clicks or 0,
        position=raw_row.position or 0,
        ctr=raw_row.ctr or 0,
        device=device or UNKNOWN,
        country=(country or UNKNOWN).upper(),
        search_appearance=search_appearance or NO_SEARCH_APPEARANCE,
    )

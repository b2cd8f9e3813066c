"""ストア書き込みモジュール.

コレクションパス "a/b/c" は Supabase のスキーマ a・テーブル b_c に対応する
（ingestion/gsc/daily → ingestion.gsc_daily）。
id と ingested_at はテーブルのデフォルト値（gen_random_uuid(), now()）で付与する。
"""

from __future__ import annotations

import logging
from typing import Iterator, Protocol, Sequence

from gsc_collector.config import BATCH_SIZE
from gsc_collector.models import NormalizedRecord

logger = logging.getLogger(__name__)


class WriteBatch(Protocol):
    def add(self, collection_path: str, document: dict) -> None:
        ...

    def commit(self) -> None:
        ...


class DocumentStore(Protocol):
    """アトミックな一括作成ができるストア."""

    def batch(self) -> WriteBatch:
        ...


def split_collection_path(collection_path: str) -> tuple[str, str]:
    """コレクションパスを (スキーマ, テーブル) に分解する."""
    segments = [s for s in collection_path.split("/") if s]
    if len(segments) < 2:
        raise ValueError(f"コレクションパスは 'schema/table' 以上の深さが必要です: {collection_path!r}")
    return segments[0], "_".join(segments[1:])


class SupabaseWriteBatch:
    """1 回の commit で PostgREST の一括 insert を 1 回発行するバッチ.

    1 つの insert は 1 ステートメントなのでアトミックに反映される。
    そのため 1 バッチに入れられるコレクションは 1 つだけ。
    """

    def __init__(self, client) -> None:
        self._client = client
        self._collection_path: str | None = None
        self._documents: list[dict] = []

    def add(self, collection_path: str, document: dict) -> None:
        if self._collection_path is None:
            self._collection_path = collection_path
        elif collection_path != self._collection_path:
            raise ValueError(
                f"1 バッチに複数のコレクションは混在できません: "
                f"{self._collection_path!r}, {collection_path!r}"
            )
        self._documents.append(document)

    def commit(self) -> None:
        if not self._documents:
            return
        schema, table = split_collection_path(self._collection_path)
        self._client.schema(schema).table(table).insert(self._documents).execute()
        self._collection_path = None
        self._documents = []


class SupabaseDocumentStore:
    """Supabase クライアントを DocumentStore として扱う."""

    def __init__(self, client) -> None:
        self._client = client

    def batch(self) -> SupabaseWriteBatch:
        return SupabaseWriteBatch(self._client)


def _chunks(records: Sequence[NormalizedRecord], size: int) -> Iterator[Sequence[NormalizedRecord]]:
    for i in range(0, len(records), size):
        yield records[i:i + size]


def persist_in_batches(
    store: DocumentStore,
    collection_path: str,
    records: Sequence[NormalizedRecord],
    batch_size: int = BATCH_SIZE,
) -> None:
    """レコードを batch_size 件ずつ順番にコミットする.

    0 件ならストアに一切触れない。
    コミットに失敗した時点で中断し、元の例外をそのまま送出する（残りは書かない）。
    """
    if not records:
        return

    logger.info(
        "%d 件を '%s' に書き込み (バッチサイズ %d)", len(records), collection_path, batch_size
    )
    for chunk in _chunks(records, batch_size):
        batch = store.batch()
        for record in chunk:
            batch.add(collection_path, record.to_document())
        try:
            batch.commit()
        except Exception:
            logger.exception("バッチのコミットに失敗: collection=%s", collection_path)
            raise
        logger.info("%d 件のバッチをコミット", len(chunk))

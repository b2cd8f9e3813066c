"""指数バックオフ（ジッター付き）."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable

from gsc_collector.config import BASE_DELAY, JITTER_CEILING, MAX_ATTEMPTS


@dataclass(frozen=True)
class BackoffPolicy:
    """ページ単位のリトライ方針.

    max_attempts はリクエスト回数の上限（初回を含む）。
    """

    max_attempts: int = MAX_ATTEMPTS
    base_delay: float = BASE_DELAY  # 秒
    jitter_ceiling: float = JITTER_CEILING  # 秒

    def delay(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """attempt 回目の失敗後に待機する秒数: 2^attempt * base + [0, ceiling) のジッター."""
        return (2 ** attempt) * self.base_delay + rand() * self.jitter_ceiling

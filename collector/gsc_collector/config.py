"""設定モジュール — 環境変数・定数定義."""

import base64
import binascii
import json
import os
from pathlib import Path

from dotenv import load_dotenv

from gsc_collector.errors import ConfigError

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- Search Console API ---
SEARCH_ANALYTICS_URL_TEMPLATE = (
    "https://searchconsole.googleapis.com/webmasters/v3/sites/{site}/searchAnalytics/query"
)
SEARCH_CONSOLE_SCOPES = ["https://www.googleapis.com/auth/webmasters.readonly"]
DIMENSIONS = ["page", "query", "device", "country", "searchAppearance"]
SEARCH_TYPE = "web"
ROW_LIMIT = 25000  # API の 1 リクエスト上限

# --- リトライ設定 ---
MAX_ATTEMPTS = 5
BASE_DELAY = 1.0  # 秒
JITTER_CEILING = 1.0  # 秒
REQUEST_TIMEOUT = 30  # 秒

# --- 書き込み先 ---
COLLECTION_PATH = os.environ.get("GSC_COLLECTION_PATH", "ingestion/gsc/daily")
BATCH_SIZE = 500

# --- 実行対象 ---
SITE_PROPERTY = os.environ.get("GSC_SITE_PROPERTY", "")
DEFAULT_LAG_DAYS = 3  # Search Console の集計遅延

# --- ログ ---
LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_DIR.mkdir(exist_ok=True)


def get_supabase_settings() -> tuple[str, str]:
    """Supabase の接続情報 (URL, シークレットキー) を返す."""
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SECRET_KEY")
    if not url or not key:
        raise ConfigError("SUPABASE_URL と SUPABASE_SECRET_KEY を設定してください")
    return url, key


def load_service_account_info() -> dict:
    """GSC_SERVICE_ACCOUNT_JSON_BASE64 をデコードしてサービスアカウント情報を返す.

    Raises:
        ConfigError: 未設定、または Base64 / JSON として不正な場合。
    """
    encoded = os.environ.get("GSC_SERVICE_ACCOUNT_JSON_BASE64")
    if not encoded:
        raise ConfigError("GSC_SERVICE_ACCOUNT_JSON_BASE64 が設定されていません")

    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
        info = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(
            "サービスアカウント認証情報をパースできません。Base64 文字列を確認してください"
        ) from e

    if not isinstance(info, dict):
        raise ConfigError("サービスアカウント認証情報が JSON オブジェクトではありません")
    return info

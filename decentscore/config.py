# decentscore/config.py
import os


def _weights_from_env() -> dict:
    return {
        "ownership": float(os.environ.get("WEIGHT_OWNERSHIP", "0.30")),
        "controlRisk": float(os.environ.get("WEIGHT_CONTROL_RISK", "0.30")),
        "liquidity": float(os.environ.get("WEIGHT_LIQUIDITY", "0.15")),
        "governance": float(os.environ.get("WEIGHT_GOVERNANCE", "0.15")),
        "chainLevel": float(os.environ.get("WEIGHT_CHAIN_LEVEL", "0.05")),
        "codeAssurance": float(os.environ.get("WEIGHT_CODE_ASSURANCE", "0.05")),
    }


class BaseConfig:
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://redis:6379/0")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://redis:6379/0")

    # --- DB ---
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "postgresql+psycopg2://app_user:app_pass@db:5432/app_db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # --- RPC ---
    # RPC_URL_<chainId> tiene prioridad sobre Infura
    INFURA_PROJECT_ID = os.environ.get("INFURA_PROJECT_ID", "")

    # --- Providers ---
    ETHERSCAN_V2_BASE = os.environ.get("ETHERSCAN_V2_BASE", "https://api.etherscan.io/v2/api")
    ETHERSCAN_API_KEY = os.environ.get("ETHERSCAN_API_KEY", "")
    ETHPLORER_URL = os.environ.get("ETHPLORER_URL", "https://api.ethplorer.io")
    ETHPLORER_KEY = os.environ.get("ETHPLORER_KEY", "freekey")
    COVALENT_API_URL = os.environ.get("COVALENT_API_URL", "https://api.covalenthq.com/v1")
    COVALENT_API_KEY = os.environ.get("COVALENT_API_KEY", "")
    DEFILLAMA_YIELDS_URL = os.environ.get("DEFILLAMA_YIELDS_URL", "https://yields.llama.fi/pools")
    SNAPSHOT_GRAPHQL = os.environ.get("SNAPSHOT_GRAPHQL", "https://hub.snapshot.org/graphql")
    TALLY_GRAPHQL = os.environ.get("TALLY_GRAPHQL", "https://api.tally.xyz/query")
    TALLY_API_KEY = os.environ.get("TALLY_API_KEY", "")
    AUDITS_FILE = os.environ.get("AUDITS_FILE", "")

    HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "20"))
    HOLDER_SAMPLE_SIZE = int(os.environ.get("HOLDER_SAMPLE_SIZE", "25"))
    SNAPSHOT_SPACES_TTL_SECONDS = int(os.environ.get("SNAPSHOT_SPACES_TTL_SECONDS", "900"))
    PROVIDER_MAX_WORKERS = int(os.environ.get("PROVIDER_MAX_WORKERS", "8"))

    # --- Scoring ---
    SCORE_WEIGHTS = _weights_from_env()
    CALC_VERSION = "0.4.0"

    # --- Refresh / cola ---
    REFRESH_LOCK_STALE_SECONDS = int(os.environ.get("REFRESH_LOCK_STALE_SECONDS", "300"))
    REFRESH_LOCK_RETENTION_SECONDS = int(os.environ.get("REFRESH_LOCK_RETENTION_SECONDS", "3600"))
    QUEUE_BATCH_SIZE = int(os.environ.get("QUEUE_BATCH_SIZE", "5"))
    QUEUE_DRAIN_INTERVAL_SECONDS = int(os.environ.get("QUEUE_DRAIN_INTERVAL_SECONDS", "60"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class ProductionConfig(BaseConfig):
    DEBUG = False
    ENV = "production"


class TestingConfig(BaseConfig):
    TESTING = True
    ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CELERY_BROKER_URL = "memory://"
    CELERY_RESULT_BACKEND = "cache+memory://"
    ETHERSCAN_API_KEY = ""
    COVALENT_API_KEY = ""

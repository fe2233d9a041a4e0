# decentscore/models/__init__.py
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

def init_app(app):
    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
    db.init_app(app)
    migrate.init_app(app, db)

# 👇 Importaciones para registrar los modelos
from .asset import Asset  # noqa
from .evidence import (  # noqa
    ContractIntrospection,
    HoldersSnapshot,
    LiquiditySnapshot,
    GovernanceSnapshot,
    ChainStats,
    Audit,
)
from .score import Score  # noqa
from .refresh_lock import RefreshLock, RefreshHistory  # noqa
from .job import Job  # noqa
from .scoring_config import ScoringConfig  # noqa

__all__ = [
    "db",
    "migrate",
    "Asset",
    "ContractIntrospection",
    "HoldersSnapshot",
    "LiquiditySnapshot",
    "GovernanceSnapshot",
    "ChainStats",
    "Audit",
    "Score",
    "RefreshLock",
    "RefreshHistory",
    "Job",
    "ScoringConfig",
]

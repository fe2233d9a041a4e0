# decentscore/models/refresh_lock.py
from sqlalchemy import text

from decentscore.models import db
from decentscore.utils import utcnow, iso

REFRESH_CLASSES = ("full", "volatile", "semiVolatile")

LOCK_IN_PROGRESS = "in_progress"
LOCK_COMPLETED = "completed"
LOCK_FAILED = "failed"
LOCK_TERMINAL = (LOCK_COMPLETED, LOCK_FAILED)


class RefreshLock(db.Model):
    __tablename__ = "refresh_locks"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False)
    refresh_class = db.Column(db.String(16), nullable=False)
    owner = db.Column(db.String(64), nullable=False, default="system")
    status = db.Column(db.String(16), nullable=False, default=LOCK_IN_PROGRESS, index=True)
    acquired_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    released_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.Index("ix_refresh_locks_asset_class", "asset_id", "refresh_class"),
        # a lo sumo un lock en curso por (asset, clase)
        db.Index(
            "uq_refresh_locks_in_progress",
            "asset_id",
            "refresh_class",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "refresh_class": self.refresh_class,
            "owner": self.owner,
            "status": self.status,
            "acquired_at": iso(self.acquired_at),
            "released_at": iso(self.released_at),
        }


class RefreshHistory(db.Model):
    __tablename__ = "refresh_history"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False, index=True)
    refresh_class = db.Column(db.String(16), nullable=False)
    started_at = db.Column(db.DateTime, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    success = db.Column(db.Boolean, nullable=False)
    error = db.Column(db.Text, nullable=True)
    provider_calls = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "refresh_class": self.refresh_class,
            "started_at": iso(self.started_at),
            "completed_at": iso(self.completed_at),
            "success": self.success,
            "error": self.error,
            "provider_calls": self.provider_calls,
        }

from decentscore.models import db
from decentscore.models.types import JSONBCompat
from decentscore.utils import utcnow, iso

JOB_QUEUED = "queued"
JOB_RUNNING = "running"
JOB_DONE = "done"
JOB_ERROR = "error"
JOB_TERMINAL = (JOB_DONE, JOB_ERROR)

JOB_REFRESH_ASSET = "refresh_asset"


class Job(db.Model):
    __tablename__ = "jobs"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False, default=JOB_REFRESH_ASSET)
    params = db.Column(JSONBCompat(), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=JOB_QUEUED)
    priority = db.Column(db.Integer, nullable=False, default=0)
    error = db.Column(db.Text, nullable=True)
    result = db.Column(JSONBCompat(), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    started_at = db.Column(db.DateTime, nullable=True)
    finished_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.Index("ix_jobs_status_priority_created", "status", "priority", "created_at"),
    )

    @property
    def asset_id(self):
        return (self.params or {}).get("asset_id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "params": self.params,
            "status": self.status,
            "priority": self.priority,
            "error": self.error,
            "result": self.result,
            "created_at": iso(self.created_at),
            "started_at": iso(self.started_at),
            "finished_at": iso(self.finished_at),
        }

# decentscore/models/scoring_config.py
from decentscore.models import db
from decentscore.models.types import JSONBCompat
from decentscore.utils import utcnow, iso


class ScoringConfig(db.Model):
    __tablename__ = "scoring_configs"

    id = db.Column(db.Integer, primary_key=True)
    weights = db.Column(JSONBCompat(), nullable=False)
    version = db.Column(db.String(16), nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "weights": self.weights,
            "version": self.version,
            "active": self.active,
            "created_at": iso(self.created_at),
        }

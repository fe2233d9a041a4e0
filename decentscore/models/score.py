# decentscore/models/score.py
from decentscore.models import db
from decentscore.models.types import JSONBCompat
from decentscore.utils import utcnow, iso


class Score(db.Model):
    """Append-only; the newest row per asset is the active scorecard."""
    __tablename__ = "scores"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False)
    observed_at_block = db.Column(db.BigInteger, nullable=False, default=0)

    sub_scores = db.Column(JSONBCompat(), nullable=False)   # {ownership, controlRisk, ...}
    weights = db.Column(JSONBCompat(), nullable=False)      # post-renormalizacion, suman 1
    confidence = db.Column(JSONBCompat(), nullable=False)   # 0.2..1.0 por categoria
    total = db.Column(db.Float, nullable=False)
    calc_version = db.Column(db.String(16), nullable=False)
    refresh_class = db.Column(db.String(16), nullable=False, default="full")

    # evidencia usada para este score (puede ser de corridas anteriores)
    contract_id = db.Column(db.Integer, db.ForeignKey("contract_introspections.id"), nullable=True)
    holders_id = db.Column(db.Integer, db.ForeignKey("holders_snapshots.id"), nullable=True)
    liquidity_id = db.Column(db.Integer, db.ForeignKey("liquidity_snapshots.id"), nullable=True)
    governance_id = db.Column(db.Integer, db.ForeignKey("governance_snapshots.id"), nullable=True)
    chain_stats_id = db.Column(db.Integer, db.ForeignKey("chain_stats.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.Index("ix_scores_asset_block", "asset_id", "observed_at_block"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "observed_at_block": self.observed_at_block,
            "sub_scores": self.sub_scores,
            "weights": self.weights,
            "confidence": self.confidence,
            "total": self.total,
            "calc_version": self.calc_version,
            "refresh_class": self.refresh_class,
            "created_at": iso(self.created_at),
        }

# decentscore/models/asset.py
from decentscore.models import db
from decentscore.models.types import Address
from decentscore.utils import utcnow

ASSET_PENDING = "pending"
ASSET_ACTIVE = "active"


class Asset(db.Model):
    __tablename__ = "assets"

    id = db.Column(db.Integer, primary_key=True)
    chain_id = db.Column(db.String(32), nullable=False)       # CAIP-2, p.ej. "eip155:1"
    address = db.Column(Address(), nullable=False)
    standard = db.Column(db.String(16), nullable=False, default="erc20")

    symbol = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=True)
    decimals = db.Column(db.Integer, nullable=True)
    icon_url = db.Column(db.String(512), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ASSET_PENDING, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("chain_id", "address", name="uq_assets_chain_address"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chain_id": self.chain_id,
            "address": self.address,
            "standard": self.standard,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "icon_url": self.icon_url,
            "status": self.status,
        }

# decentscore/providers/audits.py
"""
Audit registry read from a JSON file:

    {"eip155:1/0xabc...": [{"firm": "...", "report_url": "...", "date": 1700000000}]}
"""
import json
import logging
from pathlib import Path
from typing import List

from decentscore.errors import ProviderError
from decentscore.services.chains import to_caip_chain_id
from decentscore.services.evidence import AuditRecord

logger = logging.getLogger(__name__)


class AuditRegistry:
    name = "audits"

    def __init__(self, path: str = ""):
        self.path = path

    def _load(self) -> dict:
        if not self.path:
            return {}
        p = Path(self.path)
        if not p.exists():
            raise ProviderError(self.name, f"registry not found: {self.path}")
        try:
            return json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ProviderError(self.name, f"invalid registry: {e}") from e

    def fetch(self, chain_id, address: str) -> List[AuditRecord]:
        key = f"{to_caip_chain_id(chain_id)}/{address.lower()}"
        entries = self._load().get(key) or []
        out = []
        for e in entries:
            if not e.get("firm") or not e.get("report_url"):
                continue
            out.append(AuditRecord(
                firm=e["firm"],
                report_url=e["report_url"],
                date=int(e.get("date") or 0),
                severity_summary=e.get("severity_summary"),
            ))
        return out

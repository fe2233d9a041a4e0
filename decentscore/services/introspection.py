# decentscore/services/introspection.py
"""
Proxy and access-control introspection from raw storage reads and eth_call.

Nothing here needs an ABI: the EIP-1967 slots and the OpenZeppelin
AccessControl / Ownable / Pausable / TimelockController selectors are fixed
constants, and call data is encoded by hand.
"""
import logging
from typing import List, Optional

from decentscore.errors import UnsupportedChainError
from decentscore.services.chain_client import word_to_address, word_to_int
from decentscore.services.evidence import ContractEvidence, RoleHolder, Timelock

logger = logging.getLogger(__name__)

IMPLEMENTATION_SLOT = "0x360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc"
ADMIN_SLOT = "0xb53127684a568b3173ae13b9f8a6016e243e63b6e8ee1178d6a717850b5d6103"

SELECTORS = {
    "DEFAULT_ADMIN_ROLE": "0xa217fddf",
    "PAUSER_ROLE": "0xe63ab1e9",
    "getRoleMemberCount": "0xca15c873",
    "getRoleMember": "0x9010d07c",
    "owner": "0x8da5cb5b",
    "paused": "0x5c975abb",
    "getMinDelay": "0xf27a0c92",
}

PROXY_KIND_EIP1967 = "EIP-1967"
SECONDS_PER_DAY = 86400
MAX_ROLE_MEMBERS = 256


def pad32(hex_str: str) -> str:
    return hex_str[2:].rjust(64, "0") if hex_str.startswith("0x") else hex_str.rjust(64, "0")


def u256(n: int) -> str:
    return format(n, "x").rjust(64, "0")


def role_member_count_data(role_id: str) -> str:
    return SELECTORS["getRoleMemberCount"] + pad32(role_id)


def role_member_data(role_id: str, index: int) -> str:
    # selector ‖ role (32 bytes) ‖ index (32 bytes)
    return SELECTORS["getRoleMember"] + pad32(role_id) + u256(index)


def _empty(out: Optional[str]) -> bool:
    return not out or out == "0x"


def compute_risk_estimate(
    is_proxy: bool,
    has_admin_slot: bool,
    default_admins: List[str],
    pausers: List[str],
    paused: Optional[bool],
    timelock_delay_sec: Optional[int] = None,
) -> float:
    """Internal 0..1 risk signal kept next to the evidence for tuning."""
    risk = 0.1
    if is_proxy:
        risk += 0.25
    if has_admin_slot:
        risk += 0.1
    distinct_admins = len(set(a.lower() for a in default_admins))
    if distinct_admins <= 1:
        risk += 0.25
    elif distinct_admins <= 3:
        risk += 0.15
    else:
        risk += 0.05
    if pausers:
        risk += 0.1
    if paused:
        risk += 0.05
    if timelock_delay_sec:
        full_months = int(timelock_delay_sec // (30 * SECONDS_PER_DAY))
        risk -= min(0.15, 0.05 * full_months)
    return round(max(0.0, min(1.0, risk)), 3)


class Introspector:
    """Builds ``ContractEvidence`` from a chain client and an explorer client."""

    name = "introspection"

    def __init__(self, client, explorer=None):
        self.client = client
        self.explorer = explorer

    def _try(self, fn, *args) -> Optional[str]:
        """Single RPC read; reverts and transport errors degrade to None."""
        try:
            return fn(*args)
        except UnsupportedChainError:
            raise
        except Exception as e:
            logger.debug("rpc read failed (%s): %s", getattr(fn, "__name__", fn), e)
            return None

    # --- EIP-1967 ---

    def read_eip1967(self, chain_id, address: str) -> dict:
        impl = word_to_address(self._try(self.client.get_storage_at, chain_id, address, IMPLEMENTATION_SLOT))
        admin = word_to_address(self._try(self.client.get_storage_at, chain_id, address, ADMIN_SLOT))
        is_proxy = impl is not None
        if impl:
            code = self._try(self.client.get_code, chain_id, impl)
            if _empty(code):
                is_proxy = False
        return {"implementation": impl, "admin": admin, "is_proxy": is_proxy}

    # --- AccessControl ---

    def resolve_role(self, chain_id, address: str, role_name: str) -> Optional[str]:
        out = self._try(self.client.call, chain_id, address, SELECTORS[role_name])
        return None if _empty(out) else out

    def enumerate_role(self, chain_id, address: str, role_id: str) -> List[str]:
        count_raw = self._try(self.client.call, chain_id, address, role_member_count_data(role_id))
        count = word_to_int(count_raw)
        if not count:
            return []
        if count > MAX_ROLE_MEMBERS:
            logger.warning(
                "role %s reports %s members, reading the first %s", role_id, count, MAX_ROLE_MEMBERS,
                extra={"provider": "introspection"},
            )
            count = MAX_ROLE_MEMBERS
        members = []
        for i in range(count):
            out = self._try(self.client.call, chain_id, address, role_member_data(role_id, i))
            if _empty(out):
                # un fallo a mitad de la enumeracion deja la lista vacia
                return []
            members.append("0x" + pad32(out)[-40:].lower())
        return members

    def read_owner(self, chain_id, address: str) -> Optional[str]:
        return word_to_address(self._try(self.client.call, chain_id, address, SELECTORS["owner"]))

    def read_paused(self, chain_id, address: str) -> Optional[bool]:
        out = self._try(self.client.call, chain_id, address, SELECTORS["paused"])
        value = word_to_int(out)
        return None if value is None else value != 0

    def detect_timelock(self, chain_id, candidates: List[str]) -> Optional[Timelock]:
        seen = set()
        for cand in candidates:
            if not cand or cand in seen:
                continue
            seen.add(cand)
            delay = word_to_int(self._try(self.client.call, chain_id, cand, SELECTORS["getMinDelay"]))
            if delay:
                return Timelock(address=cand, delay_sec=delay)
        return None

    def fetch(self, chain_id, address: str) -> ContractEvidence:
        address = address.lower()
        proxy = self.read_eip1967(chain_id, address)

        roles: List[RoleHolder] = []
        default_admins: List[str] = []
        pausers: List[str] = []

        admin_role = self.resolve_role(chain_id, address, "DEFAULT_ADMIN_ROLE")
        if admin_role:
            default_admins = self.enumerate_role(chain_id, address, admin_role)
        pauser_role = self.resolve_role(chain_id, address, "PAUSER_ROLE")
        if pauser_role:
            pausers = self.enumerate_role(chain_id, address, pauser_role)
        roles += [RoleHolder("DEFAULT_ADMIN_ROLE", a) for a in default_admins]
        roles += [RoleHolder("PAUSER_ROLE", a) for a in pausers]

        owner = self.read_owner(chain_id, address)
        paused = self.read_paused(chain_id, address)
        timelock = self.detect_timelock(chain_id, [proxy["admin"], owner] + default_admins)

        verified = self.explorer.is_verified(chain_id, address) if self.explorer else False

        is_proxy = proxy["is_proxy"]
        return ContractEvidence(
            address=address,
            verified=verified,
            upgradeable=is_proxy,
            proxy_kind=PROXY_KIND_EIP1967 if is_proxy else None,
            implementation_address=proxy["implementation"],
            admin_address=proxy["admin"],
            owner_address=owner,
            roles=roles,
            pausable=bool(pausers) or paused is not None,
            paused=paused,
            timelock=timelock,
            risk_estimate=compute_risk_estimate(
                is_proxy,
                proxy["admin"] is not None,
                default_admins,
                pausers,
                paused,
                timelock.delay_sec if timelock else None,
            ),
        )

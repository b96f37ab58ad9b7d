from __future__ import annotations

from dataclasses import dataclass, field
import copy
from decimal import Decimal
from typing import Any, Dict, List, Optional

from refract.ledger.constants import STARTING_MINT_FEE_BPS, VESTING_POOL_ACCOUNT
from refract.ledger.tiers import from_fixed_index, get_interest_rate


Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


@dataclass(frozen=True)
class LedgerView:
    """
    Immutable read-only ledger view used by the API and tests.
    """

    time: int = 0
    accounts: Dict[str, Any] = field(default_factory=dict)
    token: Dict[str, Any] = field(default_factory=dict)
    vesting: Dict[str, Any] = field(default_factory=dict)
    bonds: Dict[str, Any] = field(default_factory=dict)
    distributor: Dict[str, Any] = field(default_factory=dict)
    rewards: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_ledger(cls, state: Dict[str, Any]) -> "LedgerView":
        def _d(key: str) -> Dict[str, Any]:
            v = state.get(key)
            return copy.deepcopy(v) if isinstance(v, dict) else {}

        return cls(
            time=_as_int(state.get("time"), 0),
            accounts=_d("accounts"),
            token=_d("token"),
            vesting=_d("vesting"),
            bonds=_d("bonds"),
            distributor=_d("distributor"),
            rewards=_d("rewards"),
            params=_d("params"),
        )

    # ---- accounts / token ----

    def get_account(self, account_id: str) -> Dict[str, Any]:
        acct = self.accounts.get(account_id)
        return acct if isinstance(acct, dict) else {}

    def balance_of(self, account_id: str) -> int:
        return _as_int(self.get_account(account_id).get("balance"), 0)

    def get_nonce(self, account_id: str) -> int:
        return _as_int(self.get_account(account_id).get("nonce"), 0)

    def is_fee_exempt(self, account_id: str) -> bool:
        return bool((self.token.get("fee_exempt") or {}).get(account_id, False))

    @property
    def total_supply(self) -> int:
        return _as_int(self.token.get("total_minted")) - _as_int(self.token.get("total_burned"))

    @property
    def fee_pool(self) -> int:
        return _as_int(self.token.get("fee_pool"))

    @property
    def refraction_fee_percent(self) -> int:
        return _as_int(self.token.get("refraction_fee_percent"))

    # ---- vesting ----

    @property
    def current_mint_fee_bps(self) -> int:
        return _as_int(self.vesting.get("current_mint_fee_bps"), STARTING_MINT_FEE_BPS)

    @property
    def last_year_index(self) -> int:
        return _as_int(self.vesting.get("last_year_index"))

    @property
    def vesting_pool_balance(self) -> int:
        return self.balance_of(VESTING_POOL_ACCOUNT)

    def cohort(self, year: int) -> Optional[Dict[str, Any]]:
        c = (self.vesting.get("cohorts") or {}).get(str(int(year)))
        return c if isinstance(c, dict) else None

    def cohort_years(self) -> List[int]:
        return sorted(int(y) for y in (self.vesting.get("cohorts") or {}).keys())

    # ---- bonds / distributor ----

    def bond(self, cert_id: Any) -> Optional[Dict[str, Any]]:
        b = (self.bonds.get("by_id") or {}).get(str(cert_id))
        return b if isinstance(b, dict) else None

    def bond_json(self, cert_id: Any) -> Optional[Json]:
        """Bond record with the refraction index rendered as a decimal string."""
        b = self.bond(cert_id)
        if b is None:
            return None
        out = dict(b)
        out["refraction_index"] = str(from_fixed_index(_as_int(b.get("refraction_index"))))
        out["interest_rate"] = get_interest_rate(_as_int(b.get("maturity_days")))
        return out

    def refraction_index_of(self, cert_id: Any) -> Optional[Decimal]:
        b = self.bond(cert_id)
        return None if b is None else from_fixed_index(_as_int(b.get("refraction_index")))

    @property
    def last_epoch_time(self) -> int:
        return _as_int(self.distributor.get("last_epoch_time"))


__all__ = ["LedgerView"]

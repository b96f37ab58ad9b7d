from __future__ import annotations

from decimal import Decimal

import pytest

from refract.ledger import bonds, token
from refract.ledger.constants import BOND_REGISTRY_ACCOUNT, DAY_SECONDS, NATIVE_ASSET
from refract.ledger.state import LedgerView
from refract.runtime.collaborators import StateAssetProvider
from refract.runtime.context import ApplyContext
from refract.runtime.domain_apply import apply_tx_atomic
from refract.runtime.errors import (
    AlreadyWithdrawn,
    ApplyError,
    CollaboratorFailed,
    InsufficientBalance,
    InvalidAmount,
    InvalidFee,
    InvalidMaturity,
    InvalidParameter,
    NotFound,
    NotMatured,
    NotOwner,
    Reentrancy,
)

T0 = 1_700_000_000


def _state() -> dict:
    st: dict = {"time": T0}
    StateAssetProvider().credit(st, NATIVE_ASSET, "alice", 5000)
    return st


def _deposit(st: dict, ctx: ApplyContext, *, principal: int = 1000, days: int = 360, **kw) -> int:
    kw.setdefault("value", principal)
    return bonds.deposit(
        st,
        ctx,
        depositor=kw.pop("depositor", "alice"),
        principal=principal,
        maturity_days=days,
        bond_fee_bps=kw.pop("bond_fee_bps", 0),
        **kw,
    )


def test_deposit_records_bond_and_mints_receipt() -> None:
    st, ctx = _state(), ApplyContext()

    cert_id = _deposit(st, ctx)

    assert cert_id == 1
    bond = bonds.get_bond(st, cert_id)
    assert bond["principal"] == 1000
    assert bond["refraction_index"] == 460
    assert bond["start_time"] == T0
    assert bond["withdrawn"] is False
    assert token.balance_of(st, "alice") == 1000
    assert st["assets"][NATIVE_ASSET] == {"alice": 4000, BOND_REGISTRY_ACCOUNT: 1000}
    assert st["bonds"]["custody"][NATIVE_ASSET] == 1000

    view = LedgerView.from_ledger(st)
    assert view.refraction_index_of(cert_id) == Decimal("46")
    assert view.bond_json(cert_id)["interest_rate"] == 15


def test_half_step_index_is_stored_exactly() -> None:
    st, ctx = _state(), ApplyContext()
    cert_id = _deposit(st, ctx, days=15)
    assert LedgerView.from_ledger(st).bond_json(cert_id)["refraction_index"] == "11.5"


def test_withdraw_at_exact_maturity_pays_yield() -> None:
    st, ctx = _state(), ApplyContext()
    cert_id = _deposit(st, ctx)

    st["time"] = T0 + 360 * DAY_SECONDS - 1
    with pytest.raises(NotMatured):
        bonds.withdraw(st, ctx, caller="alice", cert_id=cert_id)

    st["time"] = T0 + 360 * DAY_SECONDS
    out = bonds.withdraw(st, ctx, caller="alice", cert_id=cert_id)

    assert out == {"cert_id": 1, "principal": 1000, "payout": 150}
    assert token.balance_of(st, "alice") == 150
    assert st["assets"][NATIVE_ASSET]["alice"] == 5000
    assert bonds.get_bond(st, cert_id)["withdrawn"] is True

    with pytest.raises(AlreadyWithdrawn):
        bonds.withdraw(st, ctx, caller="alice", cert_id=cert_id)


def test_withdraw_checks_owner_before_maturity() -> None:
    st, ctx = _state(), ApplyContext()
    cert_id = _deposit(st, ctx)
    with pytest.raises(NotOwner):
        bonds.withdraw(st, ctx, caller="mallory", cert_id=cert_id)


def test_withdraw_unknown_certificate() -> None:
    st, ctx = _state(), ApplyContext()
    with pytest.raises(NotFound):
        bonds.withdraw(st, ctx, caller="alice", cert_id=42)


@pytest.mark.parametrize(
    "kw,err",
    [
        ({"principal": 0}, InvalidAmount),
        ({"days": 6}, InvalidMaturity),
        ({"days": 366}, InvalidMaturity),
        ({"bond_fee_bps": 101}, InvalidFee),
        ({"bond_fee_bps": -1}, InvalidFee),
        ({"principal": 10.5}, InvalidAmount),
        ({"days": 359.99}, InvalidMaturity),
        ({"days": "30.5"}, InvalidMaturity),
        ({"bond_fee_bps": 0.5}, InvalidFee),
        ({"value": 999}, InvalidParameter),
    ],
)
def test_deposit_parameter_validation(kw: dict, err: type) -> None:
    st, ctx = _state(), ApplyContext()
    with pytest.raises(err) as e:
        _deposit(st, ctx, **kw)
    assert e.value.code == "invalid_parameter"
    assert "bonds" not in st or not st["bonds"].get("by_id")


def test_whole_number_floats_are_stored_as_ints() -> None:
    st, ctx = _state(), ApplyContext()
    cert_id = _deposit(st, ctx, days=360.0, bond_fee_bps=1.0)

    bond = bonds.get_bond(st, cert_id)
    assert bond["maturity_days"] == 360 and type(bond["maturity_days"]) is int
    assert bond["bond_fee_bps"] == 1
    assert bond["refraction_index"] == 460


def test_external_asset_deposit_takes_no_native_value() -> None:
    st, ctx = _state(), ApplyContext()
    StateAssetProvider().credit(st, "usdc", "alice", 700)

    cert_id = _deposit(st, ctx, principal=700, days=30, asset="usdc", value=0)

    assert bonds.get_bond(st, cert_id)["asset"] == "usdc"
    with pytest.raises(InvalidParameter):
        _deposit(st, ctx, principal=1, days=30, asset="usdc", value=1)


def _bond_tx(tx_type: str, payload: dict, *, value: int = 0) -> dict:
    return {"tx_type": tx_type, "signer": "alice", "nonce": 1, "payload": payload, "value": value}


def test_failed_asset_pull_rolls_back_whole_tx() -> None:
    st, ctx = _state(), ApplyContext()
    before = dict(st["assets"][NATIVE_ASSET])

    with pytest.raises(CollaboratorFailed):
        apply_tx_atomic(st, _bond_tx("BOND_DEPOSIT", {"principal": 6000, "maturity_days": 30}, value=6000), ctx)

    assert st["assets"][NATIVE_ASSET] == before
    assert token.balance_of(st, "alice") == 0
    assert not (st.get("certificates") or {}).get("owners")


def test_withdraw_without_receipt_balance_rolls_back() -> None:
    st, ctx = _state(), ApplyContext()
    cert_id = _deposit(st, ctx)
    token.transfer(st, "alice", "bob", 500)
    st["time"] = T0 + 360 * DAY_SECONDS

    with pytest.raises(InsufficientBalance):
        apply_tx_atomic(st, _bond_tx("BOND_WITHDRAW", {"cert_id": cert_id}), ctx)

    assert bonds.get_bond(st, cert_id)["withdrawn"] is False
    assert "guards" not in st


class _ReenteringAssets(StateAssetProvider):
    """Calls back into the registry while the first deposit is in flight."""

    ctx: ApplyContext

    def transfer_in(self, state, asset, frm, amount):
        bonds.deposit(state, self.ctx, depositor=frm, principal=1, maturity_days=30, bond_fee_bps=0, value=1)
        return super().transfer_in(state, asset, frm, amount)


def test_reentrant_deposit_is_blocked_and_rolled_back() -> None:
    st = _state()
    assets = _ReenteringAssets()
    ctx = ApplyContext(assets=assets)
    assets.ctx = ctx

    with pytest.raises(Reentrancy):
        apply_tx_atomic(st, _bond_tx("BOND_DEPOSIT", {"principal": 100, "maturity_days": 30}, value=100), ctx)

    assert "bonds" not in st
    assert "guards" not in st


class _WithdrawAgainOnPayout(StateAssetProvider):
    """Tries to withdraw the same certificate again while the principal is paid out."""

    ctx: ApplyContext
    cert_id: int

    def __init__(self) -> None:
        super().__init__()
        self.inner: list = []

    def transfer_out(self, state, asset, to, amount):
        withdrawn = bonds.get_bond(state, self.cert_id)["withdrawn"]
        try:
            bonds.withdraw(state, self.ctx, caller=to, cert_id=self.cert_id)
        except Reentrancy as exc:
            self.inner.append((exc.code, withdrawn))
        return super().transfer_out(state, asset, to, amount)


def test_reentrant_withdraw_is_blocked_and_pays_once() -> None:
    st = _state()
    assets = _WithdrawAgainOnPayout()
    ctx = ApplyContext(assets=assets)
    assets.ctx = ctx
    assets.cert_id = _deposit(st, ctx)
    st["time"] = T0 + 360 * DAY_SECONDS

    out = bonds.withdraw(st, ctx, caller="alice", cert_id=assets.cert_id)

    assert assets.inner == [("reentrancy", True)]
    assert out["payout"] == 150
    assert token.balance_of(st, "alice") == 150
    assert st["assets"][NATIVE_ASSET]["alice"] == 5000
    assert st["bonds"]["custody"][NATIVE_ASSET] == 0
    assert [e["type"] for e in st["events"]].count("BOND_WITHDRAWN") == 1
    assert "guards" not in st


def test_reentrancy_error_is_an_apply_error() -> None:
    assert issubclass(Reentrancy, ApplyError)

from __future__ import annotations

import pytest

from refract.ledger import bonds, token
from refract.ledger.constants import (
    BOND_REGISTRY_ACCOUNT,
    NATIVE_ASSET,
    REFRACTION_POOL_ACCOUNT,
    REWARD_INDEX_SCALE,
)
from refract.ledger.distributor import distribute_refraction_fees
from refract.runtime.collaborators import StateAssetProvider
from refract.runtime.context import ApplyContext
from refract.runtime.errors import NoFeesToDistribute


class _RecordingSink:
    def __init__(self) -> None:
        self.calls: list[int] = []

    def epoch_reward_share_index(self, state, amount):
        self.calls.append(int(amount))


def _state_with_fees() -> dict:
    st: dict = {"time": 1_700_000_000}
    token.mint(st, "alice", 1000)
    token.transfer(st, "alice", "bob", 1000)
    return st


def test_empty_pool_is_rejected() -> None:
    with pytest.raises(NoFeesToDistribute):
        distribute_refraction_fees({}, ApplyContext())


def test_distribution_moves_pool_to_registry_and_notifies_sink() -> None:
    st = _state_with_fees()
    sink = _RecordingSink()

    out = distribute_refraction_fees(st, ApplyContext(reward_sink=sink))

    assert out == {"amount": 50, "epoch": 1, "last_epoch_time": 1_700_000_000}
    assert sink.calls == [50]
    assert token.fee_pool(st) == 0
    assert token.balance_of(st, REFRACTION_POOL_ACCOUNT) == 0
    assert token.balance_of(st, BOND_REGISTRY_ACCOUNT) == 50
    assert token.allowance(st, REFRACTION_POOL_ACCOUNT, BOND_REGISTRY_ACCOUNT) == 0

    with pytest.raises(NoFeesToDistribute):
        distribute_refraction_fees(st, ApplyContext(reward_sink=sink))


def test_share_index_parks_rewards_without_open_bonds() -> None:
    st = _state_with_fees()
    distribute_refraction_fees(st, ApplyContext())
    assert st["rewards"]["undistributed"] == 50
    assert st["rewards"]["share_index"] == 0


def test_share_index_weights_by_principal_and_refraction_index() -> None:
    st = _state_with_fees()
    ctx = ApplyContext()
    StateAssetProvider().credit(st, NATIVE_ASSET, "carol", 1000)
    bonds.deposit(st, ctx, depositor="carol", principal=1000, maturity_days=360, bond_fee_bps=0, value=1000)

    distribute_refraction_fees(st, ctx)

    weight = 1000 * 460
    delta = 50 * REWARD_INDEX_SCALE // weight
    assert st["rewards"]["share_index"] == delta
    assert st["rewards"]["undistributed"] == 50 - (delta * weight) // REWARD_INDEX_SCALE
    assert st["distributor"]["total_distributed"] == 50

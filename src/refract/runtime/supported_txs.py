from __future__ import annotations

# Fee-bearing ledger
TOKEN_TX_TYPES = (
    "TRANSFER",
    "APPROVE",
    "TRANSFER_FROM",
    "MINT",
    "BURN",
    "REFRACTION_FEE_PERCENT_SET",
    "FEE_EXEMPTION_SET",
)

# Vesting-scheduled minter
VESTING_TX_TYPES = (
    "MINT_AND_VEST",
    "CLAIM_VESTED",
)

# Bond registry
BOND_TX_TYPES = (
    "BOND_DEPOSIT",
    "BOND_WITHDRAW",
)

# Epoch fee distributor
DISTRIBUTOR_TX_TYPES = ("REFRACTION_FEES_DISTRIBUTE",)

SUPPORTED_TX_TYPES = frozenset(TOKEN_TX_TYPES + VESTING_TX_TYPES + BOND_TX_TYPES + DISTRIBUTOR_TX_TYPES)

# Only these accept an attached native value.
PAYABLE_TX_TYPES = frozenset({"BOND_DEPOSIT"})

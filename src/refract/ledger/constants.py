# src/refract/ledger/constants.py
from __future__ import annotations

"""Monetary and schedule constants.

Time anchors:
- One "year" is a fixed 31,536,000-second epoch (365 days, no leap handling)
- Vesting tranches unlock at cohort start + 270 / 360 / 450 days
- Bond maturity is counted in whole days of 86,400 seconds
"""

DAY_SECONDS: int = 86_400
YEAR_SECONDS: int = 365 * DAY_SECONDS  # 31,536,000
MINT_WAIT_SECONDS: int = 365 * DAY_SECONDS

# Token amounts are capped at the unsigned 256-bit range.
UINT256_MAX: int = 2**256 - 1

# The null identifier. Minting or transferring to it is rejected.
NULL_ACCOUNT: str = ""

# Reserved accounts (fee-exempt by default)
REFRACTION_POOL_ACCOUNT: str = "REFRACTION_POOL"
VESTING_POOL_ACCOUNT: str = "VESTING_POOL"
BOND_REGISTRY_ACCOUNT: str = "BOND_REGISTRY"
RESERVED_ACCOUNTS = (REFRACTION_POOL_ACCOUNT, VESTING_POOL_ACCOUNT, BOND_REGISTRY_ACCOUNT)

# Refraction (transfer) fee, in whole percent
DEFAULT_REFRACTION_FEE_PERCENT: int = 5
MAX_REFRACTION_FEE_PERCENT: int = 100

# Annual mint schedule, in basis points of total supply
BPS_DENOMINATOR: int = 10_000
STARTING_MINT_FEE_BPS: int = 500
MINT_FEE_DECAY_BPS: int = 50
MINT_FEE_FLOOR_BPS: int = 100

# Vesting tranche offsets from cohort start, in days
NINE_MONTH_DAYS: int = 270
TWELVE_MONTH_DAYS: int = 360
FIFTEEN_MONTH_DAYS: int = 450

# Bond parameters
MIN_MATURITY_DAYS: int = 7
MAX_MATURITY_DAYS: int = 365
MAX_BOND_FEE_BPS: int = 100

# Native asset marker for bond deposits
NATIVE_ASSET: str = "native"

# Fixed-point scale used for refraction index values (11.5 -> 115)
REFRACTION_INDEX_SCALE: int = 10

# Fixed-point scale for the reward share index kept by the default sink
REWARD_INDEX_SCALE: int = 10**18

from __future__ import annotations

"""Pydantic request schemas for the public API.

These exist only for HTTP input validation; tx payload semantics are enforced
by the apply modules.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class TxSubmitRequest(BaseModel):
    tx_type: str = Field(..., min_length=1, description="Tx type, e.g. TRANSFER or BOND_DEPOSIT")
    signer: str = Field(..., min_length=1, description="Account id submitting the tx")
    nonce: int = Field(..., ge=1, description="Signer nonce (previous + 1)")
    payload: Dict[str, Any] = Field(default_factory=dict)
    value: int = Field(default=0, ge=0, description="Attached native asset amount")

    model_config = {"extra": "forbid"}

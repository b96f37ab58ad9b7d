# src/refract/runtime/domain_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from refract.runtime.apply.bonds import apply_bonds
from refract.runtime.apply.distributor import apply_distributor
from refract.runtime.apply.token import apply_token
from refract.runtime.apply.vesting import apply_vesting
from refract.runtime.context import ApplyContext
from refract.runtime.errors import ApplyError
from refract.runtime.state_invariants import ensure_state
from refract.runtime.supported_txs import PAYABLE_TX_TYPES
from refract.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
ApplyFn = Callable[[Json, TxEnvelope, ApplyContext], Optional[Json]]


def _tx_type(env: TxEnvelope) -> str:
    return str(env.tx_type or "").strip().upper()


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_token,
    apply_vesting,
    apply_bonds,
    apply_distributor,
)


def apply_tx(state: Json, env: Any, ctx: Optional[ApplyContext] = None) -> Json:
    """Dispatch a TxEnvelope to the first domain applier that claims it."""

    ensure_state(state)
    if ctx is None:
        ctx = ApplyContext()

    # Tests and some tools pass raw dict envelopes. Normalize to TxEnvelope so
    # domain appliers can rely on attribute access.
    env_norm = TxEnvelope.from_json(env)

    t = _tx_type(env_norm)
    if not t:
        raise ApplyError("invalid_tx", "missing_tx_type", {"tx_type": t})

    if int(env_norm.value or 0) != 0 and t not in PAYABLE_TX_TYPES:
        raise ApplyError("invalid_tx", "value_not_accepted", {"tx_type": t, "value": env_norm.value})

    for fn in _APPLIERS:
        try:
            out = fn(state, env_norm, ctx)
        except ApplyError:
            raise
        except Exception as e:
            code = getattr(e, "code", None)
            reason = getattr(e, "reason", None)
            details = getattr(e, "details", None)

            if code is not None or reason is not None:
                raise ApplyError(
                    str(code or "domain_error"),
                    str(reason or type(e).__name__),
                    details if details is not None else {"tx_type": t, "domain": fn.__name__},
                ) from e

            raise ApplyError(
                "domain_error",
                type(e).__name__,
                {"tx_type": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise ApplyError("tx_unimplemented", "tx_type_not_implemented", {"tx_type": t})

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator

from refract.runtime.errors import Reentrancy

Json = Dict[str, Any]


@contextmanager
def non_reentrant(state: Json, lock: str) -> Iterator[None]:
    """Hold an in-state guard flag for the duration of an operation.

    The flag lives in state["guards"] so that a collaborator handed the same
    state dict cannot call back into a guarded operation. A tx that fails
    inside the guard is discarded wholesale by apply_tx_atomic, so the
    `finally` only matters for the success path and for direct callers.
    """
    guards = state.get("guards")
    if not isinstance(guards, dict):
        guards = {}
        state["guards"] = guards

    if guards.get(lock):
        raise Reentrancy("reentrant_call", {"lock": lock})

    guards[lock] = True
    try:
        yield
    finally:
        guards.pop(lock, None)
        if not guards:
            state.pop("guards", None)


__all__ = ["non_reentrant"]

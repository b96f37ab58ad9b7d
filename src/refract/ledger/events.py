from __future__ import annotations

from typing import Any, Dict, List

Json = Dict[str, Any]


def _events(state: Json) -> List[Json]:
    evs = state.get("events")
    if not isinstance(evs, list):
        evs = []
        state["events"] = evs
    return evs


def emit_event(state: Json, event_type: str, **fields: Any) -> Json:
    """Append an audit record to state["events"].

    Sequence numbers are global and monotonic across the chain lifetime; the
    executor drains the list after each commit, so `event_seq` (not the list
    length) is the source of truth.
    """
    seq = int(state.get("event_seq", 0) or 0) + 1
    state["event_seq"] = seq

    ev: Json = {"seq": seq, "type": str(event_type), "time": int(state.get("time", 0) or 0)}
    ev.update(fields)
    _events(state).append(ev)
    return ev


def drain_events(state: Json) -> List[Json]:
    evs = _events(state)
    out = list(evs)
    evs.clear()
    return out


__all__ = ["emit_event", "drain_events"]

# src/refract/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from refract.api.routes_public_parts.accounts import router as accounts_router
from refract.api.routes_public_parts.bonds import router as bonds_router
from refract.api.routes_public_parts.events import router as events_router
from refract.api.routes_public_parts.health import router as health_router
from refract.api.routes_public_parts.state import router as state_router
from refract.api.routes_public_parts.token import router as token_router
from refract.api.routes_public_parts.tx import router as tx_router
from refract.api.routes_public_parts.vesting import router as vesting_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(state_router, prefix="/v1", tags=["state"])
public_router.include_router(accounts_router, prefix="/v1", tags=["accounts"])
public_router.include_router(token_router, prefix="/v1", tags=["token"])
public_router.include_router(bonds_router, prefix="/v1", tags=["bonds"])
public_router.include_router(vesting_router, prefix="/v1", tags=["vesting"])
public_router.include_router(events_router, prefix="/v1", tags=["events"])
public_router.include_router(tx_router, prefix="/v1", tags=["tx"])

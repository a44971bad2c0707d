"""Health and readiness routes."""

import asyncio

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from inkwell.config import get_settings
from inkwell.providers.factory import build_provider, enabled_provider_names

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    return {"ok": True}


@router.get("/readyz")
async def readyz() -> JSONResponse:
    settings = get_settings()
    names = enabled_provider_names(settings)
    results = await asyncio.gather(
        *(build_provider(name, settings).health_check() for name in names)
    )
    provider_status = dict(zip(names, results, strict=True))
    ok = any(provider_status.values())
    status_code = 200 if ok else 503
    return JSONResponse(
        status_code=status_code,
        content={"ok": ok, "providers": provider_status},
    )

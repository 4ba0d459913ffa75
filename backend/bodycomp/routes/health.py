"""Liveness + health endpoints."""

import time

from fastapi import APIRouter

router = APIRouter(tags=["System"])

_start_time = time.monotonic()


@router.get("/")
async def root():
    return {"message": "Body composition app server is running!"}


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "bodycomp-auth",
        "version": "1.0.0",
        "uptime_seconds": round(time.monotonic() - _start_time),
    }

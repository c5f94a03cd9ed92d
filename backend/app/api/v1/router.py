"""
app/api/v1/router.py
─────────────────────
Aggregate router mounted by ``app/main.py`` under ``API_PREFIX``.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import crypto

api_router = APIRouter()
api_router.include_router(crypto.router, prefix="/crypto", tags=["crypto"])

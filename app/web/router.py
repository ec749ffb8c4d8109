"""Web UI routes: serves the single-page frontend.

Assets live under /static (mounted in app.main). Every other non-API GET
path returns index.html so client-side routing works on reload.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from app.core.config import settings

web_router = APIRouter(tags=["web"])

INDEX_FILE = "index.html"


def index_path() -> Path:
    return Path(settings.static_dir) / INDEX_FILE


@web_router.get("/{path:path}", include_in_schema=False)
async def spa_fallback(path: str):
    if path == "api" or path.startswith("api/"):
        raise HTTPException(status_code=404, detail="Not Found")

    index = index_path()
    if not index.is_file():
        raise HTTPException(status_code=404, detail="Frontend not built")
    return FileResponse(index, media_type="text/html")

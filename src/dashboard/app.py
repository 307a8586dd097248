#!/usr/bin/env python3
"""LifeDash API -- FastAPI backend for the life dashboard tiles.

Run with:
    python3 -m uvicorn src.dashboard.app:app --host 0.0.0.0 --port 8765
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.common.config import get_config, load_env_local, setup_logging

logger = logging.getLogger("lifedash.dashboard")

load_env_local()
_config = get_config()
setup_logging(_config)

app = FastAPI(title="LifeDash API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_config.get("cors_origins") or ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from src.dashboard.routes import router as api_router  # noqa: E402
app.include_router(api_router)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "server_error"}, status_code=500)


@app.get("/")
async def index() -> JSONResponse:
    return JSONResponse({"name": "LifeDash API", "docs": "/docs"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8765)

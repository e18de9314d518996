# =============================================
# File: catalog_scoring/main.py
# Purpose: FastAPI app: request logging middleware, routers, health check
# Run: uvicorn catalog_scoring.main:app --reload
# =============================================
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

import catalog_scoring.utils.logging  # noqa: F401  (file sink)
from catalog_scoring.routers import compare, metrics, scores
from catalog_scoring.utils import slog
from catalog_scoring.utils.metrics import record_endpoint

app = FastAPI(title="Catalog Scoring")


@app.middleware("http")
async def _logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = slog.new_request_id()
    client_ip = request.client.host if request.client else None
    path = str(request.url.path)

    def _elapsed() -> int:
        return int((time.perf_counter() - start) * 1000)

    try:
        response = await call_next(request)
    except Exception as e:
        ctx = getattr(request.state, "log_context", None) or {}
        latency_ms = _elapsed()
        slog.log_event("request.error", request_id=req_id, method=request.method, path=path,
                       latency_ms=latency_ms, client_ip=client_ip, error=str(e), **ctx)
        logger.exception(f"[http] {request.method} {path} failed: {e}")
        response = JSONResponse(status_code=500, content={"detail": str(e)})
    else:
        ctx = getattr(request.state, "log_context", None) or {}
        ctx.setdefault("rate_limited", response.status_code == 429)
        latency_ms = _elapsed()
        slog.finalize_request_log(req_id, request.method, path, response.status_code, latency_ms, client_ip, ctx)

    record_endpoint(request.method, path, latency_ms)
    response.headers["X-Request-ID"] = req_id
    return response


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(compare.router)
app.include_router(scores.router)
app.include_router(metrics.router)

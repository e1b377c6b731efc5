"""
QuranAkh Annotation API
FastAPI backend for mushaf highlights, notes and pen annotations.
Storage backends: SQLite (default), JSON files, Google Sheets.

Run server (from services/api):
uvicorn quranakh.main:app --host 0.0.0.0 --port 8000
"""
import contextvars
import logging
import os
import time
import uuid

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .adapters import build_storage_adapter
from .routers import annotations, assignments, highlights, notes
from .schemas import HealthCheck
from .settings import get_settings

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)
request_start_time_var = contextvars.ContextVar('request_start_time', default=None)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# BACKEND CONFIGURATION
# ============================================================================
settings = get_settings()

STORAGE_BACKEND = settings.storage_backend.lower()

logger.info(f"Storage Backend: {STORAGE_BACKEND.upper()}")

# ============================================================================
# STORAGE ADAPTER INITIALIZATION
# ============================================================================

storage_adapter = None

# ---- DI helper (used by routers/*) ----
def get_storage_adapter(_=None):
    """Return the process-wide adapter, building it on first use."""
    global storage_adapter
    if storage_adapter is None:
        try:
            storage_adapter = build_storage_adapter(settings)
        except Exception as e:
            logger.error(f"Failed to initialize {STORAGE_BACKEND} storage: {e}")
            raise
        logger.info(f"{STORAGE_BACKEND} adapter initialized")
    return storage_adapter


app = FastAPI(
    title="QuranAkh Annotation API",
    description="Highlights, notes and pen annotations over the mushaf",
    version="2.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# ========== Request Tracing Middleware ==========
@app.middleware("http")
async def request_tracing_middleware(request, call_next):
    """Add request_id and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    request_start_time_var.set(time.time())

    response = await call_next(request)

    latency = time.time() - request_start_time_var.get()
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} -> "
        f"{response.status_code} ({round(latency * 1000, 2)} ms)"
    )

    response.headers["X-Request-ID"] = request_id
    return response


ALLOWED_ORIGINS = settings.get_origins_list()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception [{request_id_var.get()}]: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/health", response_model=HealthCheck)
async def health_check():
    """Health check endpoint (touches the storage backend)."""
    try:
        get_storage_adapter()
        return {"ok": True, "backend": STORAGE_BACKEND}
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "backend": STORAGE_BACKEND, "error": str(e)}
        )


@app.get("/healthz")
async def healthz():
    """
    Liveness probe. Returns 200 while the process is up,
    without touching storage.
    """
    return {
        "status": "ok",
        "timestamp": time.time(),
        "version": "2.0"
    }


app.include_router(highlights.router)
app.include_router(notes.router)
app.include_router(assignments.router)
app.include_router(annotations.router)


@app.on_event("startup")
async def startup_event():
    logger.info("QuranAkh Annotation API starting up...")
    logger.info(f"Storage Backend: {STORAGE_BACKEND.upper()}")
    if STORAGE_BACKEND == "sqlite":
        logger.info(f"Database: {settings.db_url.split('://')[0]}")
    elif STORAGE_BACKEND == "sheets":
        logger.info(f"Spreadsheet ID: {settings.sheets_spreadsheet_id}")
    logger.info(f"Resolved highlight color: {settings.resolved_highlight_color}")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")

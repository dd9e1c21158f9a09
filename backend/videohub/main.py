import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from videohub.config import settings
from videohub.exceptions import (
    NotFoundError,
    OwnershipError,
    UpstreamStorageError,
    ValidationError,
    VideoHubError,
)
from videohub.routers import videos, users
from videohub.middleware import LoggingMiddleware

# Настройка логирования
log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

logging.getLogger("uvicorn.access").setLevel(logging.INFO)
logging.getLogger("uvicorn").setLevel(logging.INFO)
# boto логирует каждый HTTP вызов на DEBUG
logging.getLogger("botocore").setLevel(logging.WARNING)

# SQL логирование (включается через настройку)
if settings.log_sql:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
else:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

root_path = settings.root_path or ""
app = FastAPI(title="VideoHub API", version="0.1.0", root_path=root_path)

# Middleware для логирования (должен быть первым, чтобы логировать все запросы)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    ValidationError: 400,
    OwnershipError: 403,
    NotFoundError: 404,
    UpstreamStorageError: 502,
}


@app.exception_handler(VideoHubError)
async def domain_exception_handler(request: Request, exc: VideoHubError):
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# Глобальный обработчик исключений
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}: {str(exc)}",
        exc_info=True,
        extra={"path": str(request.url), "method": request.method}
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.secret_key != "change-me-in-production-use-env" else "Internal server error"
        }
    )


app.include_router(videos.router, prefix="/videos", tags=["videos"])
app.include_router(users.router, prefix="/users", tags=["users"])


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Starting VideoHub API server...")
    logger.info(f"🔗 Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else 'configured'}")
    logger.info(f"🪣 Asset store: {settings.s3_endpoint_url} (bucket {settings.s3_bucket})")
    if root_path:
        logger.info(f"🌐 Root path: {root_path} (all routes will be prefixed with this)")
    logger.info("✅ Server started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("🛑 Shutting down server...")


@app.get("/health")
def health():
    return {"status": "ok"}

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from clientdesk.api.main import api_router
from clientdesk.core.config import settings
from clientdesk.core.errors import ApplicationError, StoreUnavailable

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description="Client, project and task tracking backend",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApplicationError)
async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(OperationalError)
async def store_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error(f"Store unavailable while handling {request.method} {request.url.path}: {exc}")
    error = StoreUnavailable("The data store is unavailable, retry later")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Welcome to ClientDesk Backend API"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}

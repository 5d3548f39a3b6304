import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import tracker.models  # noqa: F401
from tracker.config import get_settings
from tracker.schemas.common import HealthResponse

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get(f"{settings.API_PREFIX}/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    return HealthResponse(status="ok", app=settings.APP_NAME)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from tracker.routers import auth  # noqa: E402

app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])

# Task lifecycle
from tracker.routers import tasks  # noqa: E402

app.include_router(
    tasks.router,
    prefix=f"{settings.API_PREFIX}/tasks",
    tags=["Tasks"],
)

# Milestone template versions
from tracker.routers import milestone_versions  # noqa: E402

app.include_router(
    milestone_versions.router,
    prefix=f"{settings.API_PREFIX}/milestone-versions",
    tags=["Milestone Versions"],
)

# Project milestones
from tracker.routers import milestones  # noqa: E402

app.include_router(
    milestones.router,
    prefix=settings.API_PREFIX,
    tags=["Milestones"],
)

logger.info("%s started (api prefix %s)", settings.APP_NAME, settings.API_PREFIX)

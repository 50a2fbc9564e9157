from contextlib import asynccontextmanager
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import polls, statistics, votes
from .config import settings
from .database import connect_db, close_db
from .logging_config import configure_logging

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("startup", project=settings.PROJECT_NAME)
    await connect_db()
    yield
    # Shutdown
    logger.info("shutdown")
    await close_db()


app = FastAPI(
    title=settings.PROJECT_NAME,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(votes.router, prefix=f"{settings.API_V1_STR}/votes", tags=["votes"])
app.include_router(statistics.router, prefix=f"{settings.API_V1_STR}/statistics", tags=["statistics"])
app.include_router(polls.router, prefix=f"{settings.API_V1_STR}/polls", tags=["polls"])

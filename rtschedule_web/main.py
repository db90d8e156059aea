"""FastAPI application for the RT coverage scheduler."""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import init_db
from .errors import SchedulingError, scheduling_error_handler
from .routers import cycles, export, overrides, schedule, therapists

logging.basicConfig(
    level=os.environ.get("RTSCHEDULE_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready")
    yield


app = FastAPI(
    title="RT Coverage Scheduler",
    description="Day/night respiratory therapy coverage with a greedy draft generator",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins in development
    allow_credentials=False,  # Must be False when allow_origins is "*"
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.add_exception_handler(SchedulingError, scheduling_error_handler)

app.include_router(therapists.router, prefix="/api/therapists", tags=["therapists"])
app.include_router(cycles.router, prefix="/api/cycles", tags=["cycles"])
app.include_router(overrides.router, prefix="/api/overrides", tags=["overrides"])
app.include_router(schedule.router, prefix="/api/schedule", tags=["schedule"])
app.include_router(export.router, prefix="/api/export", tags=["export"])


@app.get("/")
def root():
    return {"message": "RT Coverage Scheduler API", "docs": "/docs"}

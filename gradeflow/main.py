import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gradeflow.core.config import settings
from gradeflow.core.error_handlers import register_error_handlers
from gradeflow.core.logging_middleware import LoggingMiddleware
from gradeflow.db.init_db import init_db
from gradeflow.routers.assessments import router as assessments_router
from gradeflow.routers.auth import router as auth_router
from gradeflow.routers.submissions import router as submissions_router

logging.basicConfig(level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="gradeflow", lifespan=lifespan)

# Middleware
app.add_middleware(LoggingMiddleware)

register_error_handlers(app)


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(assessments_router, prefix="/assessments", tags=["assessments"])

# Submissions router carries its own /submissions prefix
app.include_router(submissions_router, tags=["submissions"])

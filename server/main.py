import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from config.config import FRONTEND_URL
from database.DB import Database
from helpers.Responses import error_response
from services.errors import DomainError
from routes import EventRouter, VolunteerRouter, AssignmentRouter, WorkSubmissionRouter

''' The backend API Endpoints setup '''

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: reuse a database placed on app.state (tests), otherwise connect
    if getattr(app.state, "db", None) is None:
        db = Database()
        db.connect()
        app.state.db = db
    await app.state.db.ensure_indexes()
    logger.info("Database connected successfully")

    yield

    logger.info("Application shutting down")


app = FastAPI(lifespan=lifespan)

allowed_origins = [FRONTEND_URL]
if FRONTEND_URL != "http://localhost:5173":
    allowed_origins.append("http://localhost:5173")

logger.info("Allowed CORS origins: %s", allowed_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.info("%s %s -> %s", request.method, request.url.path, exc)
    return error_response(exc.status_code, exc.message, code=exc.code.value)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(e.get("loc", [])), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]
    return error_response(400, "Validation error", errors=errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.detail)
    return error_response(exc.status_code, exc.detail)


@app.get("/api/health")
async def health_check():
    """Simple health check endpoint"""
    return {"status": "healthy", "message": "Server is running"}


# Include routers; work-submission and assignment paths must win over /volunteers/{id}
app.include_router(EventRouter.router, prefix="/api/events", tags=["Events"])
app.include_router(WorkSubmissionRouter.router, prefix="/api/volunteers/work-submissions", tags=["Work Submissions"])
app.include_router(AssignmentRouter.router, prefix="/api/volunteers", tags=["Assignments"])
app.include_router(VolunteerRouter.router, prefix="/api/volunteers", tags=["Volunteers"])

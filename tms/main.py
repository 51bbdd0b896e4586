"""
TMS - Task Management System Backend API
FastAPI + SQLAlchemy + JWT
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_config
from .db.database import close_db, init_db
from .errors import ServiceError
from .routers import (
    clients,
    comments,
    contacts,
    dashboard,
    departments,
    events,
    health,
    meetings,
    projects,
    reports,
    tasks,
    users,
)
from .scheduler import ReminderScheduler

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_db()
    scheduler = None
    if get_config().reminders.enabled:
        scheduler = ReminderScheduler()
        scheduler.start()
    logger.info(f"TMS API v{app.version} started ({get_config().environment})")
    yield
    # Shutdown
    if scheduler is not None:
        scheduler.shutdown()
    close_db()
    logger.info("Shutting down")


app = FastAPI(
    title="TMS API",
    description="Task management for departments, clients, projects and tasks",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
    return response


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "An internal server error occurred."})


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(departments.router, prefix="/api/departments", tags=["Departments"])
app.include_router(clients.router, prefix="/api/clients", tags=["Clients"])
app.include_router(projects.router, prefix="/api/projects", tags=["Projects"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["Tasks"])
app.include_router(comments.router, prefix="/api", tags=["Comments"])
app.include_router(meetings.router, prefix="/api/meetings", tags=["Meetings"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(contacts.router, prefix="/api/contacts", tags=["Contacts"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/")
async def root():
    return {
        "name": "TMS API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }

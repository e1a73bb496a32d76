"""
TaskMgmt HTTP API — FastAPI application exposing the rules engines under /v1.

Every response uses the ``ApiResult`` envelope. Domain errors map to status
codes through ``TaskMgmtError.status_code``: 404 for NotFound, 400 for every
other rule failure, 500 for storage failures.

Run:
    taskmgmt serve --port 8000

Each request gets its own ``UnitOfWork`` (one session, one transaction).
Handlers are plain ``def`` functions, so FastAPI runs them in its threadpool
next to the synchronous SQLAlchemy session.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Generator, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from taskmgmt import __version__
from taskmgmt.api.results import ApiResult
from taskmgmt.db.session import close_db, get_session_factory, init_db
from taskmgmt.engine.config import RulesConfig, get_config
from taskmgmt.engine.context import RequestContext, clear_request_context, set_request_context
from taskmgmt.engine.errors import PersistenceError, TaskMgmtError
from taskmgmt.engine.logging import (
    init_logging,
    log,
    log_api_request,
    log_system_event,
    shutdown_logging,
)
from taskmgmt.repositories.unit_of_work import UnitOfWork
from taskmgmt.services.project_service import ProjectService
from taskmgmt.services.schemas import (
    CommentView,
    HistoryView,
    NewCommentPayload,
    NewProjectPayload,
    NewTaskPayload,
    PerformanceReportRow,
    ProjectSummary,
    ProjectView,
    TaskView,
    UpdateProjectPayload,
    UpdateTaskPayload,
)
from taskmgmt.services.task_service import TaskService

logger = logging.getLogger("taskmgmt.api")

USER_ID_HEADER = "X-User-Id"
INTERNAL_ERROR = "An internal error occurred while processing the request."


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_uow(request: Request) -> Generator[UnitOfWork, None, None]:
    factory = request.app.state.session_factory or get_session_factory()
    with UnitOfWork.from_factory(factory) as uow:
        yield uow


def get_project_service(request: Request, uow: UnitOfWork = Depends(get_uow)) -> ProjectService:
    return ProjectService(uow, request.app.state.rules)


def get_task_service(request: Request, uow: UnitOfWork = Depends(get_uow)) -> TaskService:
    return TaskService(uow, request.app.state.rules)


def _header_user_id(request: Request) -> Optional[uuid.UUID]:
    raw = request.headers.get(USER_ID_HEADER)
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

projects_router = APIRouter(prefix="/v1/projects", tags=["projects"])


@projects_router.get("/user/{owner_id}", response_model=ApiResult[List[ProjectSummary]])
def list_projects_by_owner(owner_id: uuid.UUID, service: ProjectService = Depends(get_project_service)):
    return ApiResult.ok(service.list_by_owner(owner_id))


@projects_router.get("/{project_id}", response_model=ApiResult[ProjectView])
def get_project(project_id: uuid.UUID, service: ProjectService = Depends(get_project_service)):
    return ApiResult.ok(service.get_full(project_id))


@projects_router.get("/{project_id}/deletable-tasks", response_model=ApiResult[List[TaskView]])
def list_deletable_tasks(project_id: uuid.UUID, service: ProjectService = Depends(get_project_service)):
    return ApiResult.ok(service.list_deletable_tasks(project_id))


@projects_router.post("", response_model=ApiResult[ProjectView])
def create_project(payload: NewProjectPayload, service: ProjectService = Depends(get_project_service)):
    return ApiResult.ok(service.create(payload), message="Project created.")


@projects_router.put("", response_model=ApiResult[ProjectView])
def update_project(payload: UpdateProjectPayload, service: ProjectService = Depends(get_project_service)):
    return ApiResult.ok(service.update(payload), message="Project updated.")


@projects_router.delete("/{project_id}", response_model=ApiResult[None])
def delete_project(project_id: uuid.UUID, service: ProjectService = Depends(get_project_service)):
    service.delete(project_id)
    return ApiResult.ok(message="Project removed.")


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

tasks_router = APIRouter(prefix="/v1/tasks", tags=["tasks"])


@tasks_router.get("/report/performance", response_model=ApiResult[List[PerformanceReportRow]])
def performance_report(service: TaskService = Depends(get_task_service)):
    return ApiResult.ok(service.performance_report())


@tasks_router.get("/user/{owner_id}", response_model=ApiResult[List[TaskView]])
def list_tasks_by_owner(owner_id: uuid.UUID, service: TaskService = Depends(get_task_service)):
    return ApiResult.ok(service.list_by_owner(owner_id))


@tasks_router.post("/comment", response_model=ApiResult[CommentView])
def add_comment(payload: NewCommentPayload, service: TaskService = Depends(get_task_service)):
    return ApiResult.ok(service.add_comment(payload), message="Comment added.")


@tasks_router.delete("/comment/{comment_id}", response_model=ApiResult[None])
def delete_comment(comment_id: uuid.UUID, service: TaskService = Depends(get_task_service)):
    service.delete_comment(comment_id)
    return ApiResult.ok(message="Comment removed.")


@tasks_router.get("/{task_id}", response_model=ApiResult[TaskView])
def get_task(task_id: uuid.UUID, service: TaskService = Depends(get_task_service)):
    return ApiResult.ok(service.get_full(task_id))


@tasks_router.get("/{task_id}/comments", response_model=ApiResult[List[CommentView]])
def list_comments(task_id: uuid.UUID, service: TaskService = Depends(get_task_service)):
    return ApiResult.ok(service.list_comments(task_id))


@tasks_router.get("/{task_id}/history", response_model=ApiResult[List[HistoryView]])
def get_history(task_id: uuid.UUID, service: TaskService = Depends(get_task_service)):
    return ApiResult.ok(service.get_history(task_id))


@tasks_router.post("", response_model=ApiResult[TaskView])
def create_task(payload: NewTaskPayload, service: TaskService = Depends(get_task_service)):
    return ApiResult.ok(service.create(payload), message="Task created.")


@tasks_router.put("", response_model=ApiResult[TaskView])
def update_task(payload: UpdateTaskPayload, service: TaskService = Depends(get_task_service)):
    return ApiResult.ok(service.update(payload), message="Task updated.")


@tasks_router.delete("/{task_id}", response_model=ApiResult[None])
def delete_task(task_id: uuid.UUID, service: TaskService = Depends(get_task_service)):
    service.delete(task_id)
    return ApiResult.ok(message="Task removed.")


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

async def handle_domain_error(request: Request, exc: TaskMgmtError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
        body = ApiResult.fail(INTERNAL_ERROR)
    else:
        logger.info("%s %s rejected: %r", request.method, request.url.path, exc)
        body = ApiResult.fail(exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        errors.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    body = ApiResult.fail("Invalid request.", errors)
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=ApiResult.fail(INTERNAL_ERROR).model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise database and log queue from config unless a session factory was injected."""
    owns_resources = app.state.session_factory is None
    if owns_resources:
        config = get_config()
        init_logging(
            log_dir=config.logging.directory,
            level=config.logging.level,
            flush_interval_ms=config.logging.flush_interval_ms,
            flush_batch_size=config.logging.flush_batch_size,
            max_queue_size=config.logging.max_queue_size,
        )
        db = config.database
        app.state.session_factory = init_db(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
            pool_pre_ping=db.pool_pre_ping,
        )
        log(log_system_event("api_startup", details={"environment": config.environment}))
    yield
    if owns_resources:
        log(log_system_event("api_shutdown"))
        close_db()
        shutdown_logging()


def create_app(
    session_factory: Optional[sessionmaker] = None,
    rules: Optional[RulesConfig] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        session_factory: Bound sessionmaker. If None, the lifespan hook
                         initialises the database from taskmgmt.yaml.
        rules:           Rules config override. If None, taken from taskmgmt.yaml.
    """
    app = FastAPI(
        title="TaskMgmt API",
        description="Projects, tasks, comments and task history",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory
    app.state.rules = rules

    app.include_router(projects_router)
    app.include_router(tasks_router)

    app.add_exception_handler(TaskMgmtError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        set_request_context(
            RequestContext(
                user_id=_header_user_id(request),
                method=request.method,
                path=request.url.path,
            )
        )
        start = time.monotonic()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = round((time.monotonic() - start) * 1000, 2)
            log(log_api_request(request.method, request.url.path, status_code, duration_ms))
            clear_request_context()

    return app

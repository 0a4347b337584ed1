import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from modulehub.config import LOG_LEVEL, CLEANUP_ENABLED, CLEANUP_INTERVAL_SECONDS, UPLOADS_DIR
from modulehub.database import get_database_checker
from modulehub.errors import AppError, TransientStoreError, ValidationFailedError
from modulehub.services.cleanup_scheduler import CleanupScheduler
from modulehub.services.temp_file_sweeper import TempFileSweeper, run_sweep_with_retry

from modulehub.routes.users.user_creation import router as user_registration_router
from modulehub.routes.users.user_login import router as user_login_router

from modulehub.routes.admin.user import router as admin_user_router
from modulehub.routes.admin.module import router as admin_module_router
from modulehub.routes.admin.dashboard import router as admin_dashboard_router

from modulehub.routes.users.teacher.module import router as teacher_module_router
from modulehub.routes.users.teacher.lesson import router as teacher_lesson_router
from modulehub.routes.users.teacher.quiz import router as teacher_quiz_router
from modulehub.routes.users.teacher.quiz_submission import router as teacher_quiz_submission_router

from modulehub.routes.users.student.module import router as student_module_router
from modulehub.routes.users.student.lesson import router as student_lesson_router
from modulehub.routes.users.student.quiz import router as student_quiz_router
from modulehub.routes.users.student.quiz_submission import router as student_quiz_submission_router

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run_temp_file_cleanup():
    sweeper = TempFileSweeper()
    return await run_sweep_with_retry(sweeper.sweep)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if CLEANUP_ENABLED:
        scheduler = CleanupScheduler(
            job=run_temp_file_cleanup,
            interval=CLEANUP_INTERVAL_SECONDS,
        )
        scheduler.start()
    app.state.cleanup_scheduler = scheduler

    logger.info("Application startup complete")
    yield

    if scheduler is not None:
        await scheduler.stop()
    logger.info("Shutting down application")


app = FastAPI(
    title="Module Learning Platform",
    lifespan=lifespan,
)


# --------------------------
# Request logging
# --------------------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration:.3f}s"
    )
    return response


# --------------------------
# Error rendering
# --------------------------
def _error_response(reason: str, message, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": reason,
            "message": message,
            "status_code": status_code,
        },
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return _error_response(exc.reason, exc.detail, exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = _error_response("http_error", exc.detail, exc.status_code)
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


def _validation_errors(exc: RequestValidationError):
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=ValidationFailedError.default_status_code,
        content={
            "error": ValidationFailedError.reason,
            "message": "Request validation failed",
            "status_code": ValidationFailedError.default_status_code,
            "details": _validation_errors(exc),
        },
    )


@app.exception_handler(OperationalError)
async def database_exception_handler(request: Request, exc: OperationalError):
    logger.error(f"Database error on {request.method} {request.url.path}: {str(exc)}")
    return _error_response(
        TransientStoreError.reason,
        "The database is temporarily unavailable. Please try again later.",
        TransientStoreError.default_status_code,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return _error_response(
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
        500,
    )


# --------------------------
# Root / health
# --------------------------
@app.get("/")
def root():
    return {
        "message": "Module Learning Platform is Running!"
    }


@app.get("/health")
async def health_check(checker=Depends(get_database_checker)):
    if await checker():
        return {"status": "healthy", "database": "connected"}
    return JSONResponse(
        status_code=503,
        content={"status": "degraded", "database": "unreachable"},
    )


app.include_router(user_registration_router)
app.include_router(user_login_router)

app.include_router(admin_user_router)
app.include_router(admin_module_router)
app.include_router(admin_dashboard_router)

app.include_router(teacher_module_router)
app.include_router(teacher_lesson_router)
app.include_router(teacher_quiz_router)
app.include_router(teacher_quiz_submission_router)

app.include_router(student_module_router)
app.include_router(student_lesson_router)
app.include_router(student_quiz_router)
app.include_router(student_quiz_submission_router)

app.mount("/uploads", StaticFiles(directory=UPLOADS_DIR, check_dir=False), name="uploads")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "modulehub.main:app",
        host="0.0.0.0",
        port=8000,
    )

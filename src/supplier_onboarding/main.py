from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from supplier_onboarding.config import settings
from supplier_onboarding.contracts.errors import ProblemDetails
from supplier_onboarding.middleware.correlation import (
    correlation_id_var,
    correlation_middleware,
    setup_logging,
)
from supplier_onboarding.routers.matching import router as matching_router
from supplier_onboarding.routers.submissions import router as submissions_router
from supplier_onboarding.services.submission_service import SubmissionRequestError

_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
}


@asynccontextmanager
async def _app_lifespan(application: FastAPI):
    application.state.is_draining = False
    yield
    application.state.is_draining = True


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=_app_lifespan)
setup_logging(settings.log_level)
app.middleware("http")(correlation_middleware)
Instrumentator().instrument(app).expose(app)
app.include_router(submissions_router)
app.include_router(matching_router)


def _problem_response(
    request: Request,
    status_code: int,
    detail: str,
    error_code: str,
    missing: list[str] | None = None,
) -> JSONResponse:
    problem = ProblemDetails(
        title=_TITLES.get(status_code, "Internal Server Error"),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        correlation_id=correlation_id_var.get() or "",
        error_code=error_code,
        missing=list(missing or []),
    )
    return JSONResponse(
        status_code=status_code,
        media_type="application/problem+json",
        content=problem.model_dump(),
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/live")
async def health_live() -> dict[str, str]:
    return {"status": "live"}


@app.get("/health/ready")
async def health_ready(response: Response) -> dict[str, str]:
    if bool(getattr(app.state, "is_draining", False)):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "draining"}
    return {"status": "ready"}


@app.exception_handler(SubmissionRequestError)
async def submission_request_error_handler(
    request: Request, exc: SubmissionRequestError
) -> JSONResponse:
    return _problem_response(
        request,
        status_code=exc.status_code,
        detail=exc.detail,
        error_code=exc.error_code,
        missing=exc.missing,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _problem_response(
        request,
        status_code=422,
        detail=str(exc.errors()),
        error_code="INVALID_REQUEST",
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _problem_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred.",
        error_code="INTERNAL_ERROR",
    )

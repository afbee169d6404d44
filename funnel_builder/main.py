import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from funnel_builder.api.v1.router import router as api_v1_router
from funnel_builder.core.config import settings as app_settings
from funnel_builder.core.database import engine
from funnel_builder.core.exceptions import (
    AuthenticationFailureError,
    DuplicateRuleNameError,
    FeatureAccessDeniedError,
    FunnelNotFoundError,
    GenerationCancelledError,
    GenerationError,
    GenerationFailedError,
    GenerationTimeoutError,
    InvalidInputError,
    LeadNotFoundError,
    ScoringRuleNotFoundError,
    UnrecoverableFunnelError,
)
from funnel_builder.core.rate_limit import limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Funnel builder starting (generation backend: %s)",
        app_settings.GENERATION_SERVICE_URL,
    )
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="Funnel Builder",
    description="AI funnel generation with lead scoring and compliance checks",
    version="0.1.0",
    lifespan=lifespan,
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.warning("Invalid input: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_input"},
    )


@app.exception_handler(DuplicateRuleNameError)
async def duplicate_rule_name_handler(request: Request, exc: DuplicateRuleNameError):
    logger.warning("Duplicate scoring rule name: %s", exc.detail)
    return JSONResponse(
        status_code=409,
        content={"detail": exc.detail, "type": "duplicate_rule_name"},
    )


@app.exception_handler(ScoringRuleNotFoundError)
async def scoring_rule_not_found_handler(
    request: Request, exc: ScoringRuleNotFoundError
):
    logger.warning("Scoring rule not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "scoring_rule_not_found"},
    )


@app.exception_handler(LeadNotFoundError)
async def lead_not_found_handler(request: Request, exc: LeadNotFoundError):
    logger.warning("Lead not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "lead_not_found"},
    )


@app.exception_handler(FunnelNotFoundError)
async def funnel_not_found_handler(request: Request, exc: FunnelNotFoundError):
    logger.warning("Funnel not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "funnel_not_found"},
    )


@app.exception_handler(UnrecoverableFunnelError)
async def unrecoverable_funnel_handler(request: Request, exc: UnrecoverableFunnelError):
    logger.warning("Unrecoverable funnel: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "unrecoverable_funnel"},
    )


@app.exception_handler(FeatureAccessDeniedError)
async def feature_access_denied_handler(
    request: Request, exc: FeatureAccessDeniedError
):
    logger.info("Feature access denied: %s", exc.detail)
    return JSONResponse(
        status_code=402,
        content={"detail": exc.detail, "type": "feature_access_denied"},
    )


@app.exception_handler(AuthenticationFailureError)
async def generation_auth_handler(request: Request, exc: AuthenticationFailureError):
    logger.error("Generation backend rejected credentials: %s", exc.detail)
    return JSONResponse(
        status_code=502,
        content={"detail": exc.detail, "type": "generation_authentication_failed"},
    )


@app.exception_handler(GenerationCancelledError)
async def generation_cancelled_handler(request: Request, exc: GenerationCancelledError):
    logger.warning("Generation cancelled: %s", exc.detail)
    return JSONResponse(
        status_code=504,
        content={"detail": exc.detail, "type": "generation_cancelled"},
    )


@app.exception_handler(GenerationTimeoutError)
async def generation_timeout_handler(request: Request, exc: GenerationTimeoutError):
    logger.warning("Generation timed out: %s", exc.detail)
    return JSONResponse(
        status_code=504,
        content={"detail": exc.detail, "type": "generation_timeout"},
    )


@app.exception_handler(GenerationFailedError)
async def generation_failed_handler(request: Request, exc: GenerationFailedError):
    logger.error("Generation failed: %s", exc.detail)
    return JSONResponse(
        status_code=502,
        content={"detail": exc.detail, "type": "generation_failed"},
    )


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    logger.error("Generation error: %s", exc.detail)
    return JSONResponse(
        status_code=502,
        content={"detail": exc.detail, "type": "generation_error"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": jsonable_encoder(exc.errors()),
            "type": "validation_error",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )

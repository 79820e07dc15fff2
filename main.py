from fastapi import FastAPI, HTTPException, Request, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from typing import Optional
import io
import structlog
import time
from contextlib import asynccontextmanager

from models import ErrorResponse, HealthResponse, LedgerReport
from services import TransactionProcessor, get_transaction_processor
from repositories import get_ledger_store
from csv_io import read_events, summarize, write_summary
from exceptions import LedgerError
from logging_config import configure_logging
from config import get_server_settings

settings = get_server_settings()
configure_logging(settings)

logger = structlog.get_logger()

# Rate limiting
limiter = Limiter(key_func=get_remote_address)

# Ledgers processed since startup
_ledgers_processed = 0


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Ledger API")
    yield
    logger.info("Shutting down Ledger API")


app = FastAPI(
    title=settings.app_name,
    description="Replays a CSV transaction stream into final account balances",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        client_ip=request.client.host if request.client else None
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time=round(process_time, 4)
    )

    return response


async def _process_body(request: Request, enforce_dispute_owner: Optional[bool]) -> TransactionProcessor:
    """Run the uploaded CSV through a fresh ledger."""
    global _ledgers_processed

    body = await request.body()
    if len(body) > settings.max_upload_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Upload too large"
        )
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=400,
            detail="Body must be UTF-8 encoded CSV"
        )

    if enforce_dispute_owner is None:
        enforce_dispute_owner = settings.enforce_dispute_owner

    processor = get_transaction_processor(get_ledger_store(), enforce_dispute_owner=enforce_dispute_owner)
    processor.process_all(read_events(io.StringIO(text, newline="")))
    _ledgers_processed += 1
    return processor


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check API health"
)
async def health_check():
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        ledgers_processed=_ledgers_processed
    )


@app.post(
    "/ledger",
    response_model=LedgerReport,
    summary="Process Transaction Stream",
    description="Apply a CSV transaction stream (request body) and return final account states",
    responses={
        200: {"description": "Stream processed"},
        400: {"description": "Malformed CSV or unparseable type/client/tx field"},
        413: {"description": "Upload too large"},
        429: {"description": "Rate limit exceeded"}
    }
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def process_ledger(
    request: Request,
    enforce_dispute_owner: Optional[bool] = Query(None)
):
    processor = await _process_body(request, enforce_dispute_owner)
    return LedgerReport(
        accounts=summarize(processor.store),
        events_processed=processor.events_processed,
        applied=processor.applied,
        rejected=processor.rejected
    )


@app.post(
    "/ledger/csv",
    response_class=PlainTextResponse,
    summary="Process Transaction Stream (CSV)",
    description="Same as /ledger, but answers with the CSV account report"
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def process_ledger_csv(
    request: Request,
    enforce_dispute_owner: Optional[bool] = Query(None)
):
    processor = await _process_body(request, enforce_dispute_owner)
    out = io.StringIO()
    write_summary(processor.store, out)
    return PlainTextResponse(out.getvalue(), media_type="text/csv")


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    logger.warning(
        "Ledger input rejected",
        error=str(exc),
        error_code=exc.error_code,
        url=str(request.url)
    )
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            detail=str(exc),
            error_code=exc.error_code
        ).model_dump(mode="json")
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            detail=exc.detail,
            error_code=f"HTTP_{exc.status_code}"
        ).model_dump(mode="json")
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        error=str(exc),
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail="Internal server error",
            error_code="INTERNAL_ERROR"
        ).model_dump(mode="json")
    )


@app.get("/", include_in_schema=False)
async def root():
    return {"message": settings.app_name, "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )

"""
Back-office finance backend – FastAPI app between the operator console and
the hosted database/RPC platform.

=== ROLE IN THE SYSTEM ===
The console never talks to the platform directly. Every route maps API
fields to platform columns, forwards one call, and maps the answer back.
Business rules (registration checks, fee accrual, payment settlement) stay
on the platform.

=== WHAT IT DOES ===
1. BULK IMPORT: CSV templates for student financial data and scholarship
   assignments; strict parsing; one batch call per upload; last results kept
   per template.
2. BANK SLIPS: batch generation behind a recipient UUID gate, batch e-mail,
   payment settlement, late-fee quotes and the payable amount of a slip.
3. PASS-THROUGHS: transactions, scholarships, invoices, declarations,
   automatic billing, backups and reports.

=== ERRORS ===
  ValidationFailure    -> 400   (nothing was sent to the platform)
  NotFound             -> 404
  OperationInFlight    -> 409   (same operation still running)
  RemoteOperationError -> 502   (the platform call failed as a whole)
A payment the platform declines is a normal 200 with ``success: false``.

Route map:
  GET  /api/health
  /api/bulk/...                   → app.routers.bulk
  /api/students, /api/bank-slips/..., /api/late-fees/quote
                                  → app.routers.bank_slips
  /api/transactions, /api/scholarships, /api/invoices, /api/declarations,
  /api/billing/..., /api/finance/backup
                                  → app.routers.finance
  /api/reports/...                → app.routers.reports
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import app.state as state
from app.routers.bank_slips import router as bank_slips_router
from app.routers.bulk import router as bulk_router
from app.routers.finance import router as finance_router
from app.routers.reports import router as reports_router
from backoffice.errors import NotFound, OperationInFlight, RemoteOperationError, ValidationFailure
from backoffice.platform import resolve_platform

_log = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """
    FastAPI lifespan: build the platform client once and share it.

    Without a configured URL/key the app still starts (health, templates,
    CSV preview work) and platform-backed routes answer 503.
    """
    app.state.platform = None
    if state.PLATFORM_URL and state.PLATFORM_KEY:
        adapter = resolve_platform(state.PLATFORM_ID)
        app.state.platform = adapter.build(
            url=state.PLATFORM_URL,
            api_key=state.PLATFORM_KEY,
            timeout=state.PLATFORM_TIMEOUT,
        )
        _log.info("Platform client ready: %s at %s", adapter.label, state.PLATFORM_URL)
    else:
        _log.warning("BACKOFFICE_PLATFORM_URL/KEY not set; platform routes are disabled")
    yield
    if app.state.platform is not None:
        await app.state.platform.aclose()
        app.state.platform = None


app = FastAPI(lifespan=_lifespan)

# ---------------------------------------------------------------------------
# CORS: local console origins by default, BACKOFFICE_CORS_ORIGINS overrides.
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=state.CORS_ORIGINS,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR MAPPING
# ═══════════════════════════════════════════════════════════════════════════════

@app.exception_handler(ValidationFailure)
async def _validation_failure(request: Request, exc: ValidationFailure) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": exc.as_detail()})


@app.exception_handler(NotFound)
async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(OperationInFlight)
async def _in_flight(request: Request, exc: OperationInFlight) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(RemoteOperationError)
async def _remote_failure(request: Request, exc: RemoteOperationError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": exc.message})


# ═══════════════════════════════════════════════════════════════════════════════
# ROUTES
# ═══════════════════════════════════════════════════════════════════════════════

@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(bulk_router)
app.include_router(bank_slips_router)
app.include_router(finance_router)
app.include_router(reports_router)

"""
FastAPI server: claim endpoints over the claim core.

POST /wallet/claim records a claim; the GET endpoints read the ledger and the
allocation table. Every ClaimError is rendered by one exception handler as
{"success": false, "error": <kind>, "message": ..., "details": {...}} with the
error's status code. Config via env (see backend_novaclaim.config).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from backend_novaclaim.allocations.registry import AllocationRegistry
from backend_novaclaim.claim_logging import get_logger
from backend_novaclaim.claims.service import ClaimService
from backend_novaclaim.claims.validator import REQUIRED_FIELDS
from backend_novaclaim.config import Settings, get_settings
from backend_novaclaim.core.exceptions import ClaimError, MissingFieldsError
from backend_novaclaim.database.database import get_database

logger = get_logger(__name__)

# Raw JSON values; the claim validator rejects booleans, lists and objects.
RequestValue = Any


# -----------------------------------------------------------------------------
# Request models
# -----------------------------------------------------------------------------


class ClaimRequest(BaseModel):
    """
    POST /wallet/claim body. Fields are untyped and optional so JSON values
    reach the claim validator unconverted (pydantic would turn true into 1);
    the validator decides what is missing or malformed and answers with the
    claim error kinds.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    token_type: RequestValue = Field(None, alias="tokenType", examples=["TARAL"])
    amount: RequestValue = Field(None, examples=["50"])
    transaction_hash: RequestValue = Field(None, alias="transactionHash", examples=["0x123abc..."])
    user_address: RequestValue = Field(None, alias="userAddress", description="Claiming wallet")
    wallet_address: RequestValue = Field(None, alias="walletAddress", description="Alias of userAddress")
    timestamp: RequestValue = Field(None, description="ISO-8601 or Unix seconds; server time if omitted")
    conversion_rate: RequestValue = Field(None, alias="conversionRate", examples=["2.5"])

    def to_raw(self) -> dict[str, Any]:
        wallet = self.user_address if self.user_address not in (None, "") else self.wallet_address
        return {
            "token_type": self.token_type,
            "amount": self.amount,
            "transaction_hash": self.transaction_hash,
            "wallet_address": wallet,
            "timestamp": self.timestamp,
            "conversion_rate": self.conversion_rate,
        }


# -----------------------------------------------------------------------------
# Lifespan and dependencies
# -----------------------------------------------------------------------------


def build_service(settings: Settings) -> ClaimService:
    db = get_database(settings.database_url, timeout_sec=settings.db_timeout_sec)
    registry = AllocationRegistry.from_csv(settings.allocations_csv_path)
    return ClaimService(db, registry, recent_claims_limit=settings.recent_claims_limit)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the claim service once per process; the allocation table loads here."""
    settings = get_settings()
    service = build_service(settings)
    app.state.claim_service = service
    logger.info(
        "api_started",
        allocations=str(settings.allocations_csv_path),
        allocation_wallets=service.registry.wallet_count,
    )
    yield
    logger.info("api_stopped")


def get_service(request: Request) -> ClaimService:
    return request.app.state.claim_service


def ok(data: Any, status_code: int = 200, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": data, **extra})


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="NovaClaim API",
    description="Claim TARAL / RVLNG allocations and convert them to NOVA.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ClaimError)
def claim_error_handler(request: Request, exc: ClaimError) -> JSONResponse:
    """Consistent JSON error response for every claim error kind."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """A body that is not a JSON object carries none of the claim fields."""
    logger.info("claim_body_rejected", path=request.url.path, errors=len(exc.errors()))
    error = MissingFieldsError(list(REQUIRED_FIELDS))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.post("/wallet/claim")
def claim(body: ClaimRequest, service: ClaimService = Depends(get_service)) -> JSONResponse:
    """
    Claim a wallet's TARAL or RVLNG allocation and convert it to NOVA.

    400 malformed request or amount != allocation, 403 wallet not in the
    allocation list, 409 transaction already processed or kind already claimed.
    """
    receipt = service.claim(body.to_raw())
    r = receipt.record
    return ok(
        receipt.to_dict(),
        message=f"Successfully processed {r.token_type.value} claim for {r.amount.normalize():f} tokens",
    )


@app.get("/wallet/claims/{address}")
def wallet_claims(address: str, service: ClaimService = Depends(get_service)) -> JSONResponse:
    """Claim history and totals for a wallet (totals re-derived from the claims)."""
    summary, records = service.wallet_claims(address)
    return ok(
        {
            "address": summary.address,
            "summary": summary.to_dict(),
            "claims": [r.to_dict() for r in records],
        }
    )


@app.get("/wallet/stats")
def stats(service: ClaimService = Depends(get_service)) -> JSONResponse:
    """Totals across all wallets plus the most recent claims (addresses truncated)."""
    return ok(service.global_stats().to_dict())


@app.get("/wallet/verify/{transaction_hash}")
def verify(transaction_hash: str, service: ClaimService = Depends(get_service)) -> JSONResponse:
    """Look up the claim recorded for a transaction hash."""
    record = service.verify_transaction(transaction_hash)
    return ok({"verified": True, "claim": record.to_dict()})


@app.get("/wallet/allocations/{address}")
def allocations(address: str, service: ClaimService = Depends(get_service)) -> JSONResponse:
    """Allocated, claimed and remaining amount per token kind."""
    return ok(service.allocation_status(address).to_dict())


@app.post("/wallet/allocations/reload")
def reload_allocations(service: ClaimService = Depends(get_service)) -> JSONResponse:
    """Re-read the allocation CSV and swap it in; the old table stays active on failure."""
    count = service.reload_allocations()
    return ok({"walletCount": count, "source": str(service.registry.source)})


@app.get("/")
def root() -> dict[str, str]:
    """Liveness probe: API is up."""
    return {
        "message": "Server is running!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
def health(service: ClaimService = Depends(get_service)) -> JSONResponse:
    """Readiness probe: database round-trip."""
    try:
        db_time = service.db.ping()
    except SQLAlchemyError as e:
        logger.warning("health_db_unreachable", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"status": "unhealthy", "database": "disconnected", "error": str(e)},
        )
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "database": "connected",
            "timestamp": str(db_time),
            "allocationWallets": service.registry.wallet_count,
        },
    )

"""FastAPI application for the nsreg web API.

Provides REST API endpoints wrapping the nsreg package for:
- Author and package lookup
- Submission of signed registry transactions
- The GitHub oracle that co-signs author registrations
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nsreg import __version__
from nsreg.errors import (
    AddressDerivationFailed,
    AlreadyExists,
    InvalidString,
    OracleError,
    RecordLayoutError,
    RecordNotFound,
    RegistryError,
    Unauthorized,
)
from web.backend.app.routers import authors, oracle, packages, transactions

app = FastAPI(
    title="nsreg API",
    description=(
        "REST API for the nsreg namespaced registry. "
        "Resolves authors and packages, accepts signed transactions, "
        "and runs the GitHub oracle for author registration."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Registry errors -> HTTP status
# ---------------------------------------------------------------------------
ERROR_STATUS: dict[type[RegistryError], int] = {
    InvalidString: 422,
    Unauthorized: 403,
    AlreadyExists: 409,
    AddressDerivationFailed: 400,
    RecordNotFound: 404,
    RecordLayoutError: 500,
    OracleError: 502,
}


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code, "details": exc.details},
    )


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(authors.router)
app.include_router(packages.router)
app.include_router(transactions.router)
app.include_router(oracle.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "nsreg API",
        "version": __version__,
        "description": "Namespaced registry REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}

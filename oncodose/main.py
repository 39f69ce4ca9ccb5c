"""
FastAPI application for the oncology dose calculation backend
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import ALLOWED_ORIGINS, SERVICE_VERSION
from .middleware.request_logging import RequestLoggingMiddleware
from .routers import health, dosing, pgx
from .utils.logging import setup_structured_logging

setup_structured_logging()

app = FastAPI(
    title="Oncology Dose Calculation API",
    description="BSA, renal function, Calvert dosing, table-driven dose adjustment and PGx phenotyping",
    version=SERVICE_VERSION,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(dosing.router)
app.include_router(pgx.router)

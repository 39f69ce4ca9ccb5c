"""
Schemas - Pydantic models for request/response validation.

Organized by domain:
- dosing.py: Patient, DoseCalculation, formula requests/results
- pgx.py: GenotypeObservation, GenePhenotype, PGx guidance
"""

from .dosing import (
    Patient,
    DoseCalculation,
    DoseCalculationRequest,
)
from .pgx import (
    Phenotype,
    GenotypeObservation,
    GenePhenotype,
)

__all__ = [
    "Patient",
    "DoseCalculation",
    "DoseCalculationRequest",
    "Phenotype",
    "GenotypeObservation",
    "GenePhenotype",
]

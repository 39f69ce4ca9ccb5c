"""
Dose Calculation Router

FastAPI router for BSA, creatinine clearance, Calvert carboplatin dosing
and table-driven dose adjustment.
"""

import logging
import time
from typing import List

from fastapi import APIRouter, HTTPException

from oncodose.schemas.dosing import (
    DoseCalculationRequest, DoseCalculation,
    BSARequest, BSACalculation,
    CreatinineClearanceRequest, CreatinineClearanceCalculation,
    CarboplatinRequest, CarboplatinDosing,
)
from oncodose.services.clinical_formulas import (
    calculate_bsa, calculate_creatinine_clearance, calculate_carboplatin_dose,
)
from oncodose.services.dose_calculation_service import get_dose_calculation_service
from oncodose.services.rule_tables import get_supported_drugs
from oncodose.services.service_monitor import get_service_monitor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dosing", tags=["dosing"])

SERVICE_NAME = "dose_calculation"


def _record(start: float, success: bool, error: str = None):
    get_service_monitor().record_request(
        SERVICE_NAME, success, (time.perf_counter() - start) * 1000, error
    )


@router.post("/calculate", response_model=DoseCalculation)
async def calculate_dose(request: DoseCalculationRequest):
    """
    Calculate an adjusted chemotherapy dose.

    Example:
    ```json
    {
        "patient": {
            "height_cm": 170, "weight_kg": 70, "date_of_birth": "1960-05-01",
            "gender": "female",
            "renal_function": {"creatinine": 1.1},
            "hepatic_function": {"bilirubin": 0.8}
        },
        "drug_name": "carboplatin",
        "baseline_dose": 400,
        "unit": "mg"
    }
    ```

    Returns the calculated dose with adjustments, warnings,
    contraindications and monitoring recommendations.
    """
    logger.info(f"Dose calculation request: {request.drug_name} {request.baseline_dose} {request.unit}")
    start = time.perf_counter()

    try:
        service = get_dose_calculation_service()
        result = service.calculate_dose(
            request.patient,
            request.drug_name,
            request.baseline_dose,
            request.unit,
            as_of=request.as_of,
        )
    except Exception as e:
        logger.error(f"Dose calculation failed: {e}")
        _record(start, False, type(e).__name__)
        raise HTTPException(status_code=500, detail=f"Dose calculation failed: {str(e)}")

    _record(start, True)
    return result


@router.post("/bsa", response_model=BSACalculation)
async def body_surface_area(request: BSARequest):
    """Body surface area (m²) by DuBois, Mosteller (default), Haycock or Gehan."""
    return calculate_bsa(request.height, request.weight, request.method)


@router.post("/creatinine_clearance", response_model=CreatinineClearanceCalculation)
async def creatinine_clearance(request: CreatinineClearanceRequest):
    """Creatinine clearance (mL/min) by Cockcroft-Gault (default), MDRD or CKD-EPI."""
    return calculate_creatinine_clearance(
        request.age, request.weight, request.creatinine, request.gender, request.method
    )


@router.post("/carboplatin", response_model=CarboplatinDosing)
async def carboplatin_dose(request: CarboplatinRequest):
    """
    Calvert formula: dose = AUC x (CrCl + 25).

    Notes are advisory; the dose is never capped.
    """
    return calculate_carboplatin_dose(request.target_auc, request.creatinine_clearance)


@router.get("/protocols", response_model=List[str])
async def list_protocols():
    """Drugs with at least one dosing table entry."""
    return get_supported_drugs()


@router.get("/health")
async def health():
    """Health check for dose calculation router"""
    return {"status": "operational", "service": SERVICE_NAME}

"""
PGx Phenotype Router

Genotype observation -> metabolizer phenotype mapping and drug-gene guidance.
"""

import logging
import time
from typing import List

from fastapi import APIRouter, HTTPException

from oncodose.schemas.pgx import (
    PhenotypeRequest, GenePhenotype,
    PGxGuidanceRequest, PGxGuidanceResponse,
)
from oncodose.services.pgx_phenotype_service import get_pgx_phenotype_service
from oncodose.services.rule_tables import get_known_genes
from oncodose.services.service_monitor import get_service_monitor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pgx", tags=["pgx"])

SERVICE_NAME = "pgx_phenotype"


@router.post("/phenotypes", response_model=List[GenePhenotype])
async def map_phenotypes(request: PhenotypeRequest):
    """
    Map genotype observations to metabolizer phenotypes.

    Example:
    ```json
    {"observations": [{"code": "CYP2D6", "valueString": "*4/*4"}]}
    ```

    Returns one {gene, phenotype} entry per recognised gene; unrecognised
    input yields an empty list.
    """
    start = time.perf_counter()
    try:
        phenotypes = get_pgx_phenotype_service().map_observations_to_phenotypes(request.observations)
    except Exception as e:
        logger.error(f"Phenotype mapping failed: {e}")
        get_service_monitor().record_request(
            SERVICE_NAME, False, (time.perf_counter() - start) * 1000, type(e).__name__
        )
        raise HTTPException(status_code=500, detail=f"Phenotype mapping failed: {str(e)}")

    get_service_monitor().record_request(SERVICE_NAME, True, (time.perf_counter() - start) * 1000)
    logger.info(f"Phenotype mapping: {len(request.observations)} observation(s) -> {len(phenotypes)} call(s)")
    return phenotypes


@router.post("/guidance", response_model=PGxGuidanceResponse)
async def pgx_guidance(request: PGxGuidanceRequest):
    """
    Pharmacogenomic dosing guidance for one drug.

    Example:
    ```json
    {"drug": "irinotecan", "observations": [{"code": "UGT1A1", "valueString": "*28/*28"}]}
    ```
    """
    start = time.perf_counter()
    try:
        response = get_pgx_phenotype_service().get_pgx_guidance(request.drug, request.observations)
    except Exception as e:
        logger.error(f"PGx guidance failed: {e}")
        get_service_monitor().record_request(
            SERVICE_NAME, False, (time.perf_counter() - start) * 1000, type(e).__name__
        )
        raise HTTPException(status_code=500, detail=f"PGx guidance failed: {str(e)}")

    get_service_monitor().record_request(SERVICE_NAME, True, (time.perf_counter() - start) * 1000)
    return response


@router.get("/genes", response_model=List[str])
async def list_genes():
    """Pharmacogenes with an allele function table."""
    return get_known_genes()


@router.get("/health")
async def health():
    """Health check for PGx router"""
    return {"status": "operational", "service": SERVICE_NAME}

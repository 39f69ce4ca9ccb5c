"""
Pharmacogenomic Phenotype Schemas

Genotype observations follow FHIR Observation naming ({code, valueString}).
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Phenotype(str, Enum):
    """Metabolizer phenotypes"""
    POOR = "Poor metabolizer"
    INTERMEDIATE = "Intermediate metabolizer"
    NORMAL = "Normal metabolizer"
    ULTRA_RAPID = "Ultra-rapid metabolizer"


class GenotypeObservation(BaseModel):
    """Free-text genotype observation (e.g., code='CYP2D6', valueString='*4/*4')."""
    model_config = ConfigDict(populate_by_name=True)

    code: Optional[Union[str, Dict[str, Any]]] = Field(
        "", description="Observation code: gene text or a CodeableConcept-like {coding: [...]} object"
    )
    value_string: Optional[str] = Field("", alias="valueString", description="Allele notation text")


class GenePhenotype(BaseModel):
    gene: str
    phenotype: Phenotype
    diplotype: Optional[str] = Field(None, description="Normalized diplotype (e.g., '*4/*4')")
    activity_score: Optional[float] = None
    note: Optional[str] = Field(None, description="Caveat for diplotypes whose label differs from CPIC")


class PhenotypeRequest(BaseModel):
    observations: List[GenotypeObservation] = Field(default_factory=list)


class PGxRecommendation(BaseModel):
    """Drug-gene recommendation for a called phenotype"""
    gene: str
    drug: str
    phenotype: Phenotype
    recommendation: str
    dose_modification: Optional[str] = None
    adjustment_factor: Optional[float] = Field(None, description="Multiply standard dose by this (0.5 = 50%)")
    alternative: Optional[str] = None
    evidence: Optional[str] = None


class PGxGuidanceRequest(BaseModel):
    drug: str = Field(..., min_length=1, description="Drug name (e.g., 'irinotecan')")
    observations: List[GenotypeObservation] = Field(default_factory=list)


class PGxGuidanceResponse(BaseModel):
    drug: str
    phenotypes: List[GenePhenotype] = Field(default_factory=list)
    recommendations: List[PGxRecommendation] = Field(default_factory=list)
    contraindicated: bool = Field(False, description="A matched rule sets the dose factor to 0")
    notes: List[str] = Field(default_factory=list)

"""
Dose Calculation Schemas

Pydantic models for BSA / creatinine clearance / Calvert dosing and the
table-driven dose adjustment result.
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class BSAMethod(str, Enum):
    """Body surface area formulas"""
    DUBOIS = "dubois"
    MOSTELLER = "mosteller"
    HAYCOCK = "haycock"
    GEHAN = "gehan"


class CreatinineClearanceMethod(str, Enum):
    """Renal function estimators"""
    COCKCROFT_GAULT = "cockcroft_gault"
    MDRD = "mdrd"
    CKD_EPI = "ckd_epi"


class AdjustmentType(str, Enum):
    BSA = "bsa"
    RENAL = "renal"
    HEPATIC = "hepatic"
    AGE = "age"


# ============================================================================
# PATIENT
# ============================================================================

class RenalFunction(BaseModel):
    creatinine: float = Field(..., gt=0, description="Serum creatinine (mg/dL)")


class HepaticFunction(BaseModel):
    bilirubin: float = Field(..., ge=0, description="Total bilirubin (mg/dL)")
    alt: Optional[float] = Field(None, ge=0, description="ALT (U/L)")
    ast: Optional[float] = Field(None, ge=0, description="AST (U/L)")
    albumin: Optional[float] = Field(None, ge=0, description="Albumin (g/dL)")


class TreatmentCourse(BaseModel):
    """Prior regimen"""
    regimen_name: str = Field(..., description="Regimen name (e.g., 'AC-T', 'doxorubicin/cyclophosphamide')")
    drugs: List[str] = Field(default_factory=list, description="Drugs given in the regimen")


class Patient(BaseModel):
    """Patient attributes consumed by the dose calculator."""
    height_cm: float = Field(..., gt=0, description="Height (cm)")
    weight_kg: float = Field(..., gt=0, description="Weight (kg)")
    date_of_birth: date
    gender: Gender
    renal_function: RenalFunction
    hepatic_function: HepaticFunction
    ecog_performance_status: Optional[int] = Field(None, ge=0, le=5)
    allergies: List[str] = Field(default_factory=list)
    treatment_history: List[TreatmentCourse] = Field(default_factory=list)


# ============================================================================
# FORMULA RESULTS
# ============================================================================

class BSACalculation(BaseModel):
    height: float
    weight: float
    method: BSAMethod
    bsa: float = Field(..., description="Body surface area (m²)")


class CreatinineClearanceCalculation(BaseModel):
    age: float
    weight: float
    creatinine: float
    gender: Gender
    method: CreatinineClearanceMethod
    clearance: float = Field(..., description="Creatinine clearance (mL/min)")


class CarboplatinDosing(BaseModel):
    target_auc: float
    creatinine_clearance: float
    dose: int = Field(..., description="Calvert dose (mg)")
    notes: List[str] = Field(default_factory=list)


# ============================================================================
# DOSE CALCULATION RESULT
# ============================================================================

class DoseAdjustment(BaseModel):
    reason: str
    type: AdjustmentType
    factor: float = Field(..., description="Multiply running dose by this")
    description: str
    evidence: str


class ClinicalAlert(BaseModel):
    id: str
    severity: str
    type: str
    title: str
    description: str
    recommendation: str
    source: str


class MonitoringRecommendation(BaseModel):
    parameter: str
    frequency: str
    baseline: bool
    description: str
    action_threshold: Optional[str] = None
    normal_range: Optional[str] = None


class DoseCalculation(BaseModel):
    drug: str
    baseline_dose: float
    unit: str
    calculated_dose: float
    actual_dose: float = Field(..., description="Starts equal to calculated_dose; clinician may override")
    bsa: float
    creatinine_clearance: float
    age: int
    adjustments: List[DoseAdjustment] = Field(default_factory=list)
    warnings: List[ClinicalAlert] = Field(default_factory=list)
    contraindications: List[str] = Field(default_factory=list)
    monitoring: List[MonitoringRecommendation] = Field(default_factory=list)
    protocol_available: bool = Field(True, description="False when no dosing table mentions the drug")
    notes: List[str] = Field(default_factory=list)


# ============================================================================
# REQUESTS
# ============================================================================

class DoseCalculationRequest(BaseModel):
    patient: Patient
    drug_name: str = Field(..., min_length=1, description="Drug name (e.g., 'carboplatin')")
    baseline_dose: float = Field(..., ge=0)
    unit: str = Field(..., description="Dose unit (e.g., 'mg/m²', 'mg')")
    as_of: Optional[date] = Field(None, description="Date used for age; defaults to today")


class BSARequest(BaseModel):
    height: float = Field(..., gt=0, description="Height (cm)")
    weight: float = Field(..., gt=0, description="Weight (kg)")
    method: Optional[BSAMethod] = None


class CreatinineClearanceRequest(BaseModel):
    age: float = Field(..., gt=0)
    weight: float = Field(..., gt=0)
    creatinine: float = Field(..., gt=0)
    gender: Gender
    method: Optional[CreatinineClearanceMethod] = None


class CarboplatinRequest(BaseModel):
    target_auc: float = Field(..., gt=0)
    creatinine_clearance: float = Field(..., ge=0)

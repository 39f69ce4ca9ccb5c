"""
Clinical Formulas

Body surface area, creatinine clearance and Calvert carboplatin dosing.
Inputs are trusted numbers; request validation happens in the schemas.
"""

import math
from datetime import date
from typing import Optional, Union

from oncodose.config import DEFAULT_BSA_METHOD, DEFAULT_CRCL_METHOD
from oncodose.schemas.dosing import (
    BSACalculation, BSAMethod, CarboplatinDosing,
    CreatinineClearanceCalculation, CreatinineClearanceMethod, Gender,
)

CARBOPLATIN_DOSE_ADVISORY_MG = 800
CARBOPLATIN_HIGH_AUC = 6
REDUCED_CRCL = 60


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positive values (0.125 -> 0.13), unlike round()."""
    if not math.isfinite(value):
        return value
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def _coerce(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return default


def calculate_age(date_of_birth: date, as_of: Optional[date] = None) -> int:
    """Whole years between date_of_birth and as_of (today by default)."""
    today = as_of or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def calculate_bsa(
    height: float,
    weight: float,
    method: Optional[Union[BSAMethod, str]] = None
) -> BSACalculation:
    """
    Body surface area in m², rounded to 2 decimals.

    Args:
        height: Height in cm
        weight: Weight in kg
        method: dubois, mosteller (default), haycock or gehan; unknown -> mosteller
    """
    method = _coerce(BSAMethod, method or DEFAULT_BSA_METHOD, BSAMethod.MOSTELLER)

    if method == BSAMethod.DUBOIS:
        bsa = 0.007184 * math.pow(weight, 0.425) * math.pow(height, 0.725)
    elif method == BSAMethod.HAYCOCK:
        bsa = 0.024265 * math.pow(weight, 0.5378) * math.pow(height, 0.3964)
    elif method == BSAMethod.GEHAN:
        bsa = 0.0235 * math.pow(weight, 0.51456) * math.pow(height, 0.42246)
    else:
        bsa = math.sqrt((height * weight) / 3600)

    return BSACalculation(
        height=height,
        weight=weight,
        method=method,
        bsa=round_half_up(bsa, 2),
    )


def calculate_creatinine_clearance(
    age: float,
    weight: float,
    creatinine: float,
    gender: Union[Gender, str],
    method: Optional[Union[CreatinineClearanceMethod, str]] = None
) -> CreatinineClearanceCalculation:
    """
    Creatinine clearance in mL/min, rounded to 1 decimal.

    Args:
        age: Age in years
        weight: Weight in kg (Cockcroft-Gault only)
        creatinine: Serum creatinine in mg/dL; 0 gives inf, negative gives nan
        gender: male or female; anything else gets no female correction
        method: cockcroft_gault (default), mdrd or ckd_epi
    """
    gender = _coerce(Gender, gender, Gender.MALE)
    method = _coerce(
        CreatinineClearanceMethod,
        method or DEFAULT_CRCL_METHOD,
        CreatinineClearanceMethod.COCKCROFT_GAULT,
    )
    female = gender == Gender.FEMALE

    # Outside every formula's domain: zero divides to inf, negative is undefined
    if creatinine <= 0:
        clearance = math.inf if creatinine == 0 else math.nan
    elif method == CreatinineClearanceMethod.MDRD:
        clearance = 175 * math.pow(creatinine, -1.154) * math.pow(age, -0.203)
        if female:
            clearance *= 0.742
    elif method == CreatinineClearanceMethod.CKD_EPI:
        kappa = 0.7 if female else 0.9
        alpha = -0.329 if female else -0.411
        clearance = (
            141
            * math.pow(min(creatinine / kappa, 1), alpha)
            * math.pow(max(creatinine / kappa, 1), -1.209)
            * math.pow(0.993, age)
        )
        if female:
            clearance *= 1.018
    else:
        clearance = ((140 - age) * weight) / (72 * creatinine)
        if female:
            clearance *= 0.85

    return CreatinineClearanceCalculation(
        age=age,
        weight=weight,
        creatinine=creatinine,
        gender=gender,
        method=method,
        clearance=round_half_up(clearance, 1),
    )


def calculate_carboplatin_dose(target_auc: float, creatinine_clearance: float) -> CarboplatinDosing:
    """
    Calvert formula: dose (mg) = AUC x (CrCl + 25).

    Notes are advisory only; no cap is applied to the returned dose.
    """
    dose = target_auc * (creatinine_clearance + 25)
    notes = []

    if creatinine_clearance < REDUCED_CRCL:
        notes.append("Reduced creatinine clearance - consider dose reduction")
    if target_auc > CARBOPLATIN_HIGH_AUC:
        notes.append("High AUC target - monitor for increased toxicity")
    if dose > CARBOPLATIN_DOSE_ADVISORY_MG:
        notes.append("High absolute dose - consider capping at 800mg")

    return CarboplatinDosing(
        target_auc=target_auc,
        creatinine_clearance=creatinine_clearance,
        dose=int(round_half_up(dose)),
        notes=notes,
    )

"""
Dose Calculation Service

Orchestrates a single chemotherapy dose calculation:
1. BSA (Mosteller) and creatinine clearance (Cockcroft-Gault)
2. BSA scaling for per-m² doses
3. Renal, hepatic and age adjustments from the dosing rule tables
4. Performance status / organ function warnings
5. Allergy and drug-specific contraindications
6. Drug monitoring protocol

Unknown drugs are not an error: nothing matches, and the result is flagged
with protocol_available=False.
"""

import logging
from datetime import date
from typing import Dict, List, Any, Optional, Callable

from oncodose.schemas.dosing import (
    Patient, DoseCalculation, DoseAdjustment, AdjustmentType,
    ClinicalAlert, MonitoringRecommendation,
    BSAMethod, CreatinineClearanceMethod,
)
from oncodose.services.clinical_formulas import (
    calculate_age, calculate_bsa, calculate_creatinine_clearance, round_half_up,
)
from oncodose.services.rule_tables import load_dose_rules

logger = logging.getLogger(__name__)

DEFAULT_WARNING_THRESHOLDS = {
    "ecog_performance_status": 2,
    "creatinine_clearance": 60,
    "bilirubin": 1.5,
}


def _fmt(value: float) -> str:
    return f"{value:g}"


def _find_bucket(buckets: List[Dict[str, Any]], value: float) -> Optional[Dict[str, Any]]:
    """First bucket with min <= value <= max (bounds inclusive)."""
    for bucket in buckets:
        if bucket["min"] <= value <= bucket["max"]:
            return bucket
    return None


def _prior_exposure(rule: Dict[str, Any], patient: Patient) -> bool:
    drugs = [d.lower() for d in rule.get("drugs", [])]
    for course in patient.treatment_history:
        regimen = course.regimen_name.lower()
        given = [d.lower() for d in course.drugs]
        for drug in drugs:
            if drug in regimen or any(drug in g for g in given):
                return True
    return False


def _creatinine_above(rule: Dict[str, Any], patient: Patient) -> bool:
    return patient.renal_function.creatinine > rule["threshold"]


# Contraindication rule type -> predicate
CONTRAINDICATION_CHECKS: Dict[str, Callable[[Dict[str, Any], Patient], bool]] = {
    "prior_exposure": _prior_exposure,
    "creatinine_above": _creatinine_above,
}


class DoseCalculationService:
    """
    Table-driven dose calculator.

    Rule tables are injected for tests; by default the packaged
    dose_adjustment_rules.json is used.
    """

    def __init__(self, rules: Optional[Dict[str, Any]] = None):
        self.rules = rules if rules is not None else load_dose_rules()

    # ------------------------------------------------------------------
    # Table lookups
    # ------------------------------------------------------------------

    def get_renal_adjustment(self, drug_name: str, creatinine_clearance: float) -> Optional[DoseAdjustment]:
        renal = self.rules.get("renal", {})
        buckets = renal.get("drugs", {}).get(drug_name.lower())
        if not buckets:
            return None

        bucket = _find_bucket(buckets, creatinine_clearance)
        if bucket is None:
            return None

        return DoseAdjustment(
            reason="Renal impairment",
            type=AdjustmentType.RENAL,
            factor=bucket["factor"],
            description=bucket["description"],
            evidence=renal.get("evidence", "FDA Prescribing Information"),
        )

    def get_hepatic_adjustment(self, drug_name: str, bilirubin: float) -> Optional[DoseAdjustment]:
        hepatic = self.rules.get("hepatic", {})
        buckets = hepatic.get("drugs", {}).get(drug_name.lower())
        if not buckets:
            return None

        bucket = _find_bucket(buckets, bilirubin)
        if bucket is None:
            return None

        return DoseAdjustment(
            reason="Hepatic impairment",
            type=AdjustmentType.HEPATIC,
            factor=bucket["factor"],
            description=bucket["description"],
            evidence=hepatic.get("evidence", "FDA Prescribing Information"),
        )

    def get_age_adjustment(self, drug_name: str, age: int) -> Optional[DoseAdjustment]:
        rule = self.rules.get("age")
        if not rule or age < rule.get("min_age", 65):
            return None
        if drug_name.lower() not in rule.get("drugs", []):
            return None

        return DoseAdjustment(
            reason="Elderly patient",
            type=AdjustmentType.AGE,
            factor=rule["factor"],
            description=rule["description"],
            evidence=rule.get("evidence", "Geriatric oncology guidelines"),
        )

    def get_contraindications(self, drug_name: str, patient: Patient) -> List[str]:
        contraindications = []
        drug_lower = drug_name.lower()

        if any(drug_lower in allergy.lower() for allergy in patient.allergies):
            contraindications.append(f"Known allergy to {drug_name}")

        for rule in self.rules.get("contraindications", {}).get(drug_lower, []):
            check = CONTRAINDICATION_CHECKS.get(rule.get("type"))
            if check is None:
                logger.warning(f"Unknown contraindication rule type '{rule.get('type')}' for {drug_lower}")
                continue
            if check(rule, patient):
                contraindications.append(rule["message"])

        return contraindications

    def get_monitoring(self, drug_name: str) -> List[MonitoringRecommendation]:
        protocol = self.rules.get("monitoring", {}).get(drug_name.lower(), [])
        return [MonitoringRecommendation(**item) for item in protocol]

    def has_protocol(self, drug_name: str) -> bool:
        drug_lower = drug_name.lower()
        return (
            drug_lower in self.rules.get("renal", {}).get("drugs", {})
            or drug_lower in self.rules.get("hepatic", {}).get("drugs", {})
            or drug_lower in self.rules.get("age", {}).get("drugs", [])
            or drug_lower in self.rules.get("contraindications", {})
            or drug_lower in self.rules.get("monitoring", {})
        )

    # ------------------------------------------------------------------
    # Warnings
    # ------------------------------------------------------------------

    def get_warnings(self, patient: Patient, creatinine_clearance: float) -> List[ClinicalAlert]:
        thresholds = {**DEFAULT_WARNING_THRESHOLDS, **self.rules.get("warning_thresholds", {})}
        warnings = []

        ecog = patient.ecog_performance_status
        if ecog is not None and ecog >= thresholds["ecog_performance_status"]:
            warnings.append(ClinicalAlert(
                id="ps_warning",
                severity="major",
                type="monitoring",
                title="Poor Performance Status",
                description=f"ECOG PS {ecog} - consider dose reduction or alternative therapy",
                recommendation="Evaluate patient for dose reduction or supportive care",
                source="NCCN Guidelines",
            ))

        if creatinine_clearance < thresholds["creatinine_clearance"]:
            warnings.append(ClinicalAlert(
                id="renal_warning",
                severity="major",
                type="monitoring",
                title="Renal Impairment",
                description=f"Creatinine clearance {_fmt(creatinine_clearance)} mL/min",
                recommendation="Monitor renal function closely and adjust doses as needed",
                source="FDA Prescribing Information",
            ))

        bilirubin = patient.hepatic_function.bilirubin
        if bilirubin > thresholds["bilirubin"]:
            warnings.append(ClinicalAlert(
                id="hepatic_warning",
                severity="major",
                type="monitoring",
                title="Hepatic Impairment",
                description=f"Elevated bilirubin: {_fmt(bilirubin)} mg/dL",
                recommendation="Consider dose reduction for hepatically metabolized drugs",
                source="FDA Prescribing Information",
            ))

        return warnings

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def calculate_dose(
        self,
        patient: Patient,
        drug_name: str,
        baseline_dose: float,
        unit: str,
        as_of: Optional[date] = None
    ) -> DoseCalculation:
        """
        Calculate an adjusted dose for one drug.

        Args:
            patient: Validated patient attributes
            drug_name: Drug name (case-insensitive table key)
            baseline_dose: Protocol dose, per m² when unit says so
            unit: Dose unit string (e.g., 'mg/m²')
            as_of: Reference date for age (today by default)

        Returns:
            DoseCalculation with adjustments, warnings, contraindications and monitoring
        """
        age = calculate_age(patient.date_of_birth, as_of)
        bsa = calculate_bsa(patient.height_cm, patient.weight_kg, BSAMethod.MOSTELLER)
        crcl = calculate_creatinine_clearance(
            age,
            patient.weight_kg,
            patient.renal_function.creatinine,
            patient.gender,
            CreatinineClearanceMethod.COCKCROFT_GAULT,
        )

        calculated_dose = baseline_dose
        adjustments: List[DoseAdjustment] = []
        notes: List[str] = []

        bsa_rule = self.rules.get("bsa_adjustment", {})
        markers = bsa_rule.get("unit_markers", ["m²", "/m2"])
        if any(marker in unit for marker in markers):
            calculated_dose = baseline_dose * bsa.bsa
            adjustments.append(DoseAdjustment(
                reason="BSA adjustment",
                type=AdjustmentType.BSA,
                factor=bsa.bsa,
                description=f"Dose adjusted for BSA: {_fmt(bsa.bsa)} m²",
                evidence=bsa_rule.get("evidence", "Standard oncology dosing practice"),
            ))

        for adjustment in (
            self.get_renal_adjustment(drug_name, crcl.clearance),
            self.get_hepatic_adjustment(drug_name, patient.hepatic_function.bilirubin),
            self.get_age_adjustment(drug_name, age),
        ):
            if adjustment is not None:
                calculated_dose *= adjustment.factor
                adjustments.append(adjustment)

        protocol_available = self.has_protocol(drug_name)
        if not protocol_available:
            notes.append(f"No dosing protocol available for {drug_name}")
            logger.warning(f"No dosing protocol on file for '{drug_name}'; returning unadjusted dose")

        calculated_dose = round_half_up(calculated_dose, 2)

        logger.info(
            f"Dose calculation: {drug_name} {baseline_dose} {unit} -> {calculated_dose} "
            f"({len(adjustments)} adjustment(s), BSA={bsa.bsa}, CrCl={crcl.clearance})"
        )

        return DoseCalculation(
            drug=drug_name,
            baseline_dose=baseline_dose,
            unit=unit,
            calculated_dose=calculated_dose,
            actual_dose=calculated_dose,
            bsa=bsa.bsa,
            creatinine_clearance=crcl.clearance,
            age=age,
            adjustments=adjustments,
            warnings=self.get_warnings(patient, crcl.clearance),
            contraindications=self.get_contraindications(drug_name, patient),
            monitoring=self.get_monitoring(drug_name),
            protocol_available=protocol_available,
            notes=notes,
        )


# Singleton instance
_dose_calculation_service: Optional[DoseCalculationService] = None


def get_dose_calculation_service() -> DoseCalculationService:
    """Get singleton dose calculation service instance."""
    global _dose_calculation_service
    if _dose_calculation_service is None:
        _dose_calculation_service = DoseCalculationService()
    return _dose_calculation_service

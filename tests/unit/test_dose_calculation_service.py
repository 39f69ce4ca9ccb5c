"""
Unit tests for DoseCalculationService.

Tests cover:
- Renal / hepatic / age table lookups (inclusive bounds, gaps)
- BSA scaling for per-m² doses
- Warnings, contraindications and monitoring
- Unknown drugs and injected rule tables
"""

from datetime import date

import pytest

from oncodose.schemas.dosing import AdjustmentType, Patient
from oncodose.services.dose_calculation_service import (
    DoseCalculationService, get_dose_calculation_service,
)

AS_OF = date(2024, 6, 1)


def make_patient(**overrides) -> Patient:
    """60-year-old male, 170 cm / 70 kg, creatinine 1.0, bilirubin 0.8."""
    data = {
        "height_cm": 170,
        "weight_kg": 70,
        "date_of_birth": "1964-06-01",
        "gender": "male",
        "renal_function": {"creatinine": 1.0},
        "hepatic_function": {"bilirubin": 0.8},
        "ecog_performance_status": 0,
        "allergies": [],
        "treatment_history": [],
    }
    data.update(overrides)
    return Patient(**data)


@pytest.fixture
def service():
    return DoseCalculationService()


# ============================================================================
# TABLE LOOKUPS
# ============================================================================

class TestRenalAdjustment:
    """Test renal adjustment buckets."""

    def test_carboplatin_severe(self, service):
        """CrCl 10 -> factor 0 (contraindicated)."""
        adj = service.get_renal_adjustment("carboplatin", 10)
        assert adj.factor == 0
        assert adj.type == AdjustmentType.RENAL

    def test_carboplatin_mild(self, service):
        """CrCl 50 -> factor 0.75."""
        assert service.get_renal_adjustment("carboplatin", 50).factor == 0.75

    def test_bounds_are_inclusive(self, service):
        assert service.get_renal_adjustment("carboplatin", 15).factor == 0
        assert service.get_renal_adjustment("carboplatin", 16).factor == 0.5
        assert service.get_renal_adjustment("carboplatin", 60).factor == 0.75

    def test_gap_between_buckets_has_no_adjustment(self, service):
        assert service.get_renal_adjustment("carboplatin", 15.5) is None

    def test_normal_function_has_no_adjustment(self, service):
        assert service.get_renal_adjustment("carboplatin", 90) is None

    def test_drug_name_case_insensitive(self, service):
        assert service.get_renal_adjustment("CISPLATIN", 45).factor == 0.75

    def test_drug_without_renal_table(self, service):
        assert service.get_renal_adjustment("paclitaxel", 10) is None


class TestHepaticAdjustment:
    """Test bilirubin-based hepatic adjustment buckets."""

    def test_doxorubicin_moderate(self, service):
        assert service.get_hepatic_adjustment("doxorubicin", 1.8).factor == 0.5

    def test_doxorubicin_severe(self, service):
        assert service.get_hepatic_adjustment("doxorubicin", 4.0).factor == 0.25

    def test_paclitaxel_severe_is_contraindicated(self, service):
        assert service.get_hepatic_adjustment("paclitaxel", 8.0).factor == 0

    def test_normal_bilirubin(self, service):
        assert service.get_hepatic_adjustment("doxorubicin", 1.0) is None


class TestAgeAdjustment:
    """Test elderly dose reduction."""

    def test_elderly_listed_drug(self, service):
        adj = service.get_age_adjustment("carboplatin", 65)
        assert adj.factor == 0.8
        assert adj.type == AdjustmentType.AGE

    def test_under_threshold(self, service):
        assert service.get_age_adjustment("carboplatin", 64) is None

    def test_elderly_unlisted_drug(self, service):
        assert service.get_age_adjustment("paclitaxel", 80) is None


# ============================================================================
# DOSE CALCULATION
# ============================================================================

class TestCalculateDose:
    """Test the end-to-end calculation."""

    def test_flat_dose_with_renal_adjustment(self, service):
        """Creatinine 1.5 -> CrCl 51.9 -> carboplatin x0.75."""
        patient = make_patient(renal_function={"creatinine": 1.5})
        result = service.calculate_dose(patient, "carboplatin", 400, "mg", as_of=AS_OF)

        assert result.age == 60
        assert result.creatinine_clearance == 51.9
        assert result.calculated_dose == 300.0
        assert result.actual_dose == result.calculated_dose
        assert [a.type for a in result.adjustments] == [AdjustmentType.RENAL]
        assert result.protocol_available is True

    def test_bsa_scaling(self, service):
        """100 mg/m² x BSA 1.82 = 182 mg."""
        result = service.calculate_dose(make_patient(), "paclitaxel", 100, "mg/m²", as_of=AS_OF)

        assert result.bsa == 1.82
        assert result.calculated_dose == pytest.approx(182.0)
        bsa_adj = result.adjustments[0]
        assert bsa_adj.type == AdjustmentType.BSA
        assert bsa_adj.factor == 1.82
        assert bsa_adj.description == "Dose adjusted for BSA: 1.82 m²"

    def test_bsa_marker_ascii(self, service):
        result = service.calculate_dose(make_patient(), "paclitaxel", 100, "mg/m2", as_of=AS_OF)
        assert result.adjustments[0].type == AdjustmentType.BSA

    def test_flat_unit_not_scaled(self, service):
        result = service.calculate_dose(make_patient(), "paclitaxel", 100, "mg", as_of=AS_OF)
        assert result.calculated_dose == 100.0
        assert result.adjustments == []

    def test_bsa_and_hepatic_multiply(self, service):
        """100 mg/m² x 1.82 x 0.75 (bilirubin 1.8) = 136.5 mg."""
        patient = make_patient(hepatic_function={"bilirubin": 1.8})
        result = service.calculate_dose(patient, "paclitaxel", 100, "mg/m²", as_of=AS_OF)

        assert result.calculated_dose == pytest.approx(136.5)
        assert [a.type for a in result.adjustments] == [AdjustmentType.BSA, AdjustmentType.HEPATIC]

    def test_elderly_patient(self, service):
        """Age 70, normal renal function -> carboplatin x0.8."""
        patient = make_patient(date_of_birth="1954-01-15", renal_function={"creatinine": 0.8})
        result = service.calculate_dose(patient, "carboplatin", 400, "mg", as_of=AS_OF)

        assert result.age == 70
        assert result.calculated_dose == 320.0
        assert [a.type for a in result.adjustments] == [AdjustmentType.AGE]

    def test_renal_contraindication_gives_zero_dose(self, service):
        """Creatinine 8 -> CrCl 9.7 -> carboplatin factor 0."""
        patient = make_patient(renal_function={"creatinine": 8.0})
        result = service.calculate_dose(patient, "carboplatin", 400, "mg", as_of=AS_OF)
        assert result.calculated_dose == 0.0

    def test_unknown_drug(self, service):
        """Unknown drugs succeed, unadjusted, with protocol_available=False."""
        result = service.calculate_dose(make_patient(), "unobtainium", 50, "mg", as_of=AS_OF)

        assert result.calculated_dose == 50.0
        assert result.protocol_available is False
        assert result.notes == ["No dosing protocol available for unobtainium"]
        assert result.monitoring == []
        assert result.contraindications == []

    def test_unknown_drug_still_bsa_scaled(self, service):
        result = service.calculate_dose(make_patient(), "unobtainium", 10, "mg/m²", as_of=AS_OF)
        assert result.calculated_dose == pytest.approx(18.2)
        assert result.protocol_available is False

    def test_idempotent(self, service):
        patient = make_patient(ecog_performance_status=2, renal_function={"creatinine": 1.5})
        first = service.calculate_dose(patient, "cisplatin", 75, "mg/m²", as_of=AS_OF)
        second = service.calculate_dose(patient, "cisplatin", 75, "mg/m²", as_of=AS_OF)
        assert first.model_dump() == second.model_dump()


# ============================================================================
# WARNINGS / CONTRAINDICATIONS / MONITORING
# ============================================================================

class TestWarnings:
    """Test clinical warnings."""

    def test_no_warnings_for_healthy_patient(self, service):
        result = service.calculate_dose(make_patient(), "carboplatin", 400, "mg", as_of=AS_OF)
        assert result.warnings == []

    def test_poor_performance_status(self, service):
        result = service.calculate_dose(
            make_patient(ecog_performance_status=2), "carboplatin", 400, "mg", as_of=AS_OF
        )
        warning = result.warnings[0]
        assert warning.id == "ps_warning"
        assert warning.severity == "major"
        assert warning.description == "ECOG PS 2 - consider dose reduction or alternative therapy"

    def test_missing_performance_status(self, service):
        result = service.calculate_dose(
            make_patient(ecog_performance_status=None), "carboplatin", 400, "mg", as_of=AS_OF
        )
        assert "ps_warning" not in [w.id for w in result.warnings]

    def test_renal_warning(self, service):
        patient = make_patient(renal_function={"creatinine": 1.5})
        result = service.calculate_dose(patient, "carboplatin", 400, "mg", as_of=AS_OF)
        assert [w.id for w in result.warnings] == ["renal_warning"]
        assert result.warnings[0].description == "Creatinine clearance 51.9 mL/min"

    def test_hepatic_warning(self, service):
        patient = make_patient(hepatic_function={"bilirubin": 1.8})
        result = service.calculate_dose(patient, "paclitaxel", 175, "mg/m²", as_of=AS_OF)
        assert [w.id for w in result.warnings] == ["hepatic_warning"]
        assert result.warnings[0].description == "Elevated bilirubin: 1.8 mg/dL"

    def test_bilirubin_at_threshold_no_warning(self, service):
        patient = make_patient(hepatic_function={"bilirubin": 1.5})
        assert service.get_warnings(patient, 90) == []


class TestContraindications:
    """Test allergy and drug-specific contraindications."""

    def test_allergy_substring_match(self, service):
        patient = make_patient(allergies=["Carboplatin (anaphylaxis)"])
        result = service.calculate_dose(patient, "carboplatin", 400, "mg", as_of=AS_OF)
        assert "Known allergy to carboplatin" in result.contraindications

    def test_prior_anthracycline_by_regimen(self, service):
        patient = make_patient(treatment_history=[{"regimen_name": "AC (doxorubicin/cyclophosphamide)"}])
        result = service.calculate_dose(patient, "doxorubicin", 60, "mg/m²", as_of=AS_OF)
        assert result.contraindications == ["Prior anthracycline exposure - assess cumulative dose"]

    def test_prior_anthracycline_by_drug_list(self, service):
        patient = make_patient(treatment_history=[{"regimen_name": "FEC", "drugs": ["Epirubicin", "5-FU"]}])
        assert service.get_contraindications("doxorubicin", patient) == [
            "Prior anthracycline exposure - assess cumulative dose"
        ]

    def test_unrelated_history(self, service):
        patient = make_patient(treatment_history=[{"regimen_name": "FOLFOX"}])
        assert service.get_contraindications("doxorubicin", patient) == []

    def test_cisplatin_high_creatinine(self, service):
        patient = make_patient(renal_function={"creatinine": 2.5})
        result = service.calculate_dose(patient, "cisplatin", 75, "mg/m²", as_of=AS_OF)
        assert "Severe renal impairment" in result.contraindications

    def test_cisplatin_creatinine_at_threshold(self, service):
        patient = make_patient(renal_function={"creatinine": 2.0})
        assert service.get_contraindications("cisplatin", patient) == []

    def test_unknown_rule_type_skipped(self):
        rules = {"contraindications": {"drugx": [{"type": "lunar_phase", "message": "nope"}]}}
        service = DoseCalculationService(rules=rules)
        assert service.get_contraindications("drugx", make_patient()) == []


class TestMonitoring:
    """Test monitoring protocols."""

    def test_doxorubicin_protocol(self, service):
        monitoring = service.get_monitoring("doxorubicin")
        assert [m.parameter for m in monitoring] == ["ECHO or MUGA", "CBC with differential"]
        assert monitoring[0].action_threshold == "LVEF drop >10% from baseline or <50%"

    def test_cisplatin_protocol(self, service):
        assert len(service.get_monitoring("Cisplatin")) == 3

    def test_no_protocol(self, service):
        assert service.get_monitoring("paclitaxel") == []


# ============================================================================
# INJECTED RULES / SINGLETON
# ============================================================================

class TestRuleInjection:
    """Test calculator behaviour with replacement tables."""

    def test_empty_rules(self):
        service = DoseCalculationService(rules={})
        patient = make_patient(renal_function={"creatinine": 1.5})
        result = service.calculate_dose(patient, "carboplatin", 400, "mg/m²", as_of=AS_OF)

        # Default BSA markers and warning thresholds still apply
        assert result.calculated_dose == pytest.approx(728.0)
        assert result.protocol_available is False
        assert [w.id for w in result.warnings] == ["renal_warning"]

    def test_custom_renal_table(self):
        rules = {"renal": {"drugs": {"drugx": [{"min": 0, "max": 100, "factor": 0.9, "description": "test"}]}}}
        service = DoseCalculationService(rules=rules)
        result = service.calculate_dose(make_patient(), "drugx", 100, "mg", as_of=AS_OF)
        assert result.calculated_dose == 90.0
        assert result.protocol_available is True

    def test_singleton(self):
        assert get_dose_calculation_service() is get_dose_calculation_service()

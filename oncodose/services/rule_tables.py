"""
Clinical Rule Table Loader

Centralized loading of the JSON decision tables used by the dose calculator
and the PGx phenotype mapper. Tables are read once and cached; a missing or
unreadable file degrades to an empty table so lookups simply find nothing.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List

from oncodose.config import DOSING_RULES_PATH, PGX_RULES_PATH

logger = logging.getLogger(__name__)

# Cache loaded data
_dose_rules_cache: Optional[Dict[str, Any]] = None
_pgx_rules_cache: Optional[Dict[str, Any]] = None


def _read_json(path: Path, label: str) -> Dict[str, Any]:
    try:
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            logger.debug(f"Loaded {label} from {path}")
            return data if isinstance(data, dict) else {}
        logger.warning(f"{label} file not found: {path}")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load {label} from {path}: {e}")
    return {}


def load_dose_rules(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load renal/hepatic/age adjustment, contraindication and monitoring tables.

    Returns:
        Dictionary with keys: renal, hepatic, age, warning_thresholds,
        contraindications, monitoring, bsa_adjustment
    """
    global _dose_rules_cache

    if path is not None:
        return _read_json(Path(path), "dose adjustment rules")

    if _dose_rules_cache is None:
        _dose_rules_cache = _read_json(DOSING_RULES_PATH, "dose adjustment rules")
    return _dose_rules_cache


def load_pgx_rules(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load per-gene allele function tables and drug-gene guidance.

    Returns:
        Dictionary with keys: genes, guidance, duplication_copies, reference_allele
    """
    global _pgx_rules_cache

    if path is not None:
        return _read_json(Path(path), "PGx phenotype rules")

    if _pgx_rules_cache is None:
        _pgx_rules_cache = _read_json(PGX_RULES_PATH, "PGx phenotype rules")
    return _pgx_rules_cache


def reload_rules() -> None:
    """Drop cached tables (for testing/hot-reload)."""
    global _dose_rules_cache, _pgx_rules_cache
    _dose_rules_cache = None
    _pgx_rules_cache = None


def get_supported_drugs() -> List[str]:
    """Drugs that appear in at least one dosing table."""
    rules = load_dose_rules()
    drugs = set()
    drugs.update(rules.get("renal", {}).get("drugs", {}).keys())
    drugs.update(rules.get("hepatic", {}).get("drugs", {}).keys())
    drugs.update(rules.get("age", {}).get("drugs", []))
    drugs.update(rules.get("contraindications", {}).keys())
    drugs.update(rules.get("monitoring", {}).keys())
    return sorted(drugs)


def get_known_genes() -> List[str]:
    """Genes with an allele function table."""
    return list(load_pgx_rules().get("genes", {}).keys())

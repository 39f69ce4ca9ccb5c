"""
Configuration module for the dose calculation backend.
"""
import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Load environment variables from .env file
load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("LOG_JSON", "false").lower() == "true"
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

# Clinical rule tables shipped with the package (override with env for audited copies)
RESOURCES_DIR = Path(__file__).parent / "resources"
DOSING_RULES_PATH = Path(os.getenv("DOSING_RULES_PATH", str(RESOURCES_DIR / "dose_adjustment_rules.json")))
PGX_RULES_PATH = Path(os.getenv("PGX_RULES_PATH", str(RESOURCES_DIR / "pgx_phenotype_rules.json")))

# Formula defaults used when a request does not name a method
BSA_METHODS = ("dubois", "mosteller", "haycock", "gehan")
CRCL_METHODS = ("cockcroft_gault", "mdrd", "ckd_epi")
DEFAULT_BSA_METHOD = os.getenv("DEFAULT_BSA_METHOD", "mosteller").lower()
DEFAULT_CRCL_METHOD = os.getenv("DEFAULT_CRCL_METHOD", "cockcroft_gault").lower()

if DEFAULT_BSA_METHOD not in BSA_METHODS:
    logger.warning(f"Unknown DEFAULT_BSA_METHOD '{DEFAULT_BSA_METHOD}', using mosteller")
    DEFAULT_BSA_METHOD = "mosteller"
if DEFAULT_CRCL_METHOD not in CRCL_METHODS:
    logger.warning(f"Unknown DEFAULT_CRCL_METHOD '{DEFAULT_CRCL_METHOD}', using cockcroft_gault")
    DEFAULT_CRCL_METHOD = "cockcroft_gault"

SERVICE_VERSION = "1.0.0"

logger.info(
    f"oncodose config: environment={ENVIRONMENT} bsa={DEFAULT_BSA_METHOD} "
    f"crcl={DEFAULT_CRCL_METHOD} dosing_rules={DOSING_RULES_PATH.name}"
)


def get_service_config():
    """Get current service configuration snapshot."""
    return {
        "environment": ENVIRONMENT,
        "version": SERVICE_VERSION,
        "log_level": LOG_LEVEL,
        "log_json": LOG_JSON,
        "default_bsa_method": DEFAULT_BSA_METHOD,
        "default_crcl_method": DEFAULT_CRCL_METHOD,
        "dosing_rules_path": str(DOSING_RULES_PATH),
        "pgx_rules_path": str(PGX_RULES_PATH),
    }


def is_production():
    """Check if running in production."""
    return ENVIRONMENT.lower() == "production"

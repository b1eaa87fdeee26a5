"""DNA rule configuration for the purchase-order approval workflow."""

from .config import (
    DEFAULT_DNA,
    ApprovalThreshold,
    DNAConfig,
    DNAConfigCache,
    DNAConfigError,
    DNASettings,
    load_config,
    loads_config,
    validate_thresholds,
)
from .logger import get_logger, setup_logger
from .roles import Role, parse_role, role_rank

__all__ = [
    "DEFAULT_DNA",
    "ApprovalThreshold",
    "DNAConfig",
    "DNAConfigCache",
    "DNAConfigError",
    "DNASettings",
    "Role",
    "get_logger",
    "load_config",
    "loads_config",
    "parse_role",
    "role_rank",
    "setup_logger",
    "validate_thresholds",
]

# ==============================================
# COMPLIANCE ANALYSIS
# ==============================================
#
# Classifies a flow measurement against the regulatory deviation tiers.
#
# Modules:
# --------
# - compliance.py  → calculate_compliance, thresholds and result types
#
# ==============================================

from .compliance import (
    ComplianceResult,
    ComplianceStatus,
    ComplianceThresholds,
    calculate_compliance,
    format_deviation,
)

__all__ = [
    "ComplianceResult",
    "ComplianceStatus",
    "ComplianceThresholds",
    "calculate_compliance",
    "format_deviation",
]

# ==============================================
# Compliance Classifier
# ==============================================
#
# PURPOSE:
#   Compare a measured smoke-extraction flow with its reference flow and
#   classify the deviation against the regulatory tiers.
#
#   deviation = (measured - reference) / reference * 100
#
# ENUMS:
# ------
# - ComplianceStatus(Enum): COMPLIANT, ACCEPTABLE, NON_COMPLIANT, INVALID
#
# CLASSES:
# --------
# - ComplianceThresholds (dataclass)
#     compliant_max: float   → |deviation| <= this is compliant (default 10.0)
#     acceptable_max: float  → |deviation| <= this is acceptable (default 20.0)
#
# - ComplianceResult (frozen dataclass)
#     reference_flow, measured_flow, deviation (signed, full precision or
#     None when invalid), status, label, color
#
# FUNCTIONS:
# ----------
# - calculate_compliance(reference_flow, measured_flow, thresholds=None)
#       Applies rules in order:
#
#       RULE 1: reference <= 0 or non-finite input → INVALID
#       RULE 2: |deviation| <= compliant_max       → COMPLIANT
#       RULE 3: |deviation| <= acceptable_max      → ACCEPTABLE
#       RULE 4: everything else                    → NON_COMPLIANT
#
#       Boundary values belong to the stricter tier.
#
# - format_deviation(deviation) -> str
#
# ==============================================

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# Digits kept when comparing |deviation| to a threshold, so that a flow of
# exactly reference * 1.10 is not pushed over 10 % by float rounding
BOUNDARY_PRECISION = 9


class ComplianceStatus(Enum):
    """
    Regulatory tier of a measurement.

    - COMPLIANT: |deviation| <= 10 %
    - ACCEPTABLE: 10 % < |deviation| <= 20 %, drift to report to the operator
    - NON_COMPLIANT: |deviation| > 20 %, corrective action mandatory
    - INVALID: no reference flow to compare against
    """
    COMPLIANT = "compliant"
    ACCEPTABLE = "acceptable"
    NON_COMPLIANT = "non-compliant"
    INVALID = "invalid"


STATUS_LABELS = {
    ComplianceStatus.COMPLIANT: "Compliant",
    ComplianceStatus.ACCEPTABLE: "Acceptable",
    ComplianceStatus.NON_COMPLIANT: "Non-compliant",
    ComplianceStatus.INVALID: "Invalid",
}

STATUS_COLORS = {
    ComplianceStatus.COMPLIANT: "#10B981",
    ComplianceStatus.ACCEPTABLE: "#F59E0B",
    ComplianceStatus.NON_COMPLIANT: "#EF4444",
    ComplianceStatus.INVALID: "#6B7280",
}


@dataclass
class ComplianceThresholds:
    """
    Deviation limits (in percent) that separate the tiers.

    Defaults follow the commissioning rule: within ±10 % the shutter is
    compliant, within ±20 % the drift must be reported, beyond that
    corrective action is mandatory.
    """

    compliant_max: float = 10.0
    acceptable_max: float = 20.0

    def __post_init__(self):
        if not 0 <= self.compliant_max < self.acceptable_max:
            raise ValueError(
                f"Thresholds must satisfy 0 <= compliant_max < acceptable_max, "
                f"got {self.compliant_max} and {self.acceptable_max}"
            )


@dataclass(frozen=True)
class ComplianceResult:
    """Outcome of one classification. Pure value, no side effects."""

    reference_flow: float
    measured_flow: float
    deviation: Optional[float]
    status: ComplianceStatus
    label: str
    color: str

    @property
    def is_valid(self) -> bool:
        return self.status is not ComplianceStatus.INVALID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "referenceFlow": self.reference_flow,
            "measuredFlow": self.measured_flow,
            "deviation": self.deviation,
            "status": self.status.value,
            "label": self.label,
            "color": self.color,
        }


def _result(reference_flow, measured_flow, deviation, status) -> ComplianceResult:
    return ComplianceResult(
        reference_flow=reference_flow,
        measured_flow=measured_flow,
        deviation=deviation,
        status=status,
        label=STATUS_LABELS[status],
        color=STATUS_COLORS[status],
    )


def calculate_compliance(
    reference_flow: float,
    measured_flow: float,
    thresholds: Optional[ComplianceThresholds] = None
) -> ComplianceResult:
    """
    Classify a measured flow against its reference flow.

    Args:
        reference_flow: Design flow of the shutter (m³/h)
        measured_flow: Flow measured on site (m³/h)
        thresholds: Optional tier limits, defaults to 10 % / 20 %

    Returns:
        ComplianceResult. An INVALID result (deviation None) is returned
        instead of raising when the reference is not strictly positive or
        either value is not a finite number.
    """
    thresholds = thresholds or ComplianceThresholds()

    try:
        reference = float(reference_flow)
        measured = float(measured_flow)
    except (TypeError, ValueError):
        return _result(reference_flow, measured_flow, None, ComplianceStatus.INVALID)

    if not (math.isfinite(reference) and math.isfinite(measured)) or reference <= 0:
        return _result(reference, measured, None, ComplianceStatus.INVALID)

    deviation = (measured - reference) / reference * 100
    magnitude = round(abs(deviation), BOUNDARY_PRECISION)

    if magnitude <= thresholds.compliant_max:
        status = ComplianceStatus.COMPLIANT
    elif magnitude <= thresholds.acceptable_max:
        status = ComplianceStatus.ACCEPTABLE
    else:
        status = ComplianceStatus.NON_COMPLIANT

    return _result(reference, measured, deviation, status)


def format_deviation(deviation: Optional[float]) -> str:
    """Signed percentage with one decimal, e.g. "+15.0%". "N/A" when undefined."""
    if deviation is None:
        return "N/A"
    return f"{deviation:+.1f}%"

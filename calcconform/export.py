# ==============================================
# CSV Export
# ==============================================
#
# PURPOSE:
#   Flatten the survey tree into one CSV row per shutter, with its
#   compliance classification, for hand-over to the site manager.
#
# COLUMNS:
#   Project, City, Building, Zone, Shutter, Type, Reference flow (m³/h),
#   Measured flow (m³/h), Deviation (%), Status, Remarks, Created, Modified
#
# ==============================================

import csv
import io
from typing import Iterable, List, Optional

from calcconform.analysis.compliance import ComplianceThresholds, calculate_compliance, format_deviation
from calcconform.model.entities import Project, ShutterType

CSV_HEADERS = [
    "Project",
    "City",
    "Building",
    "Zone",
    "Shutter",
    "Type",
    "Reference flow (m³/h)",
    "Measured flow (m³/h)",
    "Deviation (%)",
    "Status",
    "Remarks",
    "Created",
    "Modified",
]

SHUTTER_TYPE_LABELS = {
    ShutterType.HIGH: "High shutter",
    ShutterType.LOW: "Low shutter",
}

DATE_FORMAT = "%d/%m/%Y"


def _flow(value: float) -> str:
    return f"{value:g}"


def export_rows(
    projects: Iterable[Project],
    project_ids: Optional[Iterable[str]] = None,
    thresholds: Optional[ComplianceThresholds] = None
) -> List[List[str]]:
    """
    Build the export table, header first.

    Args:
        projects: The tree to export (read only)
        project_ids: Restrict to these projects; all projects when None
        thresholds: Tier limits used to classify each shutter
    """
    selected = set(project_ids) if project_ids is not None else None
    rows = [list(CSV_HEADERS)]

    for project in projects:
        if selected is not None and project.id not in selected:
            continue
        for building in project.buildings:
            for zone in building.functional_zones:
                for shutter in zone.shutters:
                    compliance = calculate_compliance(
                        shutter.reference_flow, shutter.measured_flow, thresholds
                    )
                    rows.append([
                        project.name,
                        project.city or "",
                        building.name,
                        zone.name,
                        shutter.name,
                        SHUTTER_TYPE_LABELS[shutter.type],
                        _flow(shutter.reference_flow),
                        _flow(shutter.measured_flow),
                        format_deviation(compliance.deviation),
                        compliance.label,
                        shutter.remarks or "",
                        shutter.created_at.strftime(DATE_FORMAT),
                        shutter.updated_at.strftime(DATE_FORMAT),
                    ])
    return rows


def export_csv(
    projects: Iterable[Project],
    project_ids: Optional[Iterable[str]] = None,
    thresholds: Optional[ComplianceThresholds] = None
) -> str:
    """Render the export table as CSV text with every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(export_rows(projects, project_ids, thresholds))
    return buffer.getvalue()

from __future__ import annotations

from ..errors import ValidationError, format_error
from ..models import RemediationUpdate
from .common import dump, require_fields, truncate

# Statuses Black Duck accepts on a remediation update.
VALID_REMEDIATION_STATUSES = ("NEW", "REMEDIATION_REQUIRED", "DUPLICATE", "IGNORED")


def validate_remediation_status(status: str) -> None:
    if status not in VALID_REMEDIATION_STATUSES:
        raise ValidationError(
            f"Invalid remediation status: {status}. "
            f"Valid values are: {', '.join(VALID_REMEDIATION_STATUSES)}"
        )


async def update_vulnerability_remediation(client, project_id: str, project_version_id: str,
                                           component_id: str, component_version_id: str,
                                           vulnerability_id: str, remediation_status: str,
                                           comment: str | None = None) -> str:
    problem = require_fields(
        projectId=project_id,
        projectVersionId=project_version_id,
        componentId=component_id,
        componentVersionId=component_version_id,
        vulnerabilityId=vulnerability_id,
        remediationStatus=remediation_status,
    )
    if problem:
        return problem
    try:
        validate_remediation_status(remediation_status)
        updated = await client.update_vulnerability_remediation(
            project_id,
            project_version_id,
            component_id,
            component_version_id,
            vulnerability_id,
            RemediationUpdate(remediationStatus=remediation_status, comment=comment),
        )
        return dump({
            "success": True,
            "vulnerabilityName": updated.vulnerabilityName,
            "previousStatus": "Check get_vulnerability_details for previous status",
            "newStatus": remediation_status,
            "comment": comment or "No comment provided",
            "updatedAt": updated.remediationUpdatedAt,
            "updatedBy": updated.remediationUpdatedBy,
            "vulnerability": {
                "severity": updated.severity,
                "baseScore": updated.baseScore,
                "description": truncate(updated.description),
            },
        })
    except Exception as e:
        return format_error(e)

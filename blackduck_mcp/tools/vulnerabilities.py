from __future__ import annotations

from collections import Counter

from ..errors import format_error
from .common import dump, require_fields, truncate
from .projects import resolve_project_id, resolve_project_version_id


def build_filter(severity: str | None = None, search_term: str | None = None) -> str | None:
    clauses = []
    if severity:
        clauses.append(f"vulnerabilityWithRemediation.severity:{severity}")
    if search_term:
        clauses.append(f"componentOrVulnerabilityName:{search_term}")
    return " AND ".join(clauses) or None


async def get_project_vulnerabilities(client, project_id: str, project_version_id: str, limit: int = 100,
                                      offset: int = 0, severity: str | None = None,
                                      search_term: str | None = None) -> str:
    problem = require_fields(projectId=project_id, projectVersionId=project_version_id)
    if problem:
        return problem
    try:
        page = await client.get_vulnerable_components(
            project_id,
            project_version_id,
            limit=limit,
            offset=offset,
            filter=build_filter(severity, search_term),
        )
        if not page.items:
            if severity:
                return f"No {severity} severity vulnerabilities found."
            return "No vulnerabilities found for project version."

        vulnerabilities = []
        counts: Counter[str] = Counter()
        for vc in page.items:
            vuln = vc.vulnerabilityWithRemediation
            counts[vuln.severity or "UNSPECIFIED"] += 1
            vulnerabilities.append({
                "componentName": vc.componentName,
                "componentVersionName": vc.componentVersionName,
                "vulnerability": {
                    "name": vuln.vulnerabilityName,
                    "severity": vuln.severity,
                    "baseScore": vuln.baseScore,
                    "description": truncate(vuln.description),
                    "publishedDate": vuln.vulnerabilityPublishedDate,
                    "remediationStatus": vuln.remediationStatus,
                    "source": vuln.source,
                    "cweId": vuln.cweId,
                },
                "_meta": vc.meta.model_dump() if vc.meta else None,
            })

        return dump({
            "projectId": project_id,
            "projectVersionId": project_version_id,
            "totalCount": page.totalCount,
            "returned": len(vulnerabilities),
            "severityCounts": dict(counts),
            "vulnerabilities": vulnerabilities,
        })
    except Exception as e:
        return format_error(e)


async def get_project_vulnerabilities_by_name(client, project_name: str, severity: str | None = None) -> str:
    problem = require_fields(projectName=project_name)
    if problem:
        return problem
    try:
        project_id = await resolve_project_id(client, project_name)
        version_id = await resolve_project_version_id(client, project_id, project_name)
    except Exception as e:
        return format_error(e)
    return await get_project_vulnerabilities(client, project_id, version_id, severity=severity)


async def get_vulnerability_details(client, project_id: str, project_version_id: str, component_id: str,
                                    component_version_id: str, vulnerability_id: str) -> str:
    problem = require_fields(
        projectId=project_id,
        projectVersionId=project_version_id,
        componentId=component_id,
        componentVersionId=component_version_id,
        vulnerabilityId=vulnerability_id,
    )
    if problem:
        return problem
    try:
        v = await client.get_vulnerability_remediation(
            project_id, project_version_id, component_id, component_version_id, vulnerability_id
        )
        return dump({
            "vulnerabilityName": v.vulnerabilityName,
            "description": v.description,
            "severity": v.severity,
            "baseScore": v.baseScore,
            "overallScore": v.overallScore,
            "source": v.source,
            "cweId": v.cweId,
            "cvss2": v.cvss2.model_dump(exclude_none=True) if v.cvss2 else None,
            "cvss3": v.cvss3.model_dump(exclude_none=True) if v.cvss3 else None,
            "relatedVulnerability": v.relatedVulnerability,
            "remediation": {
                "status": v.remediationStatus,
                "targetAt": v.remediationTargetAt,
                "actualAt": v.remediationActualAt,
                "createdAt": v.remediationCreatedAt,
                "createdBy": v.remediationCreatedBy,
                "updatedAt": v.remediationUpdatedAt,
                "updatedBy": v.remediationUpdatedBy,
                "comment": v.comment,
            },
            "bdsa": v.bdsa,
        })
    except Exception as e:
        return format_error(e)

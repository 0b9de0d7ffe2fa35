"""Vulnerability fix guidance.

Answers "can this vulnerability be fixed by upgrading, and how?" by chaining
three Black Duck calls:

1. remediation detail for context (best effort),
2. the BOM dependency paths for the origin, to tell a direct dependency from a
   transitive one and to find the ids the guidance endpoints are keyed on,
3. short-term / long-term upgrade guidance for that component.

Only the last call is allowed to fail the tool. The first two degrade to
safe defaults and log what happened.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import structlog

from ..errors import UnknownOriginError, format_error
from ..models import (
    ComponentInfo,
    Cvss3Summary,
    DependencyType,
    FixGuidanceResult,
    FixGuidanceSection,
    GuidanceIdentifiers,
    HorizonGuidance,
    UnavailableGuidance,
    UpgradeGuidance,
    UpgradeRecommendation,
    VulnerabilityContext,
    VulnerabilityCoordinate,
    VulnerabilityPlaceholder,
    VulnerabilityRemediation,
)
from .common import require_fields, truncate
from .fix_guidance_utils import (
    FixAvailability,
    compare_horizons,
    describe_risk_reduction,
    extract_guidance_identifiers,
    get_fix_availability,
    total_vulnerabilities,
)

logger = structlog.get_logger("blackduck_mcp.fix_guidance")

REQUIRED_FIELDS = (
    "projectId",
    "projectVersionId",
    "componentId",
    "componentVersionId",
    "vulnerabilityId",
    "originId",
)

NO_FIX_STEPS = (
    "This vulnerability is NOT FIXABLE by upgrading the component.",
    "No short-term or long-term fix is available from the component maintainers.",
    "Consider these alternative remediation strategies:",
    "  - Apply security patches or workarounds if available",
    "  - Implement additional security controls to mitigate the risk",
    "  - Consider replacing the component with a secure alternative",
    "  - Accept the risk if it's deemed acceptable for your use case",
)

NO_FIX_RECOMMENDATION = (
    "This vulnerability cannot be fixed by upgrading. Consider alternative remediation "
    "strategies such as applying security patches, implementing mitigating controls, "
    "or replacing the component."
)

Resolution = Literal["dependency-path", "no-paths", "lookup-failed"]


@dataclass(frozen=True)
class DependencyAnalysis:
    dependency_type: DependencyType
    identifiers: GuidanceIdentifiers
    # How the classification was reached; anything but "dependency-path" is the DIRECT fallback.
    resolution: Resolution


async def get_vulnerability_fix_guidance(client, coordinate: VulnerabilityCoordinate) -> str:
    """Run the fix-guidance pipeline and return pretty JSON or a one-line error."""
    problem = validate_coordinate(coordinate)
    if problem:
        return problem

    try:
        context = await fetch_vulnerability_context(client, coordinate)
        analysis = await analyze_dependency_type(client, coordinate)
        guidance = await fetch_upgrade_guidance(client, analysis, coordinate.vulnerabilityId)
    except Exception as e:
        logger.warning("Fix guidance failed", vulnerability=coordinate.vulnerabilityId, error=format_error(e))
        return format_error(e)

    result = build_result(coordinate.vulnerabilityId, context, analysis.dependency_type, guidance)
    return result.model_dump_json(indent=2, exclude_none=True)


def validate_coordinate(coordinate: VulnerabilityCoordinate) -> str | None:
    return require_fields(**{field: getattr(coordinate, field) for field in REQUIRED_FIELDS})


async def fetch_vulnerability_context(client, coordinate: VulnerabilityCoordinate) -> VulnerabilityRemediation | None:
    try:
        return await client.get_vulnerability_remediation(
            coordinate.projectId,
            coordinate.projectVersionId,
            coordinate.componentId,
            coordinate.componentVersionId,
            coordinate.vulnerabilityId,
        )
    except Exception as e:
        logger.warning("Failed to fetch vulnerability details", error=format_error(e))
        return None


async def analyze_dependency_type(client, coordinate: VulnerabilityCoordinate) -> DependencyAnalysis:
    """Classify the dependency as DIRECT or TRANSITIVE from its first BOM path.

    Falls back to DIRECT with the caller's ids when the lookup fails or finds
    nothing, so an unavailable dependency graph never blocks guidance.
    """
    fallback = GuidanceIdentifiers(
        componentId=coordinate.componentId,
        componentVersionId=coordinate.componentVersionId,
        originId=coordinate.originId,
    )

    try:
        items = await client.get_dependency_paths(
            coordinate.projectId, coordinate.projectVersionId, coordinate.originId
        )
    except Exception as e:
        logger.warning("Failed to fetch dependency paths, using provided IDs", error=format_error(e))
        return DependencyAnalysis(DependencyType.DIRECT, fallback, "lookup-failed")

    if not items:
        logger.info("No dependency paths found, assuming direct dependency", origin=coordinate.originId)
        return DependencyAnalysis(DependencyType.DIRECT, fallback, "no-paths")

    first = items[0]
    extracted = extract_guidance_identifiers(first, first.type)
    if extracted is None:
        return DependencyAnalysis(first.type, fallback, "dependency-path")

    return DependencyAnalysis(
        first.type,
        GuidanceIdentifiers(
            componentId=extracted.componentId,
            componentVersionId=extracted.componentVersionId,
            originId=extracted.originId or coordinate.originId,
        ),
        "dependency-path",
    )


async def fetch_upgrade_guidance(client, analysis: DependencyAnalysis, vulnerability_id: str) -> UpgradeGuidance:
    ids = analysis.identifiers
    if analysis.dependency_type is DependencyType.DIRECT:
        return await client.get_upgrade_guidance(ids.componentId, ids.componentVersionId)
    if not ids.originId:
        raise UnknownOriginError(vulnerability_id)
    return await client.get_transitive_upgrade_guidance(ids.componentId, ids.componentVersionId, ids.originId)


def build_result(vulnerability_id: str, context: VulnerabilityRemediation | None,
                 dependency_type: DependencyType, guidance: UpgradeGuidance) -> FixGuidanceResult:
    availability = get_fix_availability(guidance)
    return FixGuidanceResult(
        vulnerability=build_vulnerability_info(vulnerability_id, context),
        component=ComponentInfo(
            name=guidance.componentName,
            currentVersion=guidance.versionName,
            dependencyType=dependency_type,
            originId=guidance.originExternalId,
        ),
        fixGuidance=FixGuidanceSection(
            shortTerm=build_horizon(guidance.shortTerm, "short-term"),
            longTerm=build_horizon(guidance.longTerm, "long-term"),
        ),
        actionSteps=generate_action_steps(dependency_type, guidance, availability),
        recommendation=generate_recommendation(guidance, availability),
    )


def build_vulnerability_info(vulnerability_id: str, context: VulnerabilityRemediation | None):
    if context is None:
        return VulnerabilityPlaceholder(name=vulnerability_id)

    cvss3 = None
    if context.cvss3 is not None:
        cvss3 = Cvss3Summary(
            baseScore=context.cvss3.baseScore,
            severity=context.cvss3.severity,
            vector=context.cvss3.vector,
        )
    return VulnerabilityContext(
        name=context.vulnerabilityName,
        severity=context.severity or "UNSPECIFIED",
        baseScore=context.baseScore,
        description=truncate(context.description),
        cvss3=cvss3,
        remediationStatus=context.remediationStatus,
        cweId=context.cweId,
    )


def build_horizon(recommendation: UpgradeRecommendation | None, horizon: str):
    if recommendation is None:
        return UnavailableGuidance(message=f"No {horizon} fix available")
    return HorizonGuidance(
        recommendedVersion=recommendation.versionName,
        vulnerabilitiesRemaining=recommendation.vulnerabilityRisk,
        riskReduction=describe_risk_reduction(recommendation.vulnerabilityRisk),
        originId=recommendation.originExternalId,
    )


def generate_action_steps(dependency_type: DependencyType, guidance: UpgradeGuidance,
                          availability: FixAvailability) -> list[str]:
    if not availability.has_any:
        return list(NO_FIX_STEPS)

    short, long = guidance.shortTerm, guidance.longTerm

    if dependency_type is DependencyType.DIRECT:
        def line(label: str, rec: UpgradeRecommendation | None) -> str:
            if rec is None:
                return f"  - {label}: No fix available"
            remaining = total_vulnerabilities(rec.vulnerabilityRisk)
            return f"  - {label}: {rec.versionName} ({remaining} vulnerabilities remaining)"

        return [
            "Update your dependency to one of the recommended versions:",
            line("Short-term", short),
            line("Long-term", long),
            "Update your package manager configuration (e.g., package.json, pom.xml, etc.)",
            "Run your package manager's install/update command",
            "Test your application to ensure compatibility",
            "Scan again with Black Duck to verify the vulnerability is resolved",
        ]

    def parent_line(label: str, rec: UpgradeRecommendation | None) -> str:
        if rec is None:
            return f"  - {label}: No fix available"
        return (f"  - {label} parent version: Check which direct dependency needs updating "
                f"to get {rec.versionName}")

    return [
        "This is a TRANSITIVE dependency. To fix:",
        "Update the parent/direct dependency that includes this component:",
        parent_line("Short-term", short),
        parent_line("Long-term", long),
        "The transitive component will be automatically upgraded when you update the parent",
        "Run your package manager's install/update command",
        "Test your application to ensure compatibility",
        "Scan again with Black Duck to verify the vulnerability is resolved",
    ]


def generate_recommendation(guidance: UpgradeGuidance, availability: FixAvailability) -> str:
    if not availability.has_any:
        return NO_FIX_RECOMMENDATION
    if guidance.shortTerm is not None and guidance.longTerm is not None:
        return compare_horizons(guidance.shortTerm, guidance.longTerm)
    if guidance.shortTerm is not None:
        return f"Only short-term fix available. Upgrade to {guidance.shortTerm.versionName}."
    return f"Only long-term fix available. Upgrade to {guidance.longTerm.versionName}."

"""Pure helpers for the fix-guidance tool: risk arithmetic and link parsing."""
from __future__ import annotations

from dataclasses import dataclass

from ..models import (
    DependencyPathItem,
    DependencyType,
    GuidanceIdentifiers,
    UpgradeGuidance,
    UpgradeRecommendation,
    VulnerabilityRiskCounts,
)

_GUIDANCE_REL = {
    DependencyType.DIRECT: "upgrade-guidance",
    DependencyType.TRANSITIVE: "transitive-upgrade-guidance",
}


@dataclass(frozen=True)
class FixAvailability:
    has_short_term: bool
    has_long_term: bool

    @property
    def has_any(self) -> bool:
        return self.has_short_term or self.has_long_term


def total_vulnerabilities(risks: VulnerabilityRiskCounts) -> int:
    return risks.critical + risks.high + risks.medium + risks.low


def describe_risk_reduction(risks: VulnerabilityRiskCounts) -> str:
    """Human readable summary of what an upgrade leaves behind."""
    total = total_vulnerabilities(risks)
    if total == 0:
        return "Eliminates all known vulnerabilities"

    if risks.critical == 0 and risks.high == 0:
        return f"Eliminates all critical and high severity vulnerabilities ({total} low/medium remain)"

    buckets = [
        (risks.critical, "critical"),
        (risks.high, "high"),
        (risks.medium, "medium"),
        (risks.low, "low"),
    ]
    parts = [f"{count} {label}" for count, label in buckets if count > 0]
    return f"{total} vulnerabilities remain: {', '.join(parts)}"


def get_fix_availability(guidance: UpgradeGuidance) -> FixAvailability:
    return FixAvailability(
        has_short_term=guidance.shortTerm is not None,
        has_long_term=guidance.longTerm is not None,
    )


def parse_guidance_href(href: str, dependency_type: DependencyType) -> GuidanceIdentifiers | None:
    """Pull component, version and (for transitive links) origin ids out of a guidance link.

    Links look like ``/api/components/{c}/versions/{v}/upgrade-guidance`` or
    ``/api/components/{c}/versions/{v}/origins/{o}/transitive-upgrade-guidance``.
    """
    parts = href.split("/")

    def after(segment: str) -> str | None:
        if segment not in parts:
            return None
        i = parts.index(segment)
        return parts[i + 1] if i + 1 < len(parts) and parts[i + 1] else None

    component_id = after("components")
    component_version_id = after("versions")
    if component_id is None or component_version_id is None:
        return None

    origin_id = after("origins") if dependency_type is DependencyType.TRANSITIVE else None
    return GuidanceIdentifiers(
        componentId=component_id,
        componentVersionId=component_version_id,
        originId=origin_id,
    )


def extract_guidance_identifiers(item: DependencyPathItem,
                                 dependency_type: DependencyType) -> GuidanceIdentifiers | None:
    """Identifiers for the upgrade-guidance call, taken from the second-to-last path node."""
    if len(item.path) <= 1:
        return None

    node = item.path[-2]
    links = node.meta.links if node.meta else []
    rel = _GUIDANCE_REL[dependency_type]
    link = next((l for l in links if l.rel == rel), None)
    if link is None or not link.href:
        return None

    return parse_guidance_href(link.href, dependency_type)


def compare_horizons(short_term: UpgradeRecommendation, long_term: UpgradeRecommendation) -> str:
    short_total = total_vulnerabilities(short_term.vulnerabilityRisk)
    long_total = total_vulnerabilities(long_term.vulnerabilityRisk)

    if long_total < short_total:
        return (f"Recommended: Use the long-term version ({long_term.versionName}) "
                "as it has fewer vulnerabilities.")
    if short_total == 0:
        return (f"Recommended: Use the short-term version ({short_term.versionName}) "
                "as it has no known vulnerabilities.")
    return "Both versions have vulnerabilities. Consider the trade-offs between version compatibility and security."

from __future__ import annotations

from enum import Enum
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


# ---- Common ----
class Link(BaseModel):
    rel: str
    href: str


class Meta(BaseModel):
    href: str | None = None
    allow: list[str] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)


class Resource(BaseModel):
    meta: Meta | None = Field(default=None, alias="_meta")
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Page(BaseModel, Generic[T]):
    totalCount: int = 0
    items: list[T] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    errorCode: str | None = None
    errorMessage: str | None = None
    message: str | None = None
    model_config = ConfigDict(extra="allow")


# ---- Projects ----
class Project(Resource):
    name: str
    description: str | None = None
    projectTier: int | None = None
    projectOwner: str | None = None
    createdAt: str | None = None
    updatedAt: str | None = None


class ProjectVersion(Resource):
    versionName: str
    phase: str | None = None
    distribution: str | None = None
    nickname: str | None = None
    createdAt: str | None = None
    settingUpdatedAt: str | None = None


# ---- Vulnerabilities ----
Severity = Literal["CRITICAL", "HIGH", "MEDIUM", "LOW", "INFO", "UNSPECIFIED"]

RemediationStatus = Literal[
    "NEW",
    "REMEDIATION_REQUIRED",
    "REMEDIATION_COMPLETE",
    "DUPLICATE",
    "IGNORED",
    "MITIGATED",
    "NEEDS_REVIEW",
    "NOT_VULNERABLE",
    "PATCHED",
]


class CvssScore(BaseModel):
    baseScore: float | None = None
    impactSubscore: float | None = None
    exploitabilitySubscore: float | None = None
    severity: str | None = None
    vector: str | None = None
    model_config = ConfigDict(extra="allow")


class VulnerabilityWithRemediation(Resource):
    vulnerabilityName: str
    description: str | None = None
    vulnerabilityPublishedDate: str | None = None
    baseScore: float | None = None
    source: str | None = None
    severity: str | None = None
    remediationStatus: str | None = None
    cweId: str | None = None


class VulnerableComponent(Resource):
    componentName: str
    componentVersionName: str | None = None
    vulnerabilityWithRemediation: VulnerabilityWithRemediation


class VulnerabilityRemediation(Resource):
    vulnerabilityName: str
    description: str | None = None
    severity: str | None = None
    baseScore: float | None = None
    overallScore: float | None = None
    source: str | None = None
    cweId: str | None = None
    cvss2: CvssScore | None = None
    cvss3: CvssScore | None = None
    relatedVulnerability: str | None = None
    remediationStatus: str | None = None
    remediationTargetAt: str | None = None
    remediationActualAt: str | None = None
    remediationCreatedAt: str | None = None
    remediationCreatedBy: str | None = None
    remediationUpdatedAt: str | None = None
    remediationUpdatedBy: str | None = None
    comment: str | None = None
    bdsa: dict | None = None


class RemediationUpdate(BaseModel):
    remediationStatus: RemediationStatus
    comment: str | None = None


# ---- Dependency paths / upgrade guidance ----
class DependencyType(str, Enum):
    DIRECT = "DIRECT"
    TRANSITIVE = "TRANSITIVE"


class DependencyPathNode(Resource):
    name: str | None = None
    version: str | None = None
    originId: str | None = None
    nameSpace: str | None = None


class DependencyPathItem(BaseModel):
    count: int | None = None
    type: DependencyType
    path: list[DependencyPathNode] = Field(default_factory=list)


class VulnerabilityRiskCounts(BaseModel):
    critical: int = Field(default=0, ge=0)
    high: int = Field(default=0, ge=0)
    medium: int = Field(default=0, ge=0)
    low: int = Field(default=0, ge=0)


class UpgradeRecommendation(BaseModel):
    version: str | None = None
    versionName: str
    vulnerabilityRisk: VulnerabilityRiskCounts = Field(default_factory=VulnerabilityRiskCounts)
    originExternalId: str | None = None
    model_config = ConfigDict(extra="allow")


class UpgradeGuidance(Resource):
    componentName: str | None = None
    versionName: str | None = None
    originExternalNamespace: str | None = None
    originExternalId: str | None = None
    shortTerm: UpgradeRecommendation | None = None
    longTerm: UpgradeRecommendation | None = None


# ---- Fix guidance request / result ----
class VulnerabilityCoordinate(BaseModel):
    projectId: str = ""
    projectVersionId: str = ""
    componentId: str = ""
    componentVersionId: str = ""
    vulnerabilityId: str = ""
    originId: str = ""
    model_config = ConfigDict(frozen=True)


class GuidanceIdentifiers(BaseModel):
    componentId: str
    componentVersionId: str
    originId: str | None = None


class Cvss3Summary(BaseModel):
    baseScore: float | None = None
    severity: str | None = None
    vector: str | None = None


class VulnerabilityContext(BaseModel):
    name: str
    severity: str = "UNSPECIFIED"
    baseScore: float | None = None
    description: str | None = None
    cvss3: Cvss3Summary | None = None
    remediationStatus: str | None = None
    cweId: str | None = None


class VulnerabilityPlaceholder(BaseModel):
    name: str
    note: str = "Could not fetch vulnerability details"


class ComponentInfo(BaseModel):
    name: str | None = None
    currentVersion: str | None = None
    dependencyType: DependencyType
    originId: str | None = None


class HorizonGuidance(BaseModel):
    recommendedVersion: str
    vulnerabilitiesRemaining: VulnerabilityRiskCounts
    riskReduction: str
    originId: str | None = None


class UnavailableGuidance(BaseModel):
    available: bool = False
    message: str


class FixGuidanceSection(BaseModel):
    shortTerm: HorizonGuidance | UnavailableGuidance
    longTerm: HorizonGuidance | UnavailableGuidance


class FixGuidanceResult(BaseModel):
    vulnerability: VulnerabilityContext | VulnerabilityPlaceholder
    component: ComponentInfo
    fixGuidance: FixGuidanceSection
    actionSteps: list[str]
    recommendation: str

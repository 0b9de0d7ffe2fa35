# blackduck_mcp/server.py
from __future__ import annotations

import asyncio
from typing import Annotated, Literal, Optional

import structlog
from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from .blackduck_client import BlackDuckClient
from .errors import format_error
from .models import Severity, VulnerabilityCoordinate
from .tools import fix_guidance, projects, remediation, vulnerabilities

logger = structlog.get_logger("blackduck_mcp.server")

# -------------------- FastMCP server config --------------------
mcp = FastMCP("Black Duck MCP")

ProjectId = Annotated[str, "UUID of the project"]
ProjectVersionId = Annotated[str, "UUID of the project version"]
ComponentId = Annotated[str, "UUID of the component"]
ComponentVersionId = Annotated[str, "UUID of the component version"]
VulnerabilityId = Annotated[str, "Vulnerability identifier (e.g., CVE-2023-1234 or BDSA-2023-0001)"]
Limit = Annotated[int, "Maximum number of results to return (default: 100)"]
Offset = Annotated[int, "Number of results to skip for pagination (default: 0)"]


# -------------------- Lazy, shared Black Duck HTTP client --------------------
_client: BlackDuckClient | None = None
_client_lock = asyncio.Lock()


async def _get_client() -> BlackDuckClient:
    global _client
    if _client is not None:
        return _client
    async with _client_lock:
        if _client is None:
            c = BlackDuckClient()  # uses settings.black_duck_url / black_duck_api_token
            await c.start()
            _client = c
            logger.info("Black Duck client started", base_url=c.base_url)
    return _client


async def _run(tool, *args, **kwargs) -> str:
    """Start the shared client and run a tool; startup problems come back as text too."""
    try:
        client = await _get_client()
    except Exception as e:
        logger.error("Black Duck client unavailable", error=format_error(e))
        return format_error(e)
    return await tool(client, *args, **kwargs)


# -------------------- Projects --------------------
@mcp.tool(
    name="list_projects",
    description="List all Black Duck projects. Supports pagination and filtering by project name. Returns project IDs, names, descriptions, and metadata."
)
async def list_projects(
    limit: Limit = 100,
    offset: Offset = 0,
    searchTerm: Annotated[Optional[str], "Filter projects by name (partial match)"] = None,
) -> str:
    """List Black Duck projects.

    Endpoint:
      GET /api/projects?limit=&offset=&q=name:<searchTerm>

    Returns:
      JSON with "totalCount", "returned" and "projects" (id, name, description, createdAt, projectTier).
    """
    return await _run(projects.list_projects, limit=limit, offset=offset, search_term=searchTerm)


@mcp.tool(
    name="find_project_by_name",
    description="Find Black Duck projects by name. Supports partial matching. Useful when you know the project name but need the project ID."
)
async def find_project_by_name(
    projectName: Annotated[str, "Project name to search for (partial match supported)"],
) -> str:
    return await _run(projects.find_project_by_name, projectName)


@mcp.tool(
    name="get_project_details",
    description="Get detailed information about a specific Black Duck project, including all its versions. Requires the project ID (use find_project_by_name first if you only know the name)."
)
async def get_project_details(projectId: ProjectId) -> str:
    return await _run(projects.get_project_details, projectId)


@mcp.tool(
    name="list_project_versions",
    description="List all versions of a specific Black Duck project. Returns version IDs, names, phases, and distribution information."
)
async def list_project_versions(projectId: ProjectId, limit: Limit = 100, offset: Offset = 0) -> str:
    return await _run(projects.list_project_versions, projectId, limit=limit, offset=offset)


# -------------------- Vulnerabilities --------------------
@mcp.tool(
    name="get_project_vulnerabilities",
    description="Get all vulnerable components and their vulnerabilities for a specific project version. Returns severity, CVSS scores, remediation status, and component information. Supports filtering by severity and searching by name."
)
async def get_project_vulnerabilities(
    projectId: ProjectId,
    projectVersionId: ProjectVersionId,
    limit: Limit = 100,
    offset: Offset = 0,
    severity: Annotated[Optional[Severity], "Filter by vulnerability severity"] = None,
    searchTerm: Annotated[Optional[str], "Search by component or vulnerability name"] = None,
) -> str:
    """Vulnerable BOM components of a project version.

    Endpoint:
      GET /api/projects/{projectId}/versions/{projectVersionId}/vulnerable-bom-components

    Filter:
      vulnerabilityWithRemediation.severity:<severity> AND componentOrVulnerabilityName:<searchTerm>

    Returns:
      JSON with "totalCount", "returned", "severityCounts" and "vulnerabilities".
      The "_meta" links of each item carry the component / version / origin ids
      needed by get_vulnerability_details and get_vulnerability_fix_guidance.
    """
    return await _run(
        vulnerabilities.get_project_vulnerabilities,
        projectId,
        projectVersionId,
        limit=limit,
        offset=offset,
        severity=severity,
        search_term=searchTerm,
    )


@mcp.tool(
    name="get_project_vulnerabilities_by_name",
    description="Retrieve vulnerabilities for a project identified by name. The name must match exactly one project that has exactly one version."
)
async def get_project_vulnerabilities_by_name(
    projectName: Annotated[str, "Name of the project to retrieve vulnerabilities for"],
    severity: Annotated[Optional[Literal["CRITICAL", "HIGH", "MEDIUM", "LOW"]], "Filter vulnerabilities by severity"] = None,
) -> str:
    return await _run(vulnerabilities.get_project_vulnerabilities_by_name, projectName, severity=severity)


@mcp.tool(
    name="get_vulnerability_details",
    description="Get detailed information about a specific vulnerability in a component. Returns full CVSS scores (v2/v3), remediation information, technical description, and solution details."
)
async def get_vulnerability_details(
    projectId: ProjectId,
    projectVersionId: ProjectVersionId,
    componentId: ComponentId,
    componentVersionId: ComponentVersionId,
    vulnerabilityId: VulnerabilityId,
) -> str:
    return await _run(
        vulnerabilities.get_vulnerability_details,
        projectId,
        projectVersionId,
        componentId,
        componentVersionId,
        vulnerabilityId,
    )


# -------------------- Remediation --------------------
@mcp.tool(
    name="update_vulnerability_remediation",
    description="Update the remediation status and add comments for a specific vulnerability. Valid statuses: NEW, REMEDIATION_REQUIRED, DUPLICATE, IGNORED."
)
async def update_vulnerability_remediation(
    projectId: ProjectId,
    projectVersionId: ProjectVersionId,
    componentId: ComponentId,
    componentVersionId: ComponentVersionId,
    vulnerabilityId: VulnerabilityId,
    remediationStatus: Annotated[str, "New remediation status: NEW, REMEDIATION_REQUIRED, DUPLICATE or IGNORED"],
    comment: Annotated[Optional[str], "Optional comment explaining the remediation decision"] = None,
) -> str:
    return await _run(
        remediation.update_vulnerability_remediation,
        projectId,
        projectVersionId,
        componentId,
        componentVersionId,
        vulnerabilityId,
        remediationStatus,
        comment=comment,
    )


@mcp.tool(
    name="get_vulnerability_fix_guidance",
    description="Is this vulnerability fixable, and how? Determines whether the vulnerable component is a DIRECT or TRANSITIVE dependency, fetches short-term and long-term upgrade guidance, and returns ranked recommendations with concrete remediation steps."
)
async def get_vulnerability_fix_guidance(
    projectId: ProjectId,
    projectVersionId: ProjectVersionId,
    componentId: ComponentId,
    componentVersionId: ComponentVersionId,
    vulnerabilityId: VulnerabilityId,
    originId: Annotated[str, "UUID of the component origin (from the vulnerable component's _meta links)"],
) -> str:
    """Fix guidance for one vulnerability on one component occurrence.

    Steps:
      1. Remediation detail for context (failure is tolerated).
      2. Dependency paths for the origin, to classify DIRECT vs TRANSITIVE and to
         find the component/version/origin ids the guidance endpoints expect
         (failure falls back to DIRECT with the ids given here).
      3. Upgrade guidance:
           DIRECT:     GET /api/components/{c}/versions/{v}/upgrade-guidance
           TRANSITIVE: GET /api/components/{c}/versions/{v}/origins/{o}/transitive-upgrade-guidance
         Failure here is returned as an error.

    Returns:
      JSON with "vulnerability", "component", "fixGuidance" (shortTerm / longTerm),
      "actionSteps" and "recommendation"; or a one-line "<ErrorKind>: <message>".
    """
    coordinate = VulnerabilityCoordinate(
        projectId=projectId,
        projectVersionId=projectVersionId,
        componentId=componentId,
        componentVersionId=componentVersionId,
        vulnerabilityId=vulnerabilityId,
        originId=originId,
    )
    problem = fix_guidance.validate_coordinate(coordinate)
    if problem:
        return problem
    return await _run(fix_guidance.get_vulnerability_fix_guidance, coordinate)


# -------------------- Resources --------------------
@mcp.resource("health://ready")
def health_ready() -> str:
    return "ok"


@mcp.resource(
    uri="res://blackduck/remediation_workflow",
    description="How to chain the Black Duck tools from a project name to fix guidance",
)
def remediation_workflow_resource() -> str:
    return """
    Black Duck remediation workflow

    1. Find the project: find_project_by_name (or list_projects) -> projectId.
    2. Pick the version: get_project_details or list_project_versions -> projectVersionId.
    3. List findings: get_project_vulnerabilities, optionally with severity=CRITICAL/HIGH.
       Each item's _meta.links hold hrefs of the form
         /api/projects/{p}/versions/{v}/components/{c}/versions/{cv}/origins/{o}/...
       which give componentId, componentVersionId and originId.
    4. Understand one finding: get_vulnerability_details.
    5. Decide how to fix it: get_vulnerability_fix_guidance.
       - DIRECT dependency: upgrade the component itself to the recommended version.
       - TRANSITIVE dependency: upgrade the direct dependency that pulls it in.
       - No short-term or long-term fix: patch, mitigate, replace, or accept the risk.
    6. Record the decision: update_vulnerability_remediation
       (NEW, REMEDIATION_REQUIRED, DUPLICATE, IGNORED) with a comment.
"""


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> PlainTextResponse:
    return PlainTextResponse("OK")

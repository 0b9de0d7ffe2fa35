import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from blackduck_mcp.blackduck_client import BlackDuckClient
from blackduck_mcp.errors import NotFoundError, RateLimitError, ValidationError
from blackduck_mcp.models import (
    Page,
    Project,
    ProjectVersion,
    VulnerabilityRemediation,
    VulnerableComponent,
)
from blackduck_mcp.tools import projects, remediation, vulnerabilities

API = "https://bd.example.com/api"


def make_client():
    client = AsyncMock()
    client.extract_id_from_href = BlackDuckClient.extract_id_from_href
    return client


def project(name, pid):
    return Project.model_validate({"name": name, "_meta": {"href": f"{API}/projects/{pid}"}})


def version(name, pid, vid):
    return ProjectVersion.model_validate({
        "versionName": name, "phase": "DEVELOPMENT",
        "_meta": {"href": f"{API}/projects/{pid}/versions/{vid}"},
    })


def vulnerable(component, name, severity):
    return VulnerableComponent.model_validate({
        "componentName": component,
        "componentVersionName": "1.0",
        "vulnerabilityWithRemediation": {"vulnerabilityName": name, "severity": severity,
                                         "description": "d" * 300},
        "_meta": {"href": f"{API}/projects/P/versions/V/vulnerable-bom-components/{name}"},
    })


def run(coro):
    return asyncio.run(coro)


# ---- projects ----
def test_list_projects_passes_name_query():
    client = make_client()
    client.list_projects.return_value = Page[Project](totalCount=1, items=[project("demo", "p-1")])

    result = json.loads(run(projects.list_projects(client, limit=10, search_term="dem")))

    client.list_projects.assert_awaited_once_with(limit=10, offset=0, q="name:dem")
    assert result["projects"][0]["id"] == "p-1"
    assert result["projects"][0]["description"] == "No description"
    assert result["returned"] == 1


def test_list_projects_empty():
    client = make_client()
    client.list_projects.return_value = Page[Project]()
    assert run(projects.list_projects(client, search_term="zzz")) == 'No projects found matching "zzz".'
    assert run(projects.list_projects(client)) == "No projects found in Black Duck."


def test_find_project_requires_name():
    client = make_client()
    assert run(projects.find_project_by_name(client, " ")) == "Error: projectName is required"
    client.find_project_by_name.assert_not_called()


def test_project_details_include_versions():
    client = make_client()
    client.get_project.return_value = project("demo", "p-1")
    client.list_project_versions.return_value = Page[ProjectVersion](
        totalCount=1, items=[version("1.0", "p-1", "v-1")],
    )
    result = json.loads(run(projects.get_project_details(client, "p-1")))
    assert result["versions"]["items"][0]["id"] == "v-1"
    assert result["versions"]["items"][0]["phase"] == "DEVELOPMENT"


def test_client_errors_become_text():
    client = make_client()
    client.get_project.side_effect = NotFoundError.for_resource("Project", "p-9")
    assert run(projects.get_project_details(client, "p-9")) == "NotFoundError: Project with ID 'p-9' not found"


def test_resolve_project_id_errors():
    client = make_client()
    client.find_project_by_name.return_value = []
    with pytest.raises(NotFoundError):
        run(projects.resolve_project_id(client, "demo"))

    client.find_project_by_name.return_value = [project("demo", "p-1"), project("demo-2", "p-2")]
    with pytest.raises(ValidationError, match="Multiple projects"):
        run(projects.resolve_project_id(client, "demo"))


# ---- vulnerabilities ----
@pytest.mark.parametrize("severity,search,expected", [
    (None, None, None),
    ("HIGH", None, "vulnerabilityWithRemediation.severity:HIGH"),
    (None, "log4j", "componentOrVulnerabilityName:log4j"),
    ("CRITICAL", "log4j", "vulnerabilityWithRemediation.severity:CRITICAL AND componentOrVulnerabilityName:log4j"),
])
def test_build_filter(severity, search, expected):
    assert vulnerabilities.build_filter(severity, search) == expected


def test_project_vulnerabilities_counts_severities():
    client = make_client()
    client.get_vulnerable_components.return_value = Page[VulnerableComponent](totalCount=3, items=[
        vulnerable("log4j-core", "CVE-1", "CRITICAL"),
        vulnerable("jackson", "CVE-2", "HIGH"),
        vulnerable("jackson", "CVE-3", None),
    ])

    result = json.loads(run(vulnerabilities.get_project_vulnerabilities(client, "P", "V", severity="HIGH")))

    assert client.get_vulnerable_components.await_args.kwargs["filter"] == "vulnerabilityWithRemediation.severity:HIGH"
    assert result["severityCounts"] == {"CRITICAL": 1, "HIGH": 1, "UNSPECIFIED": 1}
    first = result["vulnerabilities"][0]
    assert first["vulnerability"]["description"] == "d" * 200 + "..."
    assert first["_meta"]["href"].endswith("/CVE-1")


def test_project_vulnerabilities_empty_with_severity():
    client = make_client()
    client.get_vulnerable_components.return_value = Page[VulnerableComponent]()
    out = run(vulnerabilities.get_project_vulnerabilities(client, "P", "V", severity="LOW"))
    assert out == "No LOW severity vulnerabilities found."


def test_vulnerabilities_by_name_resolves_ids():
    client = make_client()
    client.find_project_by_name.return_value = [project("demo", "p-1")]
    client.list_project_versions.return_value = Page[ProjectVersion](
        totalCount=1, items=[version("1.0", "p-1", "v-1")],
    )
    client.get_vulnerable_components.return_value = Page[VulnerableComponent]()

    run(vulnerabilities.get_project_vulnerabilities_by_name(client, "demo"))

    assert client.get_vulnerable_components.await_args.args == ("p-1", "v-1")


def test_vulnerabilities_by_name_with_several_versions():
    client = make_client()
    client.find_project_by_name.return_value = [project("demo", "p-1")]
    client.list_project_versions.return_value = Page[ProjectVersion](totalCount=2, items=[
        version("1.0", "p-1", "v-1"), version("2.0", "p-1", "v-2"),
    ])
    out = run(vulnerabilities.get_project_vulnerabilities_by_name(client, "demo"))
    assert out.startswith('ValidationError: Multiple versions found for project "demo"')
    client.get_vulnerable_components.assert_not_called()


def test_vulnerability_details():
    client = make_client()
    client.get_vulnerability_remediation.return_value = VulnerabilityRemediation(
        vulnerabilityName="CVE-1", severity="HIGH", cvss3={"baseScore": 8.1, "vector": "AV:N"},
        remediationStatus="NEW", comment="triage",
    )
    result = json.loads(run(vulnerabilities.get_vulnerability_details(client, "P", "V", "C", "CV", "CVE-1")))
    assert result["cvss3"] == {"baseScore": 8.1, "vector": "AV:N"}
    assert result["cvss2"] is None
    assert result["remediation"]["status"] == "NEW"
    assert result["remediation"]["comment"] == "triage"


# ---- remediation ----
def test_invalid_remediation_status_is_rejected_before_calling():
    client = make_client()
    out = run(remediation.update_vulnerability_remediation(client, "P", "V", "C", "CV", "CVE-1", "PATCHED"))
    assert out.startswith("ValidationError: Invalid remediation status: PATCHED.")
    client.update_vulnerability_remediation.assert_not_called()


def test_update_remediation():
    client = make_client()
    client.update_vulnerability_remediation.return_value = VulnerabilityRemediation(
        vulnerabilityName="CVE-1", remediationUpdatedBy="alice",
    )
    result = json.loads(run(remediation.update_vulnerability_remediation(
        client, "P", "V", "C", "CV", "CVE-1", "IGNORED", comment="not reachable",
    )))
    update = client.update_vulnerability_remediation.await_args.args[-1]
    assert (update.remediationStatus, update.comment) == ("IGNORED", "not reachable")
    assert result["success"] is True
    assert result["newStatus"] == "IGNORED"
    assert result["updatedBy"] == "alice"


def test_update_remediation_surfaces_rate_limit():
    client = make_client()
    client.update_vulnerability_remediation.side_effect = RateLimitError()
    out = run(remediation.update_vulnerability_remediation(client, "P", "V", "C", "CV", "CVE-1", "NEW"))
    assert out == "RateLimitError: Rate limit exceeded. Please try again later."

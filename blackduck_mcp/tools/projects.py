from __future__ import annotations

from typing import Any, Dict

from ..errors import NotFoundError, ValidationError, format_error
from ..models import Project, ProjectVersion
from .common import dump, require_fields


def resource_id(client, resource: Project | ProjectVersion) -> str | None:
    if resource.meta is None or not resource.meta.href:
        return None
    return client.extract_id_from_href(resource.meta.href)


def _version_summary(client, version: ProjectVersion) -> Dict[str, Any]:
    return {
        "id": resource_id(client, version),
        "versionName": version.versionName,
        "phase": version.phase,
        "distribution": version.distribution,
        "createdAt": version.createdAt,
    }


async def list_projects(client, limit: int = 100, offset: int = 0, search_term: str | None = None) -> str:
    try:
        q = f"name:{search_term}" if search_term else None
        page = await client.list_projects(limit=limit, offset=offset, q=q)
        if not page.items:
            if search_term:
                return f'No projects found matching "{search_term}".'
            return "No projects found in Black Duck."

        projects = [
            {
                "id": resource_id(client, p),
                "name": p.name,
                "description": p.description or "No description",
                "createdAt": p.createdAt,
                "projectTier": p.projectTier,
            }
            for p in page.items
        ]
        return dump({"totalCount": page.totalCount, "returned": len(projects), "projects": projects})
    except Exception as e:
        return format_error(e)


async def find_project_by_name(client, project_name: str) -> str:
    problem = require_fields(projectName=project_name)
    if problem:
        return problem
    try:
        matches = await client.find_project_by_name(project_name)
        if not matches:
            return f'No projects found matching name "{project_name}".'

        projects = [
            {
                "id": resource_id(client, p),
                "name": p.name,
                "description": p.description or "No description",
                "createdAt": p.createdAt,
                "updatedAt": p.updatedAt,
            }
            for p in matches
        ]
        return dump({"searchTerm": project_name, "matchCount": len(projects), "projects": projects})
    except Exception as e:
        return format_error(e)


async def get_project_details(client, project_id: str) -> str:
    problem = require_fields(projectId=project_id)
    if problem:
        return problem
    try:
        project = await client.get_project(project_id)
        versions = await client.list_project_versions(project_id, limit=100)
        return dump({
            "id": project_id,
            "name": project.name,
            "description": project.description or "No description",
            "projectTier": project.projectTier,
            "createdAt": project.createdAt,
            "updatedAt": project.updatedAt,
            "versions": {
                "totalCount": versions.totalCount,
                "items": [_version_summary(client, v) for v in versions.items],
            },
        })
    except Exception as e:
        return format_error(e)


async def list_project_versions(client, project_id: str, limit: int = 100, offset: int = 0) -> str:
    problem = require_fields(projectId=project_id)
    if problem:
        return problem
    try:
        page = await client.list_project_versions(project_id, limit=limit, offset=offset)
        if not page.items:
            return f"No versions found for project {project_id}."

        versions = []
        for v in page.items:
            summary = _version_summary(client, v)
            summary["nickname"] = v.nickname
            summary["settingUpdatedAt"] = v.settingUpdatedAt
            versions.append(summary)
        return dump({
            "projectId": project_id,
            "totalCount": page.totalCount,
            "returned": len(versions),
            "versions": versions,
        })
    except Exception as e:
        return format_error(e)


# ---- name -> id resolution ----
async def resolve_project_id(client, name: str) -> str:
    projects = await client.find_project_by_name(name)
    if not projects:
        raise NotFoundError(f'No project found with name "{name}".')
    if len(projects) > 1:
        raise ValidationError(
            f'Multiple projects found with name "{name}". Please specify a unique project name.'
        )
    project_id = resource_id(client, projects[0])
    if not project_id:
        raise NotFoundError(f'Project "{name}" has no resource link.')
    return project_id


async def resolve_project_version_id(client, project_id: str, project_name: str) -> str:
    page = await client.list_project_versions(project_id)
    if page.totalCount == 0 or not page.items:
        raise NotFoundError(f'No versions found for project "{project_name}".')
    if page.totalCount > 1:
        raise ValidationError(
            f'Multiple versions found for project "{project_name}". Please specify a unique project version.'
        )
    version_id = resource_id(client, page.items[0])
    if not version_id:
        raise NotFoundError(f'Version of project "{project_name}" has no resource link.')
    return version_id

from __future__ import annotations

import asyncio
from typing import Any, Dict, TypeVar

import httpx
import pydantic
import structlog

from .auth import BearerTokenCache, authenticate
from .errors import BlackDuckError, NetworkError, ResponseFormatError, ValidationError, error_from_status
from .models import (
    DependencyPathItem,
    ErrorResponse,
    Page,
    Project,
    ProjectVersion,
    RemediationUpdate,
    UpgradeGuidance,
    VulnerabilityRemediation,
    VulnerableComponent,
)
from .settings import settings

logger = structlog.get_logger("blackduck_mcp.client")

M = TypeVar("M", bound=pydantic.BaseModel)

DEFAULT_HEADERS = {"User-Agent": "blackduck-mcp/1.0", "Content-Type": "application/json"}

PROJECT_DETAIL = "application/vnd.blackducksoftware.project-detail-5+json"
BOM_DETAIL = "application/vnd.blackducksoftware.bill-of-materials-6+json"
VULNERABILITY_DETAIL = "application/vnd.blackducksoftware.vulnerability-4+json"
COMPONENT_DETAIL = "application/vnd.blackducksoftware.component-detail-5+json"


class BlackDuckClient:
    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        token_cache: BearerTokenCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.black_duck_url).rstrip("/")
        self.api_token = api_token or settings.black_duck_api_token
        self.timeout = timeout if timeout is not None else settings.timeout_seconds
        self.token_cache = token_cache or BearerTokenCache()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._auth_lock = asyncio.Lock()

    async def start(self) -> None:
        if not self.base_url:
            raise ValidationError(
                "BLACK_DUCK_URL is required. Please set it in your .env file or environment variables."
            )
        if not self.api_token:
            raise ValidationError(
                "BLACK_DUCK_API_TOKEN is required. Please set it in your .env file or environment variables."
            )
        self._client = httpx.AsyncClient(base_url=self.base_url,
                                         headers=DEFAULT_HEADERS.copy(),
                                         timeout=self.timeout,
                                         transport=self._transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> BlackDuckClient:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            raise BlackDuckError("Black Duck client is not started; call start() first")
        return self._client

    async def _bearer(self) -> str:
        async with self._auth_lock:
            return await authenticate(self._http(), self.api_token, self.token_cache)

    async def _send(self, method: str, path: str, accept: str, params: Dict[str, Any] | None = None,
                    json: Any = None) -> httpx.Response:
        http = self._http()
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        if settings.debug:
            logger.debug("Black Duck request", method=method, path=path)

        async def attempt() -> httpx.Response:
            headers = {"Accept": accept, "Authorization": f"Bearer {await self._bearer()}"}
            return await http.request(method, path, params=params, json=json, headers=headers)

        try:
            r = await attempt()
            if r.status_code == 401:
                # Bearer token revoked or expired early; re-authenticate once.
                self.token_cache.invalidate()
                r = await attempt()
            return r
        except httpx.ConnectError as e:
            raise NetworkError(
                f"Cannot connect to Black Duck server at {self.base_url}. "
                "Please check the URL and network connection."
            ) from e
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request to Black Duck server timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error: {e}") from e

    async def _request(self, method: str, path: str, accept: str, params: Dict[str, Any] | None = None,
                       json: Any = None) -> Any:
        r = await self._send(method, path, accept, params=params, json=json)
        if r.status_code >= 400:
            self._raise_for_error(r)
        if not r.content:
            return None
        return r.json()

    @staticmethod
    def _raise_for_error(r: httpx.Response) -> None:
        body = ErrorResponse()
        try:
            data = r.json()
            if isinstance(data, dict):
                body = ErrorResponse.model_validate(data)
        except (ValueError, pydantic.ValidationError):
            pass
        message = body.errorMessage or body.message or r.text or "Unknown error"
        raise error_from_status(r.status_code, message, body.errorCode)

    @staticmethod
    def _parse(model: type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(p) for p in first["loc"]) or "<root>"
            logger.warning("Unexpected Black Duck response", model=e.title, errors=e.error_count())
            raise ResponseFormatError(e.title, e.error_count(), location, first["msg"]) from e

    async def _get(self, path: str, accept: str, params: Dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, accept, params=params)

    async def _put(self, path: str, body: Dict[str, Any], accept: str) -> Any:
        return await self._request("PUT", path, accept, json=body)

    # ---- projects ----
    async def list_projects(self, limit: int | None = None, offset: int | None = None,
                            q: str | None = None) -> Page[Project]:
        data = await self._get("/api/projects", PROJECT_DETAIL,
                               params={"limit": limit, "offset": offset, "q": q})
        return self._parse(Page[Project], data)

    async def find_project_by_name(self, name: str) -> list[Project]:
        page = await self.list_projects(limit=100, q=f"name:{name}")
        return page.items

    async def get_project(self, project_id: str) -> Project:
        data = await self._get(f"/api/projects/{project_id}", PROJECT_DETAIL)
        return self._parse(Project, data)

    async def list_project_versions(self, project_id: str, limit: int | None = None,
                                    offset: int | None = None) -> Page[ProjectVersion]:
        data = await self._get(f"/api/projects/{project_id}/versions", PROJECT_DETAIL,
                               params={"limit": limit, "offset": offset})
        return self._parse(Page[ProjectVersion], data)

    # ---- vulnerabilities ----
    async def get_vulnerable_components(self, project_id: str, version_id: str, limit: int | None = None,
                                        offset: int | None = None,
                                        filter: str | None = None) -> Page[VulnerableComponent]:
        path = f"/api/projects/{project_id}/versions/{version_id}/vulnerable-bom-components"
        data = await self._get(path, BOM_DETAIL, params={"limit": limit, "offset": offset, "filter": filter})
        return self._parse(Page[VulnerableComponent], data)

    @staticmethod
    def _remediation_path(project_id: str, version_id: str, component_id: str,
                          component_version_id: str, vulnerability_id: str) -> str:
        return (f"/api/projects/{project_id}/versions/{version_id}/components/{component_id}"
                f"/versions/{component_version_id}/vulnerabilities/{vulnerability_id}/remediation")

    async def get_vulnerability_remediation(self, project_id: str, version_id: str, component_id: str,
                                            component_version_id: str,
                                            vulnerability_id: str) -> VulnerabilityRemediation:
        path = self._remediation_path(project_id, version_id, component_id, component_version_id,
                                      vulnerability_id)
        return self._parse(VulnerabilityRemediation, await self._get(path, VULNERABILITY_DETAIL))

    async def update_vulnerability_remediation(self, project_id: str, version_id: str, component_id: str,
                                               component_version_id: str, vulnerability_id: str,
                                               update: RemediationUpdate) -> VulnerabilityRemediation:
        path = self._remediation_path(project_id, version_id, component_id, component_version_id,
                                      vulnerability_id)
        data = await self._put(path, update.model_dump(exclude_none=True), VULNERABILITY_DETAIL)
        return self._parse(VulnerabilityRemediation, data or {"vulnerabilityName": vulnerability_id})

    # ---- dependency graph / upgrade guidance ----
    async def get_dependency_paths(self, project_id: str, version_id: str,
                                   origin_id: str) -> list[DependencyPathItem]:
        path = f"/api/project/{project_id}/version/{version_id}/origin/{origin_id}/dependency-paths"
        data = await self._get(path, BOM_DETAIL)
        return self._parse(Page[DependencyPathItem], data or {}).items

    async def get_upgrade_guidance(self, component_id: str, component_version_id: str) -> UpgradeGuidance:
        path = f"/api/components/{component_id}/versions/{component_version_id}/upgrade-guidance"
        return self._parse(UpgradeGuidance, await self._get(path, COMPONENT_DETAIL))

    async def get_transitive_upgrade_guidance(self, component_id: str, component_version_id: str,
                                              origin_id: str) -> UpgradeGuidance:
        path = (f"/api/components/{component_id}/versions/{component_version_id}"
                f"/origins/{origin_id}/transitive-upgrade-guidance")
        return self._parse(UpgradeGuidance, await self._get(path, COMPONENT_DETAIL))

    @staticmethod
    def extract_id_from_href(href: str) -> str:
        return href.rstrip("/").split("/")[-1]

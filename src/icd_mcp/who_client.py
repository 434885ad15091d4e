"""
WHO ICD-API client: OAuth2 token handling and ICD-10 / ICD-11 lookups.

API documentation: https://icd.who.int/docs/icd-api/APIDoc-Version2/
"""

import logging
import time
from typing import Any, Optional

import httpx

from .config import WHOSettings
from .errors import ApiError, AuthenticationError, RateLimitError
from .models import ICDChapter, ICDEntity, ICDSearchResult
from .normalize import parse_entity

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "https://icdaccessmanagement.who.int/connect/token"
API_BASE_URL = "https://id.who.int"
TOKEN_SCOPE = "icdapi_access"
API_VERSION = "v2"

# Tokens are treated as expired this many seconds early
TOKEN_EXPIRY_MARGIN = 300
MAX_CHILDREN = 20


class WHOICDClient:
    """Authenticated client for id.who.int.

    Owns the bearer token for its lifetime: empty until the first request,
    refreshed when expired or after a 401.
    """

    def __init__(self, settings: WHOSettings, http_client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._http = http_client or httpx.AsyncClient(timeout=30.0)
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0

    async def __aenter__(self) -> "WHOICDClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Token management
    # ------------------------------------------------------------------

    async def _authenticate(self) -> None:
        """Exchange client credentials for a bearer token."""
        response = await self._http.post(
            TOKEN_ENDPOINT,
            data={
                "grant_type": "client_credentials",
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
                "scope": TOKEN_SCOPE,
            },
        )
        if not response.is_success:
            raise AuthenticationError(response.status_code, response.text)

        data = response.json()
        expires_in = data.get("expires_in", 3600)
        self._access_token = data["access_token"]
        self._token_expiry = time.time() + (expires_in - TOKEN_EXPIRY_MARGIN)
        logger.info("Obtained ICD-API access token (expires in %ss)", expires_in)

    async def ensure_token(self) -> str:
        if not self._access_token or time.time() >= self._token_expiry:
            await self._authenticate()
        return self._access_token

    def invalidate_token(self) -> None:
        self._access_token = None
        self._token_expiry = 0

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def _get(self, endpoint: str, params: dict | None) -> httpx.Response:
        token = await self.ensure_token()
        return await self._http.get(
            f"{API_BASE_URL}{endpoint}",
            params=params,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Accept-Language": self.settings.language,
                "API-Version": API_VERSION,
            },
        )

    async def api_request(self, endpoint: str, params: dict | None = None) -> Any:
        """GET an ICD-API endpoint (path relative to id.who.int) and return its JSON."""
        response = await self._get(endpoint, params)

        if response.status_code == 401:
            logger.info("ICD-API returned 401 for %s, refreshing token", endpoint)
            self.invalidate_token()
            response = await self._get(endpoint, params)
            if response.status_code == 401:
                raise AuthenticationError(401, response.text)

        if response.status_code == 429:
            raise RateLimitError(response.text)

        if not response.is_success:
            raise ApiError(response.status_code, response.text)

        return response.json()

    async def get_entity_by_uri(self, uri: str) -> Optional[ICDEntity]:
        """Fetch an entity by its full id.who.int URI. Returns None on failure."""
        clean_uri = uri
        if clean_uri.startswith("http://"):
            clean_uri = "https://" + clean_uri[len("http://"):]
        endpoint = clean_uri.replace(API_BASE_URL, "", 1)

        try:
            data = await self.api_request(endpoint)
            return parse_entity(data)
        except Exception as e:
            logger.warning("Failed to get entity by URI %s: %s", uri, e)
            return None

    async def _collect_entities(self, uris: list[str]) -> list[ICDEntity]:
        """Resolve URIs one after another, dropping any that fail."""
        entities = []
        for uri in uris:
            entity = await self.get_entity_by_uri(uri)
            if entity:
                entities.append(entity)
        return entities

    # ------------------------------------------------------------------
    # ICD-10
    # ------------------------------------------------------------------

    async def get_icd10_code(self, code: str) -> Optional[ICDEntity]:
        try:
            data = await self.api_request(f"/icd/release/10/{self.settings.icd10_release}/{code}")
            return parse_entity(data)
        except Exception as e:
            logger.warning("Failed to get ICD-10 code %s: %s", code, e)
            return None

    # ------------------------------------------------------------------
    # ICD-11
    # ------------------------------------------------------------------

    async def get_icd11_code(self, code: str) -> Optional[ICDEntity]:
        """Resolve an MMS code through codeinfo, then fetch its stem entity."""
        try:
            codeinfo = await self.api_request(
                f"/icd/release/11/{self.settings.icd11_release}/mms/codeinfo/{code}"
            )
        except Exception as e:
            logger.warning("Failed to get ICD-11 code %s: %s", code, e)
            return None

        stem_id = codeinfo.get("stemId") if isinstance(codeinfo, dict) else None
        if not stem_id:
            return None
        return await self.get_entity_by_uri(stem_id)

    async def search_icd11(
        self, query: str, max_results: int = 10, chapter_filter: str | None = None
    ) -> list[ICDSearchResult]:
        params = {
            "q": query,
            "useFlexisearch": "true",
            "flatResults": "true",
            "highlightingEnabled": "false",
        }
        if chapter_filter:
            params["chapterFilter"] = chapter_filter

        data = await self.api_request(f"/icd/release/11/{self.settings.icd11_release}/mms/search", params)

        results = []
        for item in (data.get("destinationEntities") or [])[:max_results]:
            results.append(
                ICDSearchResult(
                    code=item.get("theCode") or "",
                    title=item.get("title") or "",
                    score=item.get("score"),
                    uri=item.get("id") or "",
                    chapter=item.get("chapter"),
                )
            )
        return results

    # ------------------------------------------------------------------
    # Version-agnostic helpers
    # ------------------------------------------------------------------

    def _release_root(self, version: str) -> str:
        if version == "10":
            return f"/icd/release/10/{self.settings.icd10_release}"
        return f"/icd/release/11/{self.settings.icd11_release}/mms"

    async def get_code(self, code: str, version: str = "11") -> Optional[ICDEntity]:
        if version == "10":
            return await self.get_icd10_code(code)
        return await self.get_icd11_code(code)

    async def get_chapters(self, version: str = "11") -> list[ICDChapter]:
        """List the top-level chapters of the configured release.

        Chapters that fail to resolve are left out of the result.
        """
        data = await self.api_request(self._release_root(version))

        chapters = []
        for uri in parse_entity(data).children or []:
            entity = await self.get_entity_by_uri(uri)
            if entity:
                chapters.append(ICDChapter(code=entity.code, title=entity.title, uri=uri))
        return chapters

    async def get_children(self, code: str, version: str = "11") -> list[ICDEntity]:
        """Resolve up to MAX_CHILDREN direct children of a code."""
        entity = await self.get_code(code, version)
        if not entity or not entity.children:
            return []
        return await self._collect_entities(entity.children[:MAX_CHILDREN])

"""
HelloAsso API v5 client.

Authenticated GETs retried with backoff, a one-shot token renewal on 401,
and continuation-token pagination over the form's items and orders.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from tournoi.core import metrics
from tournoi.core.errors import ApiError, ErrorKind, error_from_response, error_from_transport
from tournoi.core.logging import get_logger
from tournoi.core.retry import with_retry
from tournoi.models.helloasso import Order, PaginatedResponse, RawItem
from tournoi.services.helloasso.token_manager import TokenManager

logger = get_logger(__name__)

HELLOASSO_API_BASE = "https://api.helloasso.com/v5"

PAGE_SIZE = 100
MAX_PAGES = 50  # safety cap; the fetch stops here without raising


class HelloAssoClient:
    """
    Read-only access to one HelloAsso event form.

    Args:
        token_manager: Source of bearer tokens
        http_client: Shared httpx client
        organization_slug: Organization owning the form
        form_slug: Event form slug
        sleep: Backoff sleep passed to the retry wrapper (tests)
    """

    def __init__(
        self,
        token_manager: TokenManager,
        http_client: httpx.AsyncClient,
        organization_slug: str,
        form_slug: str,
        api_base: str = HELLOASSO_API_BASE,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.tokens = token_manager
        self.http = http_client
        self.organization_slug = organization_slug
        self.form_slug = form_slug
        self.api_base = api_base.rstrip("/")
        self.sleep = sleep

    def _form_endpoint(self, resource: str) -> str:
        if not self.organization_slug or not self.form_slug:
            raise ApiError.bad_request("HelloAsso organization or form slug not configured")
        return f"/organizations/{self.organization_slug}/forms/Event/{self.form_slug}/{resource}"

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]], token: str) -> Dict[str, Any]:
        try:
            response = await self.http.get(
                f"{self.api_base}{endpoint}",
                params=params,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            )
        except httpx.RequestError as e:
            metrics.record_upstream("helloasso", "transport_error")
            raise error_from_transport(e, "HelloAsso") from e

        if response.is_error:
            metrics.record_upstream("helloasso", str(response.status_code))
            raise error_from_response(response, "HelloAsso", "HELLOASSO_API_ERROR")

        metrics.record_upstream("helloasso", "ok")
        return response.json()

    async def request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Authenticated GET with retry.

        A 401 invalidates the token and the request is replayed exactly once
        with a freshly issued one; a second 401 is final.
        """
        token = await self.tokens.get_token()

        async def attempt() -> Dict[str, Any]:
            return await self._get(endpoint, params, token)

        try:
            return await with_retry(attempt, sleep=self.sleep)
        except ApiError as e:
            if e.kind is not ErrorKind.UNAUTHORIZED:
                raise

        logger.warning("HelloAsso rejected the access token, requesting a new one")
        token = await self.tokens.get_token(force_refresh=True)
        try:
            return await self._get(endpoint, params, token)
        except ApiError as e:
            if e.kind is ErrorKind.UNAUTHORIZED:
                raise ApiError.unauthorized(f"HelloAsso API unauthorized: {e.message}") from e
            raise

    async def fetch_all(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Walk a paginated listing to the end.

        The first page is requested with ``pageIndex=1``, later pages with
        the ``continuationToken`` of the previous response. Stops on an
        empty page, a missing token, or after ``MAX_PAGES`` pages (partial
        results are returned in that case).
        """
        records: List[Dict[str, Any]] = []
        continuation_token: Optional[str] = None

        for page in range(1, MAX_PAGES + 1):
            page_params: Dict[str, Any] = {"pageSize": PAGE_SIZE, **(params or {})}
            if continuation_token:
                page_params["continuationToken"] = continuation_token
            else:
                page_params["pageIndex"] = 1

            payload = await self.request(endpoint, page_params)
            response = PaginatedResponse[Dict[str, Any]].model_validate(payload)
            records.extend(response.data)

            continuation_token = response.pagination.continuation_token
            if not continuation_token or not response.data:
                break
        else:
            logger.warning(f"Pagination stopped at the {MAX_PAGES}-page cap for {endpoint}")

        logger.debug(f"Fetched {len(records)} records from {endpoint} ({page} pages)")
        return records

    async def get_items(self) -> List[RawItem]:
        """All line items of the form, with their custom fields."""
        records = await self.fetch_all(self._form_endpoint("items"), {"withDetails": "true"})
        return _parse_records(records, RawItem)

    async def get_orders(self) -> List[Order]:
        """All orders of the form (custom fields are not included)."""
        records = await self.fetch_all(self._form_endpoint("orders"))
        return _parse_records(records, Order)


def _parse_records(records: List[Dict[str, Any]], model) -> list:
    parsed = []
    for record in records:
        try:
            parsed.append(model.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping malformed HelloAsso {model.__name__} {record.get('id')}: {e}")
    return parsed

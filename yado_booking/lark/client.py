"""
Client module for listing records from Lark Base tables
with support for retries, rate limiting, and token refresh.
"""

import time
from typing import Any, Dict, List, Optional, cast
from urllib.parse import urljoin

import requests
import structlog

from yado_booking.config import LARK_API_BASE_URL, LARK_BASE_ID
from yado_booking.lark.auth import TenantTokenProvider
from yado_booking.lark.errors import LarkAPIError
from yado_booking.metrics import lark_api_latency, lark_api_requests

logger = structlog.get_logger(__name__)

PAGE_SIZE = 100
MAX_PAGES = 50
MAX_RETRIES = 2
RETRY_DELAY = 1.0
REQUEST_TIMEOUT_SECONDS = 10

# Lark codes meaning the tenant token is missing, invalid or expired
INVALID_TOKEN_CODES = {99991661, 99991663, 99991668}


def should_retry(res: Optional[requests.Response], err: Optional[Exception]) -> bool:
    """
    Determine whether the request should be retried based on response or error.

    Args:
        res (Optional[requests.Response]): Response object if available.
        err (Optional[Exception]): Exception raised by the request, if any.

    Returns:
        bool: True if the request should be retried, False otherwise.
    """
    if res is not None and res.status_code == 429:
        return True
    if isinstance(err, (requests.Timeout, requests.ConnectionError)):
        return True
    if res is not None and 500 <= res.status_code < 600:
        return True
    return False


def _is_invalid_token(res: requests.Response) -> bool:
    if res.status_code == 401:
        return True
    try:
        body = res.json()
    except ValueError:
        return False
    return isinstance(body, dict) and body.get("code") in INVALID_TOKEN_CODES


def records_url(table_id: str, base_id: str = LARK_BASE_ID, base_url: str = LARK_API_BASE_URL) -> str:
    return urljoin(base_url, f"bitable/v1/apps/{base_id}/tables/{table_id}/records")


def fetch_page(
    table_id: str,
    token: str,
    page_token: Optional[str] = None,
    page_size: int = PAGE_SIZE,
    filter_formula: Optional[str] = None,
    provider: Optional[TenantTokenProvider] = None,
    base_id: str = LARK_BASE_ID,
) -> Dict[str, Any]:
    """
    Fetch a single page of records from a Lark Base table.

    Args:
        table_id (str): Lark table ID.
        token (str): Tenant access token.
        page_token (Optional[str]): Continuation token from the previous page.
        page_size (int): Max records per page. Defaults to 100.
        filter_formula (Optional[str]): Lark filter, e.g. 'CurrentValue.[status]="Confirmed"'.
        provider (Optional[TenantTokenProvider]): Used to refresh a rejected token.
        base_id (str): Lark Base (app token) ID.

    Returns:
        Dict[str, Any]: The ``data`` object of the response (items, has_more, page_token).

    Raises:
        requests.RequestException: If the request fails after all retries.
        LarkAPIError: If Lark answers with a non-zero code.
    """
    url = records_url(table_id, base_id=base_id)
    headers = {"Authorization": f"Bearer {token}"}
    params: Dict[str, Any] = {"page_size": page_size}
    if page_token:
        params["page_token"] = page_token
    if filter_formula:
        params["filter"] = filter_formula

    retries = 0

    while True:
        res: Optional[requests.Response] = None
        try:
            logger.debug("lark_page_requested", table_id=table_id, page_token=page_token)

            start_time = time.time()
            res = requests.get(url, headers=headers, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
            latency = time.time() - start_time

            lark_api_requests.labels(table=table_id, status_code=str(res.status_code)).inc()
            lark_api_latency.labels(table=table_id).observe(latency)

            if provider is not None and _is_invalid_token(res):
                logger.warning("lark_token_rejected", table_id=table_id)
                retries += 1
                if retries > MAX_RETRIES:
                    raise LarkAPIError("Lark rejected refreshed tenant token", code=res.status_code)
                token = provider.get_token(prev_token=token)
                headers["Authorization"] = f"Bearer {token}"
                continue

            if res.status_code == 429:
                logger.warning("lark_rate_limited", table_id=table_id, sleep=RETRY_DELAY * 2)
                time.sleep(RETRY_DELAY * 2)
                retries += 1
                if retries > MAX_RETRIES:
                    res.raise_for_status()
                continue

            res.raise_for_status()
            body = cast(Dict[str, Any], res.json())
            if body.get("code") != 0:
                raise LarkAPIError(f"Lark list records error: {body.get('msg')}", code=body.get("code"))
            return cast(Dict[str, Any], body.get("data") or {})

        except requests.RequestException as err:
            logger.warning("lark_request_failed", table_id=table_id, error=str(err))
            retries += 1
            if retries > MAX_RETRIES or not should_retry(res, err):
                raise
            time.sleep(RETRY_DELAY * retries)


def fetch_all_records(
    table_id: str,
    provider: TenantTokenProvider,
    filter_formula: Optional[str] = None,
    page_size: int = PAGE_SIZE,
    base_id: str = LARK_BASE_ID,
) -> List[Dict[str, Any]]:
    """
    Fetch every record of a Lark Base table, following page tokens.

    Lark pages are chained by continuation tokens, so pages are fetched in
    sequence.

    Args:
        table_id (str): Lark table ID.
        provider (TenantTokenProvider): Token source, also used for refresh.
        filter_formula (Optional[str]): Optional Lark filter formula.
        page_size (int): Max records per page. Defaults to 100.
        base_id (str): Lark Base (app token) ID.

    Returns:
        List[Dict[str, Any]]: Raw records (``record_id`` and ``fields``) across all pages.
    """
    token = provider.get_token()
    results: List[Dict[str, Any]] = []
    page_token: Optional[str] = None

    for _ in range(MAX_PAGES):
        data = fetch_page(
            table_id,
            token,
            page_token=page_token,
            page_size=page_size,
            filter_formula=filter_formula,
            provider=provider,
            base_id=base_id,
        )
        results.extend(data.get("items") or [])

        page_token = data.get("page_token")
        if not data.get("has_more") or not page_token:
            break
    else:
        logger.warning("lark_page_limit_reached", table_id=table_id, max_pages=MAX_PAGES)

    logger.info("lark_records_fetched", table_id=table_id, count=len(results))
    return results

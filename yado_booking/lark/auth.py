from __future__ import annotations

from urllib.parse import urljoin

import requests
import structlog

from yado_booking.cache import TokenCache
from yado_booking.config import LARK_API_BASE_URL, LARK_APP_ID, LARK_APP_SECRET
from yado_booking.lark.errors import LarkAPIError
from yado_booking.metrics import token_refreshes

logger = structlog.get_logger(__name__)
TOKEN_PATH = "auth/v3/tenant_access_token/internal"
TOKEN_TIMEOUT_SECONDS = 10


def create_tenant_access_token(
    app_id: str, app_secret: str, base_url: str = LARK_API_BASE_URL
) -> tuple[str, int]:
    """
    Exchange an app id and secret for a Lark tenant access token.

    Args:
        app_id (str): Lark app ID.
        app_secret (str): Lark app secret.
        base_url (str): Lark Open API base URL.

    Returns:
        tuple[str, int]: Bearer token and its lifetime in seconds.

    Raises:
        requests.RequestException: If the HTTP request fails.
        LarkAPIError: If Lark answers with a non-zero code or no token.
    """
    logger.info("tenant_token_requested", app_id=app_id)

    response = None
    try:
        response = requests.post(
            urljoin(base_url, TOKEN_PATH),
            json={"app_id": app_id, "app_secret": app_secret},
            timeout=TOKEN_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(
            "tenant_token_request_failed",
            error=str(e),
            status_code=getattr(response, "status_code", "N/A"),
            response_text=getattr(response, "text", "N/A"),
        )
        raise

    data = response.json()
    if data.get("code") != 0:
        logger.error("tenant_token_rejected", code=data.get("code"), msg=data.get("msg"))
        raise LarkAPIError(f"Lark token error: {data.get('msg')}", code=data.get("code"))

    token = data.get("tenant_access_token")
    if not isinstance(token, str) or not token:
        logger.error("tenant_token_missing", response_text=response.text)
        raise LarkAPIError("No tenant_access_token in Lark response.")

    return token, int(data.get("expire", 0))


class TenantTokenProvider:
    """
    Injectable source of Lark tenant access tokens.

    Tokens are cached until shortly before the lifetime Lark reports, and
    refreshed on demand when a caller reports that a token was rejected.

    Example:
        >>> provider = TenantTokenProvider("cli_a1b2", "secret")
        >>> token = provider.get_token()
        >>> # Lark rejected it: force a new one
        >>> token = provider.get_token(prev_token=token)
    """

    def __init__(
        self,
        app_id: str = LARK_APP_ID,
        app_secret: str = LARK_APP_SECRET,
        cache: TokenCache | None = None,
        base_url: str = LARK_API_BASE_URL,
    ):
        self.app_id = app_id
        self.app_secret = app_secret
        self.base_url = base_url
        self.cache = cache if cache is not None else TokenCache()

    @property
    def is_configured(self) -> bool:
        return bool(self.app_id and self.app_secret)

    def refresh(self) -> str:
        """
        Fetch and cache a new token, discarding any cached one.

        Raises:
            LarkAPIError: If app credentials are not configured or Lark refuses them.
        """
        self.cache.invalidate(self.app_id)

        if not self.is_configured:
            raise LarkAPIError("LARK_APP_ID and LARK_APP_SECRET must be set")

        token, expires_in = create_tenant_access_token(self.app_id, self.app_secret, self.base_url)
        self.cache.set(self.app_id, token, expires_in)
        token_refreshes.inc()

        logger.info("tenant_token_refreshed", app_id=self.app_id, expires_in=expires_in)
        return token

    def get_token(self, prev_token: str | None = None) -> str:
        """
        Return a valid token, refreshing when the cache is empty or expired.

        Args:
            prev_token: Token that was just rejected by Lark, if any. A cached
                token equal to it is never returned.

        Returns:
            str: Bearer token
        """
        cached = self.cache.get(self.app_id)
        if cached and cached != prev_token:
            logger.debug("tenant_token_cache_hit", app_id=self.app_id)
            return cached

        logger.debug("tenant_token_cache_miss", app_id=self.app_id, rejected=prev_token is not None)
        return self.refresh()

    def invalidate(self) -> None:
        self.cache.invalidate(self.app_id)

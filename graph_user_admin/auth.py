"""OAuth2 client-credentials token acquisition against Entra ID.

POSTs ``client_id`` + ``client_secret`` to the tenant's v2.0 token endpoint
with the Graph ``.default`` scope and returns the bearer token.  The token is
fetched once per process and never refreshed.
"""

import logging
from typing import Optional

import requests

from .config import DEFAULT_AUTHORITY_HOST
from .errors import AuthenticationError
from .http_client import transport_options

logger = logging.getLogger(__name__)

TOKEN_URL_TEMPLATE = "{authority}/{tenant}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"


def token_url(tenant_id: str, authority_host: str = DEFAULT_AUTHORITY_HOST) -> str:
    return TOKEN_URL_TEMPLATE.format(authority=authority_host.rstrip("/"), tenant=tenant_id)


def get_access_token(
    tenant_id: str,
    client_id: str,
    client_secret: str,
    authority_host: str = DEFAULT_AUTHORITY_HOST,
    scope: str = GRAPH_SCOPE,
    timeout: Optional[float] = None,
    tls_no_verify: bool = False,
    proxy: Optional[str] = None,
    ca_bundle: Optional[str] = None,
) -> str:
    """Exchange app credentials for a Graph access token.

    Raises:
        AuthenticationError: the endpoint could not be reached, returned a
            non-200 status, or returned a body without ``access_token``.  The
            message carries the status and raw body.
    """
    url = token_url(tenant_id, authority_host)
    logger.debug("POST %s client_id=%s scope=%s", url, client_id, scope)
    try:
        resp = requests.post(
            url,
            data={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": client_secret,
                "scope": scope,
            },
            timeout=timeout,
            **transport_options(tls_no_verify, proxy, ca_bundle),
        )
    except requests.RequestException as e:
        raise AuthenticationError(f"token request failed: {e}") from e

    if resp.status_code != 200:
        raise AuthenticationError(f"token request failed (status {resp.status_code}): {resp.text}")

    try:
        token_data = resp.json()
    except ValueError as e:
        raise AuthenticationError(
            f"failed to parse token response (status {resp.status_code}): {resp.text}"
        ) from e

    token = token_data.get("access_token") if isinstance(token_data, dict) else None
    if not token:
        raise AuthenticationError(
            f"token response did not contain an access_token (status {resp.status_code}): {resp.text}"
        )

    logger.debug("token acquired (%d characters)", len(token))
    return token

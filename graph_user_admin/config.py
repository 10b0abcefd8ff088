"""Loads the app-registration credentials from a JSON config file.

Expected format (see ``config.json.example``)::

    {
      "tenantId": "00000000-0000-0000-0000-000000000000",
      "clientId": "00000000-0000-0000-0000-000000000000",
      "clientSecret": "..."
    }

Optional keys:

- ``authorityHost``  login endpoint base (national clouds, test servers)
- ``graphEndpoint``  Graph API base including the version segment
- ``timeout``        per-request timeout in seconds (default: none)
- ``proxy``          HTTP/HTTPS proxy URL for both login and Graph calls
- ``caBundle``       path to a custom CA certificate bundle
- ``tlsNoVerify``    skip TLS certificate verification (test tenants only)
"""

import json
import os
from typing import Any, Dict, List, Optional

from .errors import ConfigError

DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com"
DEFAULT_GRAPH_ENDPOINT = "https://graph.microsoft.com/v1.0"

# Reported in this order when missing
REQUIRED_FIELDS = ["tenantId", "clientId", "clientSecret"]

_EXAMPLE_HINT = "See config.json.example for the required format"


class Config:
    """Validated configuration for a single invocation."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
        graph_endpoint: str = DEFAULT_GRAPH_ENDPOINT,
        timeout: Optional[float] = None,
        proxy: Optional[str] = None,
        ca_bundle: Optional[str] = None,
        tls_no_verify: bool = False,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority_host = authority_host.rstrip("/")
        self.graph_endpoint = graph_endpoint.rstrip("/")
        self.timeout = timeout
        self.proxy = proxy
        self.ca_bundle = ca_bundle
        self.tls_no_verify = tls_no_verify

    def __repr__(self):
        return f"Config(tenant_id={self.tenant_id!r}, client_id={self.client_id!r}, client_secret='***')"


def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Read, parse, and validate the config file at ``path``.

    Raises:
        ConfigError: file missing or unreadable, invalid JSON, or one or more
            required fields missing/empty.  The message for missing fields
            names exactly the fields that are absent.
    """
    if not os.path.isfile(path):
        raise ConfigError(
            f"config file not found: {path}\n\n"
            "Please create a config.json file with your Azure AD credentials.\n"
            f"{_EXAMPLE_HINT}"
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        raise ConfigError(f"failed to read config file: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"failed to parse config file: {e}\n\nEnsure the file contains valid JSON"
        ) from e

    return config_from_dict(data)


def config_from_dict(data: Any) -> Config:
    """Validate an already-parsed config object."""
    if not isinstance(data, dict):
        raise ConfigError(f"config file must contain a JSON object\n\n{_EXAMPLE_HINT}")

    missing = missing_fields(data)
    if missing:
        raise ConfigError(
            f"config file is missing required fields: {', '.join(missing)}\n\n{_EXAMPLE_HINT}"
        )

    timeout = data.get("timeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
        raise ConfigError(f"config field 'timeout' must be a positive number, got {timeout!r}")

    for key in ("proxy", "caBundle"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"config field '{key}' must be a string, got {value!r}")

    tls_no_verify = data.get("tlsNoVerify", False)
    if not isinstance(tls_no_verify, bool):
        raise ConfigError(f"config field 'tlsNoVerify' must be true or false, got {tls_no_verify!r}")

    return Config(
        tenant_id=data["tenantId"],
        client_id=data["clientId"],
        client_secret=data["clientSecret"],
        authority_host=data.get("authorityHost") or DEFAULT_AUTHORITY_HOST,
        graph_endpoint=data.get("graphEndpoint") or DEFAULT_GRAPH_ENDPOINT,
        timeout=timeout,
        proxy=data.get("proxy") or None,
        ca_bundle=data.get("caBundle") or None,
        tls_no_verify=tls_no_verify,
    )


def missing_fields(data: Dict[str, Any]) -> List[str]:
    """Return the required JSON keys that are absent, empty, or not strings."""
    missing = []
    for key in REQUIRED_FIELDS:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            missing.append(key)
    return missing

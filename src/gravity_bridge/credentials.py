"""Gravity server credentials."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

logger = logging.getLogger(__name__)

INTROSPECTION_QUERY = "query { __schema { queryType { name } } }"


@dataclass(frozen=True, slots=True)
class CredentialCheck:
    ok: bool
    message: str
    status_code: int | None = None


class GravityCredentials:
    """Server URL and API key for a Gravity deployment.

    The same API key authenticates GraphQL calls (`x-api-key` header) and
    doubles as the Redis password for the event bus.
    """

    def __init__(
        self,
        server_url: str,
        api_key: str,
        session: requests.Session | None = None,
    ) -> None:
        if not server_url:
            raise ValueError("Gravity server URL is required")
        self.server_url = server_url.rstrip("/")
        self.api_key = api_key
        self._session = session or requests.Session()

    @property
    def graphql_url(self) -> str:
        return f"{self.server_url}/graphql"

    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-api-key": self.api_key}

    def test(self, timeout: float = 10.0) -> CredentialCheck:
        """Send a GraphQL introspection query and report whether it was accepted."""

        try:
            resp = self._session.post(
                self.graphql_url,
                json={"query": INTROSPECTION_QUERY},
                headers=self.headers(),
                timeout=timeout,
            )
        except requests.RequestException as e:
            logger.warning("Credential check failed", extra={"url": self.graphql_url})
            return CredentialCheck(ok=False, message=f"Connection failed: {e}")

        if resp.status_code != 200:
            return CredentialCheck(
                ok=False,
                message=f"Server responded with HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            payload: dict[str, Any] = resp.json()
        except ValueError:
            return CredentialCheck(
                ok=False, message="Server returned a non-JSON response", status_code=200
            )

        errors = payload.get("errors")
        if errors:
            messages = [
                item["message"]
                for item in errors
                if isinstance(item, dict) and isinstance(item.get("message"), str)
            ]
            return CredentialCheck(
                ok=False,
                message="; ".join(messages) or "Unknown GraphQL error",
                status_code=200,
            )
        return CredentialCheck(ok=True, message="Connection successful", status_code=200)

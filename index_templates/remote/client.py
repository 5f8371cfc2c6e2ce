"""HTTP client for the ``/_template`` API."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..core.errors import MalformedResponse, RemoteUnavailable, RemoteWriteFailed
from ..core.models import TransportConfig

logger = logging.getLogger(__name__)

TEMPLATE_PATH = "/_template"
JSON_HEADERS = {"Accept": "application/json"}


def template_path(name: str) -> str:
    return f"{TEMPLATE_PATH}/{quote(name, safe='')}"


class TemplateClient:
    """Blocking client bound to one TransportConfig.

    Args:
        config: Connection parameters
        transport: Optional httpx transport (used to stub the service in tests)
    """

    def __init__(
        self, config: TransportConfig, *, transport: httpx.BaseTransport | None = None
    ) -> None:
        self.config = config
        auth = config.basic_auth()
        self._http = httpx.Client(
            base_url=config.base_url,
            headers=JSON_HEADERS,
            auth=httpx.BasicAuth(*auth) if auth else None,
            timeout=config.timeout,
            verify=config.verify_tls,
            transport=transport,
        )

    def __enter__(self) -> TemplateClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def list_all(self) -> dict[str, dict[str, Any]]:
        """Fetch every template definition, un-normalized.

        Returns:
            Mapping of template name to its raw document
        """
        url = f"{self.config.base_url}{TEMPLATE_PATH}"
        logger.debug("GET %s", url)
        try:
            response = self._http.get(TEMPLATE_PATH)
        except httpx.HTTPError as exc:
            raise RemoteUnavailable(
                f"Listing templates at {url} failed: {exc}", url=url
            ) from exc

        if response.status_code != 200:
            raise RemoteUnavailable(
                f"Listing templates at {url} returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponse(
                f"Template listing from {url} is not valid JSON",
                url=url,
                status_code=response.status_code,
            ) from exc

        if not isinstance(body, dict):
            raise MalformedResponse(
                f"Template listing from {url} is a JSON {type(body).__name__}, expected an object",
                url=url,
                status_code=response.status_code,
            )

        logger.debug("Listed %d template(s) from %s", len(body), url)
        return body

    def write(self, name: str, document: dict[str, Any]) -> None:
        """Create or replace a template with a canonical document."""
        path = template_path(name)
        url = f"{self.config.base_url}{path}"
        logger.debug("PUT %s", url)
        try:
            response = self._http.put(
                path,
                content=json.dumps(document),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise RemoteWriteFailed(
                f"Writing template {name!r} to {url} failed: {exc}", url=url
            ) from exc

        if not response.is_success:
            raise RemoteWriteFailed(
                f"Writing template {name!r} to {url} returned HTTP "
                f"{response.status_code}: {response.text[:200]}",
                url=url,
                status_code=response.status_code,
            )

    def delete(self, name: str) -> None:
        """Remove a template; a template that is already gone is not an error."""
        path = template_path(name)
        url = f"{self.config.base_url}{path}"
        logger.debug("DELETE %s", url)
        try:
            response = self._http.delete(path)
        except httpx.HTTPError as exc:
            raise RemoteWriteFailed(
                f"Deleting template {name!r} at {url} failed: {exc}", url=url
            ) from exc

        if response.status_code == 404:
            logger.debug("Template %s already absent", name)
            return
        if not response.is_success:
            raise RemoteWriteFailed(
                f"Deleting template {name!r} at {url} returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )


def list_templates(
    config: TransportConfig, *, transport: httpx.BaseTransport | None = None
) -> dict[str, dict[str, Any]]:
    with TemplateClient(config, transport=transport) as client:
        return client.list_all()


def put_template(
    config: TransportConfig,
    name: str,
    document: dict[str, Any],
    *,
    transport: httpx.BaseTransport | None = None,
) -> None:
    with TemplateClient(config, transport=transport) as client:
        client.write(name, document)

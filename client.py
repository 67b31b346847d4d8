"""HTTP client for the remote index/search service.

All calls are blocking ``requests`` calls; async callers run them through
``asyncio.to_thread`` so that a superseded call can be abandoned.

Endpoints:
    POST /{key}/index          submit validated items for the enabled models
    GET  /{key}/search         per-model ranked results for a text query
    GET  /models               model id -> default weight
    GET  /{key}/statuscounts   per-model indexing progress
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import requests
from pydantic import ValidationError

from errors import ConfigurationMissing, NetworkFailure
from keys import is_configured_key
from models import IndexRequest, SearchResponse, StatusCounts

logger = logging.getLogger(__name__)


class IndexClient:
    def __init__(
        self,
        base_url: str,
        user_key: str | None,
        *,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_key = user_key
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return is_configured_key(self.user_key)

    def _keyed_url(self, path: str) -> str:
        if not self.configured:
            raise ConfigurationMissing("user key is not configured; expected 32 alphanumeric characters")
        return f"{self.base_url}/{self.user_key}/{path}"

    def _request(self, method: str, url: str, *, keyed: bool, **kwargs: Any) -> requests.Response:
        logger.debug("%s %s", method, url.rsplit("/", 1)[-1])
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise NetworkFailure(f"{method} {url} failed: {e}") from e

        if keyed and response.status_code == 404:
            raise ConfigurationMissing("user key is not provisioned on the index service")
        if not response.ok:
            raise NetworkFailure(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise NetworkFailure(f"invalid JSON from {response.url}") from e

    def submit_index(self, request: IndexRequest) -> None:
        url = self._keyed_url("index")
        self._request("POST", url, keyed=True, json=request.model_dump())

    def search(
        self,
        text: str,
        *,
        models: Sequence[str] | None = None,
        k: int | None = None,
    ) -> SearchResponse:
        url = self._keyed_url("search")
        params: dict[str, str | int] = {"text": text}
        if models:
            params["models"] = ",".join(models)
        if k is not None:
            params["k"] = k
        response = self._request("GET", url, keyed=True, params=params)
        try:
            return SearchResponse.model_validate(self._json(response))
        except ValidationError as e:
            raise NetworkFailure(f"malformed search response: {e}") from e

    def list_models(self) -> dict[str, float]:
        response = self._request("GET", f"{self.base_url}/models", keyed=False)
        data = self._json(response)
        if not isinstance(data, dict):
            raise NetworkFailure("malformed models response: expected an object")
        try:
            return {str(k): float(v) for k, v in data.items()}
        except (TypeError, ValueError) as e:
            raise NetworkFailure(f"malformed models response: {e}") from e

    def status_counts(self) -> StatusCounts:
        url = self._keyed_url("statuscounts")
        response = self._request("GET", url, keyed=True)
        try:
            return StatusCounts.model_validate(self._json(response))
        except ValidationError as e:
            raise NetworkFailure(f"malformed status response: {e}") from e

    def close(self) -> None:
        self.session.close()


__all__ = ["IndexClient"]

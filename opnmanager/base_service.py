import logging
from typing import Any, Mapping, Optional

import requests

from .config import DEFAULT_TIMEOUT_SECONDS, ApiProfile, ProfileStore
from .exceptions import DecodeError, MissingProfileError
from .http_gateway import HttpGateway

logger = logging.getLogger(__name__)


class BaseService:
    """
    Shared plumbing for the OPNsense API services.

    The default profile is looked up on every call, so a service never holds
    credentials of its own and a profile change takes effect on the next request.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        gateway: Optional[HttpGateway] = None,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.profile_store = profile_store
        self.gateway = gateway or HttpGateway()
        self.timeout = timeout

    def _profile(self) -> ApiProfile:
        profile = self.profile_store.get_default_api_profile()
        if profile is None:
            logger.error("No default API profile configured; skipping request")
            raise MissingProfileError()
        return profile

    def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:
        profile = self._profile()
        return self.gateway.issue(
            method,
            profile.build_url(endpoint),
            payload=payload,
            headers=headers,
            timeout_seconds=self.timeout,
            credentials=profile.credentials,
        )

    @staticmethod
    def _json(response: requests.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"Failed to parse {what}: {exc}", url=response.url, original_error=exc) from exc

    @staticmethod
    def _json_object(response: requests.Response, what: str) -> Mapping[str, Any]:
        data = BaseService._json(response, what)
        if not isinstance(data, dict):
            raise DecodeError(f"Failed to parse {what}: expected a JSON object, got {type(data).__name__}", url=response.url)
        return data

"""
Tebex Plugin API client (game-server secret authenticated).

GET {base}/player/{id}/packages[?package=<id>] lists the active packages of a
player. A 404 for a well-formed player id means "never bought anything".
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, TypeAdapter

from plus_api.core.config import (
    get_app_version,
    get_tebex_game_server_secret,
    get_tebex_plugin_api_url,
    get_tebex_timeout,
)
from plus_api.core.errors import ApiError
from plus_api.core.logs import emit

USER_AGENT = f"plus-backend/{get_app_version()} (python, httpx)"


class BillingProviderError(ApiError):
    status_code = 502
    error = "billing_provider_error"


class ActivePackageInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""


class ActivePackage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    txn_id: str
    date: Optional[datetime] = None
    quantity: int = 1
    package: ActivePackageInfo


_ACTIVE_PACKAGES = TypeAdapter(List[ActivePackage])


class TebexPluginClient:
    """
    Settings left as None are read from the environment on every request, so
    a long-lived client follows secret rotation.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        base_url: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._secret = secret
        self._base_url = base_url
        self._timeout = timeout
        self._http = http or httpx.Client()

    @property
    def secret(self) -> str:
        return self._secret if self._secret is not None else get_tebex_game_server_secret()

    @property
    def base_url(self) -> str:
        return (self._base_url if self._base_url is not None else get_tebex_plugin_api_url()).rstrip("/")

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else get_tebex_timeout()

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": USER_AGENT,
            "X-Tebex-Secret": self.secret,
            "Accept": "application/json",
        }

    def active_packages(self, player: uuid.UUID, package: Optional[str] = None) -> List[ActivePackage]:
        """All active packages of a player, oldest first as the provider returns them."""
        params = {"package": package} if package is not None else None
        url = f"{self.base_url}/player/{player.hex}/packages"
        try:
            response = self._http.get(url, headers=self._headers(), params=params, timeout=self.timeout)
        except httpx.HTTPError as e:
            emit("error", "payments.tebex.request_failed", str(e), __name__, player=str(player))
            raise BillingProviderError(f"Unable to fetch active packages for player: {e}")

        if response.status_code == 404:
            emit("info", "payments.tebex.player_not_found", f"no purchases for player {player}", __name__)
            return []
        if response.is_error:
            emit(
                "error",
                "payments.tebex.bad_status",
                f"Tebex returned status {response.status_code}",
                __name__,
                player=str(player),
                body=response.text[:200],
            )
            raise BillingProviderError(
                f"Unable to fetch active packages for player: status {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            return _ACTIVE_PACKAGES.validate_python(response.json())
        except ValueError as e:
            raise BillingProviderError(f"Unable to decode active packages for player: {e}")

    def close(self) -> None:
        self._http.close()


_client: Optional[TebexPluginClient] = None


def get_plugin_client() -> TebexPluginClient:
    global _client
    if _client is None:
        _client = TebexPluginClient()
    return _client


def close_plugin_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None

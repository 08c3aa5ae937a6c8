from __future__ import annotations

import logging
from contextlib import nullcontext

import httpx
from pydantic import ValidationError

from .api_models import AccessGroup, AccessGroupResponse, UpdateGroupRequest
from .settings import CLOUDFLARE_API_BASE, Settings

logger = logging.getLogger(__name__)


class PolicyStoreError(Exception):
    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class PolicyFetchFailure(PolicyStoreError):
    pass


class PolicyUpdateFailure(PolicyStoreError):
    pass


class PolicyStore:
    """Reads and overwrites a Cloudflare Access Group.

    replace() sends a full include list, so any other include rules an operator
    added to the group are dropped on update.
    """

    def __init__(
        self,
        account_id: str,
        rule_id: str,
        auth_token: str,
        base_url: str = CLOUDFLARE_API_BASE,
        timeout_s: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.account_id = account_id
        self.rule_id = rule_id
        self._auth_token = auth_token
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.Client | None = None) -> "PolicyStore":
        return cls(
            account_id=settings.account_id,
            rule_id=settings.rule_id,
            auth_token=settings.auth_token,
            base_url=settings.api_base,
            timeout_s=settings.api_timeout_s,
            client=client,
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}/accounts/{self.account_id}/access/groups/{self.rule_id}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._auth_token}",
            "Content-Type": "application/json",
        }

    def _session(self):
        if self._client is not None:
            return nullcontext(self._client)
        return httpx.Client(timeout=self.timeout_s)

    def fetch(self) -> AccessGroup:
        try:
            with self._session() as client:
                resp = client.get(self.url, headers=self._headers(), timeout=self.timeout_s)
        except httpx.HTTPError as e:
            raise PolicyFetchFailure(f"failed to get Cloudflare group: {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise PolicyFetchFailure(
                f"failed to get Cloudflare group: {resp.text}, status: {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            parsed = AccessGroupResponse.model_validate_json(resp.content)
        except ValidationError as e:
            raise PolicyFetchFailure(
                f"failed to decode Cloudflare group: {e.error_count()} error(s)",
                status_code=resp.status_code,
                body=resp.text,
            ) from e
        return parsed.result

    def replace(self, address: str) -> None:
        payload = UpdateGroupRequest.single_ip(address).model_dump(exclude_none=True)
        try:
            with self._session() as client:
                resp = client.put(self.url, headers=self._headers(), json=payload, timeout=self.timeout_s)
        except httpx.HTTPError as e:
            raise PolicyUpdateFailure(f"failed to update Cloudflare group: {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise PolicyUpdateFailure(
                f"failed to update Cloudflare group: {resp.text}, status: {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )
        logger.debug("Access Group %s include set to %s/32", self.rule_id, address)

# src/school_agenda/backup/remote.py

"""
Remote backup storage over a Supabase-compatible Storage REST API.

Objects live in one bucket under a fixed prefix:
  POST {url}/storage/v1/object/{bucket}/{prefix}/{name}     upload (x-upsert: false)
  POST {url}/storage/v1/object/list/{bucket}                 list
  GET  {url}/storage/v1/object/{bucket}/{prefix}/{name}     download
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from ..core.ports import RemoteObject
from ..errors import NetworkError

logger = logging.getLogger(__name__)


def _parse_created_at(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


class SupabaseBackupStorage:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        bucket: str = "backups",
        prefix: str = "backups",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "apikey": api_key,
        }
        self._timeout = httpx.Timeout(timeout_seconds, connect=min(5.0, timeout_seconds))
        self._transport = transport

    def _object_path(self, name: str) -> str:
        key = f"{self._prefix}/{name}" if self._prefix else name
        return f"/storage/v1/object/{self._bucket}/{key}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def upload(self, name: str, content: str) -> None:
        try:
            async with self._client() as client:
                resp = await client.post(
                    self._object_path(name),
                    content=content.encode("utf-8"),
                    headers={"Content-Type": "application/json", "x-upsert": "false"},
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise NetworkError(f"upload of {name} failed: {e}") from e
        logger.info("Uploaded backup %s to bucket=%s", name, self._bucket)

    async def list(self) -> list[RemoteObject]:
        body = {
            "prefix": self._prefix,
            "limit": 100,
            "offset": 0,
            "sortBy": {"column": "created_at", "order": "desc"},
        }
        try:
            async with self._client() as client:
                resp = await client.post(f"/storage/v1/object/list/{self._bucket}", json=body)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as e:
            raise NetworkError(f"listing bucket {self._bucket} failed: {e}") from e
        except ValueError as e:
            raise NetworkError(f"listing bucket {self._bucket} returned invalid JSON") from e

        if not isinstance(payload, list):
            raise NetworkError(f"listing bucket {self._bucket} returned {type(payload).__name__}")

        out: list[RemoteObject] = []
        for item in payload:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            # Supabase keeps a ".emptyFolderPlaceholder" object in every folder.
            if str(item["name"]).startswith("."):
                continue
            out.append(RemoteObject(name=str(item["name"]), created_at=_parse_created_at(item.get("created_at"))))
        return out

    async def download(self, name: str) -> str:
        try:
            async with self._client() as client:
                resp = await client.get(self._object_path(name))
                resp.raise_for_status()
                return resp.text
        except httpx.HTTPError as e:
            raise NetworkError(f"download of {name} failed: {e}") from e

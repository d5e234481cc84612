"""Record store clients for link rows.

Two backends share the ``RecordStore`` interface:

* ``RestRecordStore`` talks to a hosted table API (PostgREST dialect). The
  caller's access token is forwarded and the service's row policy decides
  which rows the caller may see or change.
* ``FileRecordStore`` keeps one YAML file per record under a local data
  directory and applies the same owner-only visibility itself.

Every operation takes the caller's ``Session`` explicitly. Failures surface
as ``StoreError`` with a readable message; nothing is retried.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

import httpx
from pydantic import ValidationError

from ..models.config import AppConfig, EnvSettings
from ..models.link import Link, LinkInput
from ..models.session import Session
from ..utils.file_lock import FileLocker, FileLockError
from ..utils.yaml_handler import YAMLError, load_link_from_file, save_link_to_file

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Remote persistence failure."""

    pass


class LinkNotFoundError(StoreError):
    """Link does not exist or is not visible to the caller."""

    pass


class RecordStore(ABC):
    """CRUD operations on the links table, scoped to the calling session."""

    @abstractmethod
    async def list_by_owner(self, session: Session, owner_id: str) -> List[Link]:
        """Return the owner's links, newest first."""

    @abstractmethod
    async def create(self, session: Session, data: LinkInput) -> Link:
        """Insert one link owned by the session user."""

    @abstractmethod
    async def update(self, session: Session, link_id: str, data: LinkInput) -> Link:
        """Replace all mutable fields of a link."""

    @abstractmethod
    async def delete(self, session: Session, link_id: str) -> None:
        """Delete a link."""

    @abstractmethod
    async def bulk_insert(self, session: Session, items: Sequence[LinkInput]) -> List[Link]:
        """Insert many links in a single request."""


class FileRecordStore(RecordStore):
    """YAML-file backed store with an in-memory index."""

    def __init__(self, data_path: Path, lock_timeout: float = 5.0):
        self.data_path = Path(data_path)
        self.links_path = self.data_path / "links"
        self.lock_timeout = lock_timeout
        self.index: Dict[str, Link] = {}
        self.load_errors: List[str] = []

    async def initialize(self) -> None:
        """Load all records into memory.

        Corrupted files are skipped and recorded in ``load_errors``.

        Raises:
            StoreError: If the data directory cannot be created
        """
        try:
            self.links_path.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            raise StoreError(f"Failed to create data directory: {e}") from e

        self.index = {}
        self.load_errors = []

        yaml_files = sorted(self.links_path.glob("*.yaml"))
        logger.info(f"Loading {len(yaml_files)} links from {self.links_path}")

        for yaml_file in yaml_files:
            try:
                link = await asyncio.to_thread(load_link_from_file, yaml_file)
            except YAMLError as e:
                error_msg = f"Corrupted YAML in {yaml_file.name}: {e}"
                logger.warning(error_msg)
                self.load_errors.append(error_msg)
                continue
            self.index[link.id] = link

        logger.info(
            f"Loaded {len(self.index)} links ({len(self.load_errors)} errors)"
        )

    async def list_by_owner(self, session: Session, owner_id: str) -> List[Link]:
        if owner_id != session.user_id:
            # Other owners' rows are never visible
            return []
        links = [link for link in self.index.values() if link.owner_id == owner_id]
        links.sort(key=lambda link: link.created_at, reverse=True)
        return links

    async def create(self, session: Session, data: LinkInput) -> Link:
        link = self._new_link(session, data)
        await self._write(link)
        return link

    async def update(self, session: Session, link_id: str, data: LinkInput) -> Link:
        existing = self._visible(session, link_id)
        updated = existing.model_copy(
            update={
                "url": data.url,
                "title": data.title,
                "description": data.description,
                "tags": list(data.tags),
                "category": data.category,
                "favicon_url": data.favicon_url,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        await self._write(updated)
        return updated

    async def delete(self, session: Session, link_id: str) -> None:
        self._visible(session, link_id)
        await self._remove(link_id)

    async def bulk_insert(self, session: Session, items: Sequence[LinkInput]) -> List[Link]:
        """Insert all items or none.

        Files written before a failure are removed again.
        """
        written: List[Link] = []
        try:
            for item in items:
                link = self._new_link(session, item)
                await self._write(link)
                written.append(link)
        except StoreError:
            for link in written:
                try:
                    await self._remove(link.id)
                except StoreError as rollback_error:
                    logger.error(f"Rollback left {link.id} behind: {rollback_error}")
            logger.error(f"Bulk insert failed, rolled back {len(written)} links")
            raise
        return written

    def _new_link(self, session: Session, data: LinkInput) -> Link:
        now = datetime.now(timezone.utc)
        created_at = getattr(data, "created_at", None) or now
        return Link(
            id=str(uuid4()),
            owner_id=session.user_id,
            url=data.url,
            title=data.title,
            description=data.description,
            tags=list(data.tags),
            category=data.category,
            favicon_url=data.favicon_url,
            created_at=created_at,
            updated_at=now,
        )

    def _visible(self, session: Session, link_id: str) -> Link:
        link = self.index.get(link_id)
        if link is None or link.owner_id != session.user_id:
            raise LinkNotFoundError(f"Link not found: {link_id}")
        return link

    def _file_for(self, link_id: str) -> Path:
        return self.links_path / f"{link_id}.yaml"

    async def _write(self, link: Link) -> None:
        file_path = self._file_for(link.id)
        try:
            async with FileLocker(file_path, timeout=self.lock_timeout):
                await asyncio.to_thread(save_link_to_file, link, file_path)
        except FileLockError as e:
            raise StoreError(f"Could not acquire lock for {link.id}: {e}") from e
        except YAMLError as e:
            raise StoreError(f"Failed to save link {link.id}: {e}") from e

        self.index[link.id] = link

    async def _remove(self, link_id: str) -> None:
        file_path = self._file_for(link_id)
        try:
            async with FileLocker(file_path, timeout=self.lock_timeout):
                await asyncio.to_thread(file_path.unlink, missing_ok=True)
        except FileLockError as e:
            raise StoreError(f"Could not acquire lock for {link_id}: {e}") from e
        except OSError as e:
            raise StoreError(f"Failed to delete link {link_id}: {e}") from e

        self.index.pop(link_id, None)


class RestRecordStore(RecordStore):
    """Client for a hosted PostgREST-style table API."""

    def __init__(
        self,
        service_url: str,
        anon_key: Optional[str],
        table: str = "links",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{service_url.rstrip('/')}/rest/v1/{table}"
        self.anon_key = anon_key
        self.transport = transport

    async def list_by_owner(self, session: Session, owner_id: str) -> List[Link]:
        params = {
            "select": "*",
            "user_id": f"eq.{owner_id}",
            "order": "created_at.desc",
        }
        rows = await self._request("GET", session, params=params)
        return self._to_links(rows)

    async def create(self, session: Session, data: LinkInput) -> Link:
        rows = await self._request(
            "POST", session, json=[data.to_record(session.user_id)], returning=True
        )
        if not rows:
            raise StoreError("Insert returned no rows")
        return self._to_links(rows[:1])[0]

    async def update(self, session: Session, link_id: str, data: LinkInput) -> Link:
        rows = await self._request(
            "PATCH",
            session,
            params={"id": f"eq.{link_id}"},
            json=data.to_record(session.user_id),
            returning=True,
        )
        if not rows:
            raise LinkNotFoundError(f"Link not found: {link_id}")
        return self._to_links(rows[:1])[0]

    async def delete(self, session: Session, link_id: str) -> None:
        rows = await self._request(
            "DELETE", session, params={"id": f"eq.{link_id}"}, returning=True
        )
        if not rows:
            raise LinkNotFoundError(f"Link not found: {link_id}")

    async def bulk_insert(self, session: Session, items: Sequence[LinkInput]) -> List[Link]:
        if not items:
            return []
        payload = [item.to_record(session.user_id) for item in items]
        rows = await self._request("POST", session, json=payload, returning=True)
        return self._to_links(rows)

    def _headers(self, session: Session, returning: bool) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.anon_key:
            headers["apikey"] = self.anon_key
        token = session.access_token or self.anon_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if returning:
            headers["Prefer"] = "return=representation"
        return headers

    async def _request(
        self,
        method: str,
        session: Session,
        params: Optional[dict] = None,
        json: Optional[object] = None,
        returning: bool = False,
    ) -> list:
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.request(
                    method,
                    self.base_url,
                    params=params,
                    json=json,
                    headers=self._headers(session, returning),
                )
        except httpx.HTTPError as e:
            raise StoreError(f"Could not reach the link store: {e}") from e

        if response.status_code >= 400:
            raise StoreError(self._error_message(response))

        if not response.content:
            return []

        try:
            data = response.json()
        except ValueError as e:
            raise StoreError(f"Invalid response from link store: {e}") from e

        return data if isinstance(data, list) else [data]

    @staticmethod
    def _to_links(rows: list) -> List[Link]:
        try:
            return [Link.model_validate(row) for row in rows]
        except ValidationError as e:
            raise StoreError(f"Invalid response from link store: {e}") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"Link store request failed ({response.status_code}): {response.text[:200]}"


async def create_record_store(config: AppConfig, env_settings: EnvSettings) -> RecordStore:
    """Build and initialize the configured store backend."""
    if config.store_backend == "rest":
        if not config.service_url:
            raise StoreError("service_url is not configured")
        return RestRecordStore(
            config.service_url,
            env_settings.service_anon_key,
            table=config.links_table,
        )

    if not config.data_path:
        raise StoreError("data_path is not configured")
    store = FileRecordStore(Path(config.data_path))
    await store.initialize()
    return store

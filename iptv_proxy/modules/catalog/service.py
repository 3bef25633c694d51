import json
import logging
from typing import Dict, Iterable, List, Optional, Protocol

import aiofiles
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from iptv_proxy.modules.catalog import models
from iptv_proxy.modules.catalog.schemas import ExtractionOptions, Platform, StreamRecord

logger = logging.getLogger(__name__)

class StreamCatalog(Protocol):
    """Read-only view of the stream catalog the relay depends on."""

    async def get(self, stream_id: str) -> Optional[StreamRecord]:
        ...

    async def list_active(self) -> List[StreamRecord]:
        ...

class InMemoryStreamCatalog:
    def __init__(self, records: Iterable[StreamRecord] = ()):
        self._records: Dict[str, StreamRecord] = {r.id: r for r in records}

    def add(self, record: StreamRecord):
        self._records[record.id] = record

    async def get(self, stream_id: str) -> Optional[StreamRecord]:
        return self._records.get(stream_id)

    async def list_active(self) -> List[StreamRecord]:
        return [r for r in self._records.values() if r.is_active]

    async def load_file(self, path: str) -> int:
        """
        Seeds the catalog from a JSON file holding a list of stream objects
        (camelCase or snake_case keys). Returns the number of records loaded.
        """
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            raw = await f.read()

        entries = json.loads(raw)
        if isinstance(entries, dict):
            entries = entries.get("streams", [])

        for entry in entries:
            self.add(StreamRecord.model_validate(entry))

        logger.info(f"[Catalog] Loaded {len(entries)} streams from {path}")
        return len(entries)

def _to_record(row: models.Stream) -> StreamRecord:
    raw_options = row.streamlink_options
    # Older rows keep the options as a serialized JSON string
    if isinstance(raw_options, str):
        raw_options = json.loads(raw_options) if raw_options else None

    try:
        platform = Platform(row.streamer_type or Platform.DIRECT.value)
    except ValueError:
        platform = Platform.OTHER

    return StreamRecord(
        id=row.id,
        name=row.name,
        url=row.url,
        category=row.category or "",
        logo=row.logo,
        is_active=bool(row.is_active),
        use_streamlink=bool(row.use_streamlink),
        platform=platform,
        streamlink_options=ExtractionOptions.model_validate(raw_options) if raw_options else None,
    )

class SqlStreamCatalog:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get(self, stream_id: str) -> Optional[StreamRecord]:
        async with self.session_factory() as db:
            row = await db.get(models.Stream, stream_id)
            return _to_record(row) if row else None

    async def list_active(self) -> List[StreamRecord]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(models.Stream)
                .where(models.Stream.is_active == True)
                .order_by(models.Stream.name)
            )
            return [_to_record(row) for row in result.scalars().all()]

"""
Document Registry - status bookkeeping for ingested documents

Records each document's ingestion status and keeps the chunk offsets of
indexed documents for citations and debugging. Backed by JSON files in
a data directory, or purely in memory when no directory is given.

Layout:
    <data_dir>/documents.json          all DocumentRecords
    <data_dir>/chunks/<document_id>.json   ChunkingResult of indexed documents
"""

import json
import os
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from chunking.models import ChunkingResult
from localbot.exceptions import DocumentNotFound
from localbot.logging_config import get_logger

from .models import DocumentRecord, DocumentStatus

logger = get_logger(__name__)


class DocumentRegistry:
    def __init__(self, data_dir: Optional[str] = None):
        self.data_dir = Path(data_dir) if data_dir else None
        self._lock = threading.Lock()
        self._records: dict[str, DocumentRecord] = {}
        self._chunks: dict[str, ChunkingResult] = {}
        if self.data_dir is not None:
            self.chunk_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    @property
    def documents_file(self) -> Path:
        return self.data_dir / "documents.json"

    @property
    def chunk_dir(self) -> Path:
        return self.data_dir / "chunks"

    def create(
        self,
        name: str,
        document_id: Optional[str] = None,
        status: DocumentStatus = DocumentStatus.PROCESSING,
    ) -> DocumentRecord:
        record = DocumentRecord(id=document_id or uuid.uuid4().hex, name=name, status=status)
        with self._lock:
            self._records[record.id] = record
            self._save()
        return record.model_copy()

    def get(self, document_id: str) -> Optional[DocumentRecord]:
        with self._lock:
            record = self._records.get(document_id)
            return record.model_copy() if record else None

    def require(self, document_id: str) -> DocumentRecord:
        record = self.get(document_id)
        if record is None:
            raise DocumentNotFound(document_id)
        return record

    def list(self) -> list[DocumentRecord]:
        with self._lock:
            records = [r.model_copy() for r in self._records.values()]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def mark_processing(self, document_id: str) -> Optional[DocumentRecord]:
        return self._update(document_id, status=DocumentStatus.PROCESSING, error_message=None)

    def mark_indexed(
        self,
        document_id: str,
        chunk_count: int,
        chunking: Optional[ChunkingResult] = None,
    ) -> Optional[DocumentRecord]:
        record = self._update(
            document_id,
            status=DocumentStatus.INDEXED,
            chunk_count=chunk_count,
            error_message=None,
        )
        if record is not None and chunking is not None:
            with self._lock:
                self._chunks[document_id] = chunking
                if self.data_dir is not None:
                    chunking.save(str(self.chunk_dir / f"{document_id}.json"))
        return record

    def mark_error(self, document_id: str, message: str) -> Optional[DocumentRecord]:
        return self._update(document_id, status=DocumentStatus.ERROR, error_message=message)

    def chunks(self, document_id: str) -> Optional[ChunkingResult]:
        with self._lock:
            return self._chunks.get(document_id)

    def delete(self, document_id: str) -> bool:
        with self._lock:
            removed = self._records.pop(document_id, None) is not None
            self._chunks.pop(document_id, None)
            if self.data_dir is not None:
                (self.chunk_dir / f"{document_id}.json").unlink(missing_ok=True)
            if removed:
                self._save()
        return removed

    def _update(self, document_id: str, **changes) -> Optional[DocumentRecord]:
        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                logger.warning("Status update for unknown document %s ignored", document_id)
                return None
            updated = record.model_copy(update={**changes, "updated_at": datetime.utcnow()})
            self._records[document_id] = updated
            self._save()
            return updated.model_copy()

    def _load(self) -> None:
        if self.documents_file.exists():
            data = json.loads(self.documents_file.read_text(encoding="utf-8"))
            for item in data:
                record = DocumentRecord.model_validate(item)
                self._records[record.id] = record
        for path in self.chunk_dir.glob("*.json"):
            result = ChunkingResult.load(str(path))
            self._chunks[result.document_id] = result

    def _save(self) -> None:
        if self.data_dir is None:
            return
        payload = [r.model_dump(mode="json") for r in self._records.values()]
        tmp_path = self.documents_file.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.documents_file)

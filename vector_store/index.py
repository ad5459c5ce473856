"""
Vector Index - Persistent nearest-neighbor store over indexed chunks

Stores (vector, metadata) pairs locally and answers exact top-k cosine
similarity queries. No external service is involved.

Design:
- Exact brute-force search: one numpy matrix-vector product per query,
  O(n·d). Adequate for a single user's document set; VectorIndex is the
  seam for swapping in an approximate structure (see chroma_index).
- Vectors live in a capacity-doubling float32 matrix, so inserts are
  amortized O(1).
- Single writer, lock-free readers: insert/delete/compact run under one
  lock and publish a new immutable snapshot when done. A search works on
  whatever snapshot was current when it started, so it sees the index
  either before or after a concurrent mutation, never in between.
- Storage directory layout:
    manifest.json  {format_version, dimensions, created_at}
    items.jsonl    append-only log of insert/delete operations
  Each log record is flushed and fsynced before the in-memory state is
  published. A torn trailing line left by a crash is cut off on open.

Usage:
    from vector_store import LocalVectorIndex, IndexedItem

    index = LocalVectorIndex("data/vector_index")
    index.ensure_initialized()
    item_id = index.insert(IndexedItem.for_chunk(vec, "doc-1", "a.txt", "text", 0))
    hits = index.search(query_vec, k=5)
    index.delete_by_document("doc-1")
"""

import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from localbot.exceptions import IndexUninitialized, InvalidInput, StorageIOError

from .models import IndexedItem, ItemMetadata, SearchHit

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
MANIFEST_FILE = "manifest.json"
ITEMS_FILE = "items.jsonl"
_INITIAL_CAPACITY = 64
# The log is rewritten once it holds this many dead records and more dead
# than live ones
COMPACT_MIN_DEAD_RECORDS = 256


class VectorIndex(ABC):
    """
    Interface shared by all index backends.

    Every operation raises IndexUninitialized before ensure_initialized()
    and StorageIOError when persistence fails.
    """

    @abstractmethod
    def is_initialized(self) -> bool:
        ...

    @abstractmethod
    def ensure_initialized(self) -> None:
        """Create storage on first use, reuse it afterwards. Idempotent."""

    @abstractmethod
    def insert(self, item: IndexedItem) -> str:
        """Append an item and return its newly assigned id."""

    @abstractmethod
    def search(self, query_vector: Sequence[float], k: int) -> list[SearchHit]:
        """Top-k hits by descending cosine similarity, ties by insertion order."""

    @abstractmethod
    def delete_by_document(self, document_id: str) -> int:
        """Remove every item of a document; returns how many were removed."""

    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def document_ids(self) -> list[str]:
        ...


def unit_vector(vector: Sequence[float], dimensions: Optional[int] = None) -> np.ndarray:
    """
    Validate and normalize a vector for storage or querying.

    Raises:
        InvalidInput: On wrong dimensionality, zero length or non-finite values.
    """
    array = np.asarray(vector, dtype=np.float32)
    if array.ndim != 1 or array.size == 0:
        raise InvalidInput("Vector must be a non-empty 1-d sequence of floats")
    if dimensions is not None and array.size != dimensions:
        raise InvalidInput(
            f"Vector has {array.size} dimensions, index expects {dimensions}"
        )
    norm = float(np.linalg.norm(array))
    if norm == 0.0 or not np.isfinite(norm):
        raise InvalidInput("Vector must be finite and non-zero")
    return array / norm


@dataclass(frozen=True)
class _Snapshot:
    """
    Consistent view of the index.

    Only the first `count` rows/entries are valid. Writers may append past
    `count` in the shared buffers but never touch rows below it.
    """
    matrix: np.ndarray
    ids: list[str]
    metadata: list[ItemMetadata]
    count: int


class LocalVectorIndex(VectorIndex):
    """
    Exact, file-backed vector index.

    Pass persist_directory=None for a purely in-memory index (tests,
    throwaway sessions).
    """

    def __init__(self, persist_directory: Optional[str] = None):
        self.persist_directory = Path(persist_directory) if persist_directory else None
        self._lock = threading.Lock()
        self._snapshot: Optional[_Snapshot] = None
        self._dimensions: Optional[int] = None
        self._log_records = 0

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    @property
    def dimensions(self) -> Optional[int]:
        return self._dimensions

    @property
    def manifest_path(self) -> Optional[Path]:
        return self.persist_directory / MANIFEST_FILE if self.persist_directory else None

    @property
    def items_path(self) -> Optional[Path]:
        return self.persist_directory / ITEMS_FILE if self.persist_directory else None

    def is_initialized(self) -> bool:
        return self._snapshot is not None

    def ensure_initialized(self) -> None:
        with self._lock:
            if self._snapshot is not None:
                return

            if self.persist_directory is None:
                self._snapshot = _empty_snapshot()
                return

            try:
                self.persist_directory.mkdir(parents=True, exist_ok=True)
                if self.manifest_path.exists():
                    self._open_existing()
                    return
                self._write_manifest()
                self.items_path.touch()
            except (OSError, ValueError, KeyError, TypeError) as e:
                raise StorageIOError(
                    "Failed to initialize vector index",
                    path=str(self.persist_directory),
                    original_error=e,
                ) from e

            self._snapshot = _empty_snapshot()
            logger.info("Created vector index at %s", self.persist_directory)

    def _open_existing(self) -> None:
        manifest = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        version = manifest.get("format_version")
        if version != FORMAT_VERSION:
            raise StorageIOError(
                f"Unsupported index format version: {version}",
                path=str(self.manifest_path),
            )
        self._dimensions = manifest.get("dimensions")

        ids: list[str] = []
        metadata: list[ItemMetadata] = []
        vectors: list[list[float]] = []
        records = self._replay_log()
        for position, record in enumerate(records):
            try:
                if record["op"] == "insert":
                    meta = ItemMetadata.model_validate(record["metadata"])
                    ids.append(str(record["id"]))
                    metadata.append(meta)
                    vectors.append(list(record["vector"]))
                elif record["op"] == "delete":
                    keep = [i for i, meta in enumerate(metadata) if meta.document_id != record["document_id"]]
                    ids = [ids[i] for i in keep]
                    metadata = [metadata[i] for i in keep]
                    vectors = [vectors[i] for i in keep]
            except (KeyError, TypeError, ValueError) as e:
                raise StorageIOError(
                    f"Malformed index log record {position + 1}",
                    path=str(self.items_path),
                    original_error=e,
                ) from e

        if vectors and self._dimensions is None:
            self._dimensions = len(vectors[0])

        capacity = max(_INITIAL_CAPACITY, len(vectors))
        matrix = np.zeros((capacity, self._dimensions or 0), dtype=np.float32)
        if vectors:
            matrix[: len(vectors)] = np.asarray(vectors, dtype=np.float32)

        snapshot = _Snapshot(matrix=matrix, ids=ids, metadata=metadata, count=len(ids))
        self._log_records = len(records)
        self._maybe_compact(snapshot)
        self._snapshot = snapshot
        logger.info(
            "Opened vector index at %s (%d items)", self.persist_directory, len(ids)
        )

    def _replay_log(self) -> list[dict]:
        """Read the operation log, cutting off a torn trailing record."""
        records: list[dict] = []
        if not self.items_path.exists():
            return records

        with self.items_path.open("rb+") as handle:
            lines = handle.readlines()
            offset = 0
            for position, raw in enumerate(lines):
                is_last = position == len(lines) - 1
                try:
                    if not raw.endswith(b"\n"):
                        raise ValueError("unterminated record")
                    text = raw.decode("utf-8").strip()
                    if text:
                        records.append(json.loads(text))
                except ValueError as e:
                    if not is_last:
                        raise StorageIOError(
                            f"Corrupted index log record at line {position + 1}",
                            path=str(self.items_path),
                            original_error=e,
                        ) from e
                    logger.warning(
                        "Dropping incomplete trailing record in %s", self.items_path
                    )
                    handle.truncate(offset)
                    break
                offset += len(raw)

        return records

    def _write_manifest(self) -> None:
        payload = {
            "format_version": FORMAT_VERSION,
            "dimensions": self._dimensions,
            "created_at": datetime.utcnow().isoformat(),
        }
        if self.manifest_path.exists():
            existing = json.loads(self.manifest_path.read_text(encoding="utf-8"))
            payload["created_at"] = existing.get("created_at", payload["created_at"])
        _atomic_write(self.manifest_path, json.dumps(payload, indent=2))

    # -------------------------------------------------------------------------
    # Mutation (single writer)
    # -------------------------------------------------------------------------

    def insert(self, item: IndexedItem) -> str:
        self._require_snapshot()
        with self._lock:
            snapshot = self._snapshot
            vector = unit_vector(item.vector, self._dimensions)
            item_id = uuid.uuid4().hex

            first_vector = self._dimensions is None
            if first_vector:
                self._dimensions = int(vector.size)

            try:
                if self.persist_directory is not None:
                    if first_vector:
                        self._write_manifest()
                    self._append_record({
                        "op": "insert",
                        "id": item_id,
                        "vector": vector.tolist(),
                        "metadata": item.metadata.model_dump(mode="json"),
                    })
                    self._log_records += 1
            except OSError as e:
                if first_vector:
                    self._dimensions = None
                raise StorageIOError(
                    "Failed to persist index item",
                    path=str(self.items_path),
                    original_error=e,
                ) from e

            matrix = snapshot.matrix
            if first_vector or snapshot.count >= matrix.shape[0]:
                capacity = max(_INITIAL_CAPACITY, matrix.shape[0] * 2)
                grown = np.zeros((capacity, self._dimensions), dtype=np.float32)
                if snapshot.count:
                    grown[: snapshot.count] = matrix[: snapshot.count]
                matrix = grown
            matrix[snapshot.count] = vector

            ids = snapshot.ids
            metadata = snapshot.metadata
            # Readers only look at the first `count` entries, so appending
            # to the shared lists is invisible until the new snapshot lands.
            del ids[snapshot.count:]
            del metadata[snapshot.count:]
            ids.append(item_id)
            metadata.append(item.metadata)

            self._snapshot = _Snapshot(
                matrix=matrix, ids=ids, metadata=metadata, count=snapshot.count + 1
            )
            return item_id

    def delete_by_document(self, document_id: str) -> int:
        self._require_snapshot()
        with self._lock:
            snapshot = self._snapshot
            keep = [
                i for i in range(snapshot.count)
                if snapshot.metadata[i].document_id != document_id
            ]
            removed = snapshot.count - len(keep)
            if removed == 0:
                return 0

            try:
                if self.persist_directory is not None:
                    self._append_record({"op": "delete", "document_id": document_id})
                    self._log_records += 1
            except OSError as e:
                raise StorageIOError(
                    "Failed to persist document deletion",
                    path=str(self.items_path),
                    original_error=e,
                ) from e

            # Fresh buffers: in-flight searches keep reading the old ones.
            matrix = np.zeros_like(snapshot.matrix)
            matrix[: len(keep)] = snapshot.matrix[keep]
            self._snapshot = _Snapshot(
                matrix=matrix,
                ids=[snapshot.ids[i] for i in keep],
                metadata=[snapshot.metadata[i] for i in keep],
                count=len(keep),
            )
            self._maybe_compact(self._snapshot)
            logger.info("Removed %d items of document %s", removed, document_id)
            return removed

    def compact(self) -> None:
        """Rewrite the log so it only holds live items."""
        self._require_snapshot()
        if self.persist_directory is None:
            return
        with self._lock:
            self._rewrite_log(self._snapshot)

    def _maybe_compact(self, snapshot: _Snapshot) -> None:
        if self.persist_directory is None:
            return
        dead = self._log_records - snapshot.count
        if dead >= COMPACT_MIN_DEAD_RECORDS and dead > snapshot.count:
            logger.info("Compacting index log (%d dead records)", dead)
            self._rewrite_log(snapshot)

    def _rewrite_log(self, snapshot: _Snapshot) -> None:
        lines = []
        for i in range(snapshot.count):
            lines.append(json.dumps({
                "op": "insert",
                "id": snapshot.ids[i],
                "vector": snapshot.matrix[i].tolist(),
                "metadata": snapshot.metadata[i].model_dump(mode="json"),
            }, ensure_ascii=False))
        content = "".join(line + "\n" for line in lines)
        try:
            _atomic_write(self.items_path, content)
        except OSError as e:
            raise StorageIOError(
                "Failed to compact index log",
                path=str(self.items_path),
                original_error=e,
            ) from e
        self._log_records = snapshot.count

    def _append_record(self, record: dict) -> None:
        line = json.dumps(record, ensure_ascii=False) + "\n"
        with self.items_path.open("a", encoding="utf-8") as handle:
            handle.write(line)
            handle.flush()
            os.fsync(handle.fileno())

    # -------------------------------------------------------------------------
    # Queries (lock-free)
    # -------------------------------------------------------------------------

    def search(self, query_vector: Sequence[float], k: int) -> list[SearchHit]:
        snapshot = self._require_snapshot()
        if k <= 0 or snapshot.count == 0:
            return []

        query = unit_vector(query_vector, self._dimensions)
        scores = snapshot.matrix[: snapshot.count] @ query
        np.clip(scores, -1.0, 1.0, out=scores)

        # Stable sort keeps earlier insertions first among equal scores.
        order = np.argsort(-scores, kind="stable")[:k]
        return [
            SearchHit.from_metadata(snapshot.metadata[i], float(scores[i]))
            for i in order
        ]

    def count(self) -> int:
        return self._require_snapshot().count

    def document_ids(self) -> list[str]:
        snapshot = self._require_snapshot()
        return sorted({snapshot.metadata[i].document_id for i in range(snapshot.count)})

    def get_items(self, document_id: str) -> list[tuple[str, ItemMetadata]]:
        """(id, metadata) pairs of a document in insertion order."""
        snapshot = self._require_snapshot()
        return [
            (snapshot.ids[i], snapshot.metadata[i])
            for i in range(snapshot.count)
            if snapshot.metadata[i].document_id == document_id
        ]

    def _require_snapshot(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise IndexUninitialized()
        return snapshot


def _empty_snapshot() -> _Snapshot:
    return _Snapshot(matrix=np.zeros((0, 0), dtype=np.float32), ids=[], metadata=[], count=0)


def _atomic_write(path: Path, content: str) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        handle.write(content)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(tmp_path, path)

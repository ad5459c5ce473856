"""
ChromaDB-backed VectorIndex

Alternative backend for when the collection outgrows exact search and an
approximate HNSW index is preferable. Same contract as LocalVectorIndex,
with two backend-specific details:
- Items carry an insertion sequence number in their metadata so that
  equal scores can still be ordered by insertion.
- Chroma ranks approximately; exact top-k is only guaranteed by
  LocalVectorIndex.
"""

import logging
import threading
import uuid
from typing import Optional, Sequence

import chromadb

from localbot.exceptions import IndexUninitialized, StorageIOError

from .index import VectorIndex, unit_vector
from .models import IndexedItem, ItemMetadata, SearchHit

logger = logging.getLogger(__name__)

_SEQ_KEY = "seq"


class ChromaVectorIndex(VectorIndex):
    def __init__(
        self,
        persist_directory: str,
        collection_name: str = "documents",
        chroma_client: Optional[chromadb.ClientAPI] = None,
    ):
        self.persist_directory = persist_directory
        self.collection_name = collection_name
        self._client = chroma_client
        self._collection = None
        self._next_seq = 0
        self._dimensions: Optional[int] = None
        self._lock = threading.Lock()

    def is_initialized(self) -> bool:
        return self._collection is not None

    def ensure_initialized(self) -> None:
        with self._lock:
            if self._collection is not None:
                return
            try:
                if self._client is None:
                    self._client = chromadb.PersistentClient(path=self.persist_directory)
                collection = self._client.get_or_create_collection(
                    name=self.collection_name,
                    metadata={"hnsw:space": "cosine"},
                )
                existing = collection.get(include=["metadatas", "embeddings"], limit=1)
                seqs = collection.get(include=["metadatas"])["metadatas"] or []
            except Exception as e:
                raise StorageIOError(
                    "Failed to open Chroma collection",
                    path=self.persist_directory,
                    original_error=e,
                ) from e

            if existing["ids"]:
                self._dimensions = len(existing["embeddings"][0])
            self._next_seq = max((int(m.get(_SEQ_KEY, 0)) for m in seqs), default=-1) + 1
            self._collection = collection
            logger.info(
                "Opened Chroma collection '%s' (%d items)",
                self.collection_name, len(seqs),
            )

    def insert(self, item: IndexedItem) -> str:
        collection = self._require_collection()
        with self._lock:
            vector = unit_vector(item.vector, self._dimensions)
            item_id = uuid.uuid4().hex
            meta = item.metadata
            try:
                collection.add(
                    ids=[item_id],
                    embeddings=[vector.tolist()],
                    documents=[meta.content],
                    metadatas=[{
                        "document_id": meta.document_id,
                        "document_name": meta.document_name,
                        "chunk_index": meta.chunk_index,
                        _SEQ_KEY: self._next_seq,
                    }],
                )
            except Exception as e:
                raise StorageIOError(
                    "Failed to add item to Chroma collection",
                    path=self.persist_directory,
                    original_error=e,
                ) from e
            self._next_seq += 1
            if self._dimensions is None:
                self._dimensions = int(vector.size)
            return item_id

    def search(self, query_vector: Sequence[float], k: int) -> list[SearchHit]:
        collection = self._require_collection()
        total = collection.count()
        if k <= 0 or total == 0:
            return []

        query = unit_vector(query_vector, self._dimensions)
        raw = collection.query(
            query_embeddings=[query.tolist()],
            n_results=min(k, total),
            include=["documents", "metadatas", "distances"],
        )
        if not raw["ids"] or not raw["ids"][0]:
            return []

        ranked = []
        for i in range(len(raw["ids"][0])):
            meta = raw["metadatas"][0][i]
            score = min(1.0, max(-1.0, 1.0 - float(raw["distances"][0][i])))
            hit = SearchHit.from_metadata(
                ItemMetadata(
                    document_id=meta["document_id"],
                    document_name=meta.get("document_name", ""),
                    content=raw["documents"][0][i] or "",
                    chunk_index=int(meta["chunk_index"]),
                ),
                score,
            )
            ranked.append((-score, int(meta.get(_SEQ_KEY, 0)), hit))

        ranked.sort(key=lambda entry: (entry[0], entry[1]))
        return [hit for _, _, hit in ranked]

    def delete_by_document(self, document_id: str) -> int:
        collection = self._require_collection()
        with self._lock:
            try:
                found = collection.get(where={"document_id": document_id}, include=[])
                ids = found["ids"]
                if ids:
                    collection.delete(ids=ids)
            except Exception as e:
                raise StorageIOError(
                    "Failed to delete document from Chroma collection",
                    path=self.persist_directory,
                    original_error=e,
                ) from e
        if ids:
            logger.info("Removed %d items of document %s", len(ids), document_id)
        return len(ids)

    def count(self) -> int:
        return self._require_collection().count()

    def document_ids(self) -> list[str]:
        metadatas = self._require_collection().get(include=["metadatas"])["metadatas"] or []
        return sorted({m["document_id"] for m in metadatas if "document_id" in m})

    def _require_collection(self):
        if self._collection is None:
            raise IndexUninitialized()
        return self._collection

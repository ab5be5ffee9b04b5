# src/portfolio_chat/core/knowledge.py
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from portfolio_chat.core.ports import IBlobStore

logger = logging.getLogger(__name__)

KNOWLEDGE_KEY = "knowledge-base/embeddings.json"


@dataclass(frozen=True)
class KnowledgeRecord:
    text: str
    embedding: Tuple[float, ...]
    source: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> "KnowledgeRecord":
        if "text" not in raw or "embedding" not in raw:
            raise ValueError(f"record missing text/embedding: keys={sorted(raw)}")
        return cls(
            text=str(raw["text"]),
            embedding=tuple(float(x) for x in raw["embedding"]),
            source=str(raw.get("source") or ""),
        )

    def to_dict(self) -> dict:
        return {"text": self.text, "embedding": list(self.embedding), "source": self.source}


def decode_records(raw: Any) -> Tuple[KnowledgeRecord, ...]:
    if not isinstance(raw, list):
        raise ValueError(f"expected a JSON array of records, got {type(raw).__name__}")
    return tuple(KnowledgeRecord.from_dict(r) for r in raw)


class KnowledgeCache:
    """
    Process-wide memo of the knowledge-base records.

    Successful loads are kept for the life of the process; failures are not,
    so the next call retries. Concurrent cold-start callers share one load.
    """

    def __init__(self, blob_store: Optional[IBlobStore], key: str = KNOWLEDGE_KEY):
        self.blob_store = blob_store
        self.key = key
        self._records: Optional[Tuple[KnowledgeRecord, ...]] = None
        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None

    @property
    def loaded(self) -> bool:
        return self._records is not None

    def invalidate(self) -> None:
        with self._lock:
            self._records = None

    def get_or_load(self) -> Optional[Sequence[KnowledgeRecord]]:
        records = self._records
        if records is not None:
            return records

        with self._lock:
            if self._records is not None:
                return self._records
            fut = self._inflight
            leader = fut is None
            if leader:
                fut = self._inflight = Future()

        if not leader:
            return fut.result()

        records = None
        try:
            records = self._load()
        finally:
            with self._lock:
                if records is not None:
                    self._records = records
                self._inflight = None
            fut.set_result(records)
        return records

    def _load(self) -> Optional[Tuple[KnowledgeRecord, ...]]:
        if self.blob_store is None:
            logger.warning("[kb] no knowledge bucket configured; skipping load")
            return None
        try:
            records = decode_records(self.blob_store.get_json(self.key))
        except Exception:
            logger.exception("[kb] failed to load %s", self.key)
            return None
        logger.info("[kb] loaded %d records from %s", len(records), self.key)
        return records

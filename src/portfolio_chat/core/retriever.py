# src/portfolio_chat/core/retriever.py
import logging
from typing import List, Sequence, Tuple

import numpy as np

from portfolio_chat.core.knowledge import KnowledgeCache, KnowledgeRecord
from portfolio_chat.core.ports import IEmbedder

logger = logging.getLogger(__name__)

TOP_K = 3

NO_KNOWLEDGE_MESSAGE = "No knowledge base information available."
NO_MATCH_MESSAGE = "No relevant information found."


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|); 0.0 if either vector is all zeros."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.ndim != 1 or va.shape != vb.shape:
        raise ValueError(f"dim mismatch: {va.shape} vs {vb.shape}")
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def rank(q_vec: Sequence[float], records: Sequence[KnowledgeRecord], k: int = TOP_K) -> List[Tuple[float, KnowledgeRecord]]:
    scored = [(cosine_similarity(q_vec, r.embedding), r) for r in records]
    # stable: equal scores keep cache order
    scored.sort(key=lambda x: x[0], reverse=True)
    return scored[:k]


class Retriever:
    def __init__(self, cache: KnowledgeCache, embedder: IEmbedder, k: int = TOP_K):
        self.cache = cache
        self.embedder = embedder
        self.k = k

    def search_knowledge(self, query: str) -> str:
        """Top-k knowledge chunks for `query`, joined by blank lines. Always returns a string."""
        records = self.cache.get_or_load()
        if not records:
            return NO_KNOWLEDGE_MESSAGE

        try:
            q_vec = self.embedder.embed(query)
            hits = rank(q_vec, records, self.k)
        except Exception as e:
            logger.exception("[retrieve] search failed for query=%r", query[:80])
            return f"Error searching knowledge base: {e}"

        logger.info("[retrieve] scores=%s sources=%s",
                    [round(s, 4) for s, _ in hits], [r.source for _, r in hits])
        joined = "\n\n".join(r.text for _, r in hits)
        return joined if joined.strip() else NO_MATCH_MESSAGE

# src/portfolio_chat/adapters/embeddings_bedrock.py
import json
import re
import time

import boto3
from botocore.config import Config

_WS = re.compile(r"\s+")


class BedrockEmbedder:
    """
    Supports Titan (amazon.titan-embed-text-v1 / v2:0) and Cohere (cohere.embed-english-v3 / cohere.embed-multilingual-v3).
    - Titan: one text per call -> we loop.
    - Cohere v3: accepts batch -> one call per batch.
    Queries and documents are embedded with the matching Cohere input_type.
    """
    def __init__(self, model_id: str = "amazon.titan-embed-text-v1", region: str | None = None,
                 timeout_sec: float = 10, max_retries: int = 2, client=None):
        self.model_id = model_id
        self.client = client or boto3.client(
            "bedrock-runtime",
            region_name=region,
            config=Config(
                connect_timeout=timeout_sec,
                read_timeout=timeout_sec,
                retries={"max_attempts": max_retries, "mode": "standard"},
            ),
        )

    def _invoke(self, body: dict) -> dict:
        resp = self.client.invoke_model(
            modelId=self.model_id,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(body),
        )
        return json.loads(resp["body"].read().decode("utf-8"))

    def _is_cohere(self) -> bool:
        return self.model_id.startswith("cohere.")

    @staticmethod
    def _scrub(text: str) -> str:
        scrubbed = _WS.sub(" ", text or "").strip()
        if not scrubbed:
            raise ValueError("cannot embed empty text")
        return scrubbed

    def embed(self, text: str) -> list[float]:
        """Embed a single search query."""
        text = self._scrub(text)
        if self._is_cohere():
            out = self._invoke({"texts": [text], "input_type": "search_query"})
            return self._cohere_vectors(out)[0]
        return self._invoke({"inputText": text})["embedding"]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed knowledge-base chunks (offline ingest)."""
        if not texts:
            return []
        texts = [self._scrub(t) for t in texts]
        if self._is_cohere():
            return self._cohere_vectors(self._invoke({"texts": texts, "input_type": "search_document"}))

        vecs: list[list[float]] = []
        for t in texts:
            vecs.append(self._invoke({"inputText": t})["embedding"])
            # tiny sleep to be gentle with rate limits
            time.sleep(0.01)
        return vecs

    @staticmethod
    def _cohere_vectors(out: dict) -> list[list[float]]:
        embs = out.get("embeddings") or []
        # response is either a list of vectors or {"float": [...]} for typed requests
        if isinstance(embs, dict):
            embs = embs.get("float") or []
        if not embs:
            raise RuntimeError("cohere response contained no embeddings")
        return [list(e) for e in embs]

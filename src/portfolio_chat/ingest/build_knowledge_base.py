# src/portfolio_chat/ingest/build_knowledge_base.py
"""
Offline batch job: chunk the documents under --docs-dir, embed every chunk and
write the knowledge-base JSON array (text, embedding, source) that the chat
handler loads from S3.

    python -m portfolio_chat.ingest.build_knowledge_base --docs-dir docs --upload-s3
"""
import argparse
import json
import sys
import traceback
from pathlib import Path
from typing import Dict, List

from portfolio_chat.core.config import AppConfig
from portfolio_chat.ingest.loaders import SUPPORTED, read_text, split_chunks


def _make_embedder(cfg: AppConfig, provider: str | None, model_id: str | None):
    provider = (provider or cfg.embed_provider).lower()
    if provider == "local":
        from portfolio_chat.adapters.embeddings_local import LocalEmbedder
        model = model_id or cfg.local_embed_model
        print(f"[embed] provider=local  model={model}")
        return LocalEmbedder(model)
    from portfolio_chat.adapters.embeddings_bedrock import BedrockEmbedder
    model = model_id or cfg.embed_model_id
    print(f"[embed] provider=bedrock model={model} region={cfg.bedrock_region}")
    return BedrockEmbedder(model_id=model, region=cfg.bedrock_region,
                           timeout_sec=cfg.embed_timeout_sec, max_retries=cfg.max_retries)


def _discover_files(root: Path) -> List[Path]:
    return sorted(p for p in root.iterdir()
                  if p.is_file() and not p.name.startswith(".") and p.suffix.lower() in SUPPORTED)


def build_records(docs_dir: Path, embedder, batch: int = 16) -> List[Dict]:
    records: List[Dict] = []
    files = _discover_files(docs_dir)
    print(f"[ingest] found {len(files)} files in {docs_dir}")
    for fp in files:
        try:
            raw = read_text(fp)
        except Exception as e:
            print(f"[warn] error reading {fp.name}: {e}")
            continue
        chunks = split_chunks(raw or "")
        if not chunks:
            print(f"[warn] skipping empty file: {fp.name}")
            continue
        print(f"[ingest] {fp.name}: {len(chunks)} chunks")
        for i in range(0, len(chunks), batch):
            part = chunks[i:i + batch]
            vecs = embedder.embed_documents(part)
            for j, (text, vec) in enumerate(zip(part, vecs), start=i + 1):
                records.append({
                    "text": text,
                    "embedding": [float(x) for x in vec],
                    "source": f"{fp.name} (chunk {j})",
                })
    return records


def main(argv=None):
    cfg = AppConfig()
    p = argparse.ArgumentParser(description="Build the chat knowledge base (embeddings JSON).")
    p.add_argument("--docs-dir", required=True, help="Directory with .txt/.md/.pdf documents.")
    p.add_argument("--out", default="knowledge-base.json", help="Local output file.")
    p.add_argument("--provider", choices=["local", "bedrock"], default=None, help="Embedding provider override.")
    p.add_argument("--model-id", default=None, help="Embedding model id override.")
    p.add_argument("--batch", type=int, default=16)
    p.add_argument("--upload-s3", action="store_true",
                   help="Upload to s3://$KNOWLEDGE_BUCKET/$KNOWLEDGE_KEY after writing.")
    args = p.parse_args(argv)

    try:
        docs_dir = Path(args.docs_dir)
        if not docs_dir.is_dir():
            raise FileNotFoundError(f"docs directory not found: {docs_dir}")
        records = build_records(docs_dir, _make_embedder(cfg, args.provider, args.model_id), args.batch)

        out = Path(args.out)
        out.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
        print(f"[ingest] wrote {len(records)} records -> {out}")

        if args.upload_s3:
            if not cfg.knowledge_bucket:
                raise ValueError("--upload-s3 was set but KNOWLEDGE_BUCKET env var is empty.")
            from portfolio_chat.adapters.blob_s3 import S3BlobStore
            S3BlobStore(cfg.knowledge_bucket, region=cfg.aws_region).put_json(cfg.knowledge_key, records)
            print(f"[s3] uploaded -> s3://{cfg.knowledge_bucket}/{cfg.knowledge_key}")
    except Exception as e:
        print("[ingest] FAILED:", e, file=sys.stderr)
        traceback.print_exc()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

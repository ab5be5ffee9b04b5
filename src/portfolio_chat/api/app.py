# src/portfolio_chat/api/app.py
import base64
import json
import logging
import time

import boto3
import botocore
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

import portfolio_chat.core.config as cfgmod
from portfolio_chat.core.knowledge import KnowledgeCache
from portfolio_chat.core.orchestrator import ERROR_MESSAGE, ChatOrchestrator
from portfolio_chat.core.retriever import Retriever
from portfolio_chat.core.settings import load_bot_config
from portfolio_chat.core.tools import build_registry

# ------------------ Config ------------------
config = cfgmod.AppConfig()

# ------------------ Globals ------------------
_chat: ChatOrchestrator | None = None
_cache: KnowledgeCache | None = None
_init_error: str | None = None

logging.getLogger().setLevel(logging.INFO)
if not logging.getLogger().handlers:
    logging.getLogger().addHandler(logging.StreamHandler())
logger = logging.getLogger("portfolio_chat.api")


# ------------------ Chat init ------------------
def _make_embedder(cfg: cfgmod.AppConfig):
    if cfg.embed_provider == "local":
        from portfolio_chat.adapters.embeddings_local import LocalEmbedder
        return LocalEmbedder(cfg.local_embed_model)
    from portfolio_chat.adapters.embeddings_bedrock import BedrockEmbedder
    return BedrockEmbedder(model_id=cfg.embed_model_id, region=cfg.bedrock_region,
                           timeout_sec=cfg.embed_timeout_sec, max_retries=cfg.max_retries)


def build_orchestrator(cfg: cfgmod.AppConfig) -> tuple[ChatOrchestrator, KnowledgeCache]:
    from portfolio_chat.adapters.llm_bedrock import BedrockClaude

    blob_store = None
    if cfg.knowledge_bucket:
        from portfolio_chat.adapters.blob_s3 import S3BlobStore
        blob_store = S3BlobStore(cfg.knowledge_bucket, region=cfg.aws_region,
                                 timeout_sec=cfg.s3_timeout_sec, max_retries=cfg.max_retries)
    else:
        logger.warning("[init] KNOWLEDGE_BUCKET not set; settings use defaults and knowledge is unavailable")

    project_store = None
    if cfg.projects_table:
        from portfolio_chat.adapters.projects_ddb import DynamoProjectStore
        project_store = DynamoProjectStore(cfg.projects_table, region=cfg.aws_region,
                                           timeout_sec=cfg.s3_timeout_sec)

    cache = KnowledgeCache(blob_store, key=cfg.knowledge_key)
    retriever = Retriever(cache, _make_embedder(cfg))
    registry = build_registry(retriever, about_me_text=cfg.about_me_text, project_store=project_store)
    llm = BedrockClaude(
        model_id=cfg.llm_model_id,
        region=cfg.bedrock_region,
        max_tokens=cfg.max_tokens,
        temperature=cfg.temperature,
        timeout_sec=cfg.llm_timeout_sec,
        max_retries=cfg.max_retries,
    )
    logger.info("[init] llm=%s embed=%s/%s tools=%s",
                cfg.llm_model_id, cfg.embed_provider, cfg.embed_model_id, registry.names)
    chat = ChatOrchestrator(
        llm=llm,
        tools=registry,
        settings_loader=lambda: load_bot_config(blob_store, cfg.settings_key),
        max_workers=cfg.tool_workers,
    )
    return chat, cache


def _init_chat():
    """Build the pipeline once per process; never crash Lambda init."""
    global _chat, _cache, _init_error
    if _chat is not None:
        return
    try:
        _chat, _cache = build_orchestrator(config)
        _init_error = None
    except Exception:
        logger.exception("[init] failed")
        _init_error = "Initialization failed"


def run_chat(message: str) -> str:
    _init_chat()
    if _chat is None:
        return ERROR_MESSAGE
    t0 = time.perf_counter()
    reply, stats = _chat.handle_message_with_stats(message or "")
    logger.info("[telemetry] %s", json.dumps({
        "latency_ms": round((time.perf_counter() - t0) * 1000.0, 1),
        "model_calls": stats.model_calls,
        "tools": stats.tool_calls,
        "knowledge_loaded": bool(_cache and _cache.loaded),
        "error": stats.error,
    }))
    return reply


def health() -> dict:
    _init_chat()
    resp = {"ok": True, "chat_ready": _chat is not None, "knowledge_loaded": bool(_cache and _cache.loaded)}
    if _init_error:
        resp["error"] = _init_error
    return resp


# ------------------ Lambda glue ------------------
def _json(status: int, body: dict):
    return {"statusCode": status, "headers": {"Content-Type": "application/json"},
            "body": json.dumps(body, ensure_ascii=False)}


def _text(status: int, body: str):
    return {"statusCode": status, "headers": {"Content-Type": "text/plain; charset=utf-8"}, "body": body}


def _http_payload(event: dict) -> dict:
    body_str = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            body_str = base64.b64decode(body_str).decode("utf-8", "ignore")
        except Exception:
            body_str = ""
    try:
        payload = json.loads(body_str) if body_str else {}
    except Exception:
        payload = {}
    return payload if isinstance(payload, dict) else {}


def handler(event, context):
    """
    Entry point. Accepts
      - AppSync resolver events:  {"arguments": {"message": "..."}}  -> reply string
      - direct invokes:           {"message": "..."}                 -> reply string
      - API Gateway HTTP API v2:  GET /health, POST /chat ({"message": "..."})
    """
    logger.info("boto3=%s, botocore=%s", boto3.__version__, botocore.__version__)
    event = event or {}

    if "arguments" in event:
        return run_chat((event.get("arguments") or {}).get("message") or "")

    if "rawPath" not in event and "httpMethod" not in event:
        return run_chat(event.get("message") or "")

    try:
        path = event.get("rawPath") or event.get("path") or "/"
        method = (event.get("requestContext", {}).get("http", {}).get("method")
                  or event.get("httpMethod") or "GET").upper()

        if method == "GET" and path.endswith("/health"):
            return _json(200, health())

        if method == "POST" and path.endswith("/chat"):
            payload = _http_payload(event)
            return _text(200, run_chat(payload.get("message") or ""))

        return _json(404, {"detail": "Not Found"})
    except Exception:
        logger.exception("[api] unhandled error")
        return _json(500, {"message": "Internal Server Error"})


# ------------------ Local FastAPI (dev) ------------------
app = FastAPI() if not config.is_lambda else None

if app:
    @app.get("/health")
    async def _health():
        return JSONResponse(status_code=200, content=health())

    @app.post("/chat")
    async def _chat_route(request: Request):
        try:
            payload = await request.json()
        except Exception:
            payload = {}
        message = payload.get("message") if isinstance(payload, dict) else ""
        return PlainTextResponse(run_chat(message or ""))

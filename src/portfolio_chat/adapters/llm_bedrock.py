# src/portfolio_chat/adapters/llm_bedrock.py
import json
import logging
from typing import Any, Dict, Sequence

import boto3
from botocore.config import Config

from portfolio_chat.core.messages import ConversationMessage, ModelResponse, block_from_wire

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"


class BedrockClaude:
    """Claude on Bedrock via invoke_model (Anthropic Messages API with tools)."""

    def __init__(
        self,
        model_id: str,
        region: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.2,
        timeout_sec: float = 45,
        max_retries: int = 2,
        client=None,
    ):
        if not model_id:
            raise ValueError("model_id is required")
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or boto3.client(
            "bedrock-runtime",
            region_name=region,
            config=Config(
                connect_timeout=min(timeout_sec, 10),
                read_timeout=timeout_sec,
                retries={"max_attempts": max_retries, "mode": "standard"},
            ),
        )

    def build_body(self, system: str, messages: Sequence[ConversationMessage],
                   tools: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        body = {
            "anthropic_version": ANTHROPIC_VERSION,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": system,
            "messages": [m.to_wire() for m in messages],
        }
        if tools:
            body["tools"] = list(tools)
        return body

    def complete(self, system: str, messages: Sequence[ConversationMessage],
                 tools: Sequence[Dict[str, Any]]) -> ModelResponse:
        body = self.build_body(system, messages, tools)
        resp = self.client.invoke_model(
            modelId=self.model_id,
            body=json.dumps(body).encode("utf-8"),
            contentType="application/json",
            accept="application/json",
        )
        out = json.loads(resp["body"].read())
        if out.get("type") == "error":
            raise RuntimeError(f"bedrock error: {out.get('error')}")
        usage = out.get("usage") or {}
        logger.info("[llm] stop_reason=%s in=%s out=%s",
                    out.get("stop_reason"), usage.get("input_tokens"), usage.get("output_tokens"))
        return ModelResponse(
            stop_reason=out.get("stop_reason") or "end_turn",
            content=tuple(block_from_wire(b) for b in out.get("content", [])),
        )

# src/portfolio_chat/core/settings.py
import logging
from dataclasses import dataclass, fields, replace
from typing import Optional

from portfolio_chat.core.ports import IBlobStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "knowledge-base/bot-settings.json"


@dataclass(frozen=True)
class BotSettings:
    preferred_name: str = "ScottBot"
    fallback_phrase: str = "Information for this question is not available."
    restrictions: str = "Avoid controversial topics. Do not use profanity."
    instructions: str = "Be helpful and professional."


DEFAULT_SETTINGS = BotSettings()

# blob is written by the admin dashboard, which uses camelCase keys
_WIRE_KEYS = {
    "preferredName": "preferred_name",
    "fallbackPhrase": "fallback_phrase",
    "restrictions": "restrictions",
    "instructions": "instructions",
}


def merge_settings(raw: dict, base: BotSettings = DEFAULT_SETTINGS) -> BotSettings:
    """Shallow-merge known keys of a decoded settings blob over `base`."""
    known = {f.name for f in fields(BotSettings)}
    updates = {}
    for key, value in raw.items():
        attr = _WIRE_KEYS.get(key, key)
        if attr in known and value is not None:
            updates[attr] = str(value)
    return replace(base, **updates)


def load_bot_config(blob_store: Optional[IBlobStore], key: str = SETTINGS_KEY) -> BotSettings:
    """
    Read bot personality settings from blob storage.
    Never raises: any failure is logged and the static defaults are returned.
    """
    if blob_store is None:
        logger.warning("[settings] no blob store configured; using defaults")
        return DEFAULT_SETTINGS
    try:
        raw = blob_store.get_json(key)
        if not isinstance(raw, dict):
            raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
        return merge_settings(raw)
    except Exception as e:
        logger.warning("[settings] could not load %s (%s); using defaults", key, e)
        return DEFAULT_SETTINGS

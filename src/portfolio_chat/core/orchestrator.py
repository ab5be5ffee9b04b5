# src/portfolio_chat/core/orchestrator.py
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from portfolio_chat.core.messages import (
    ConversationMessage,
    ModelResponse,
    ToolResultBlock,
    ToolUseBlock,
    user_text,
)
from portfolio_chat.core.ports import ILLM
from portfolio_chat.core.settings import BotSettings
from portfolio_chat.core.tools import ToolRegistry

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Sorry, I encountered an error while thinking. Please check my logs."

SYSTEM_TEMPLATE = """
You are {name}, the assistant on a personal portfolio website. You answer visitors' questions about the portfolio owner.

Instructions: {instructions}
Restrictions: {restrictions}

Rules
- Use the available tools to look up facts before answering questions about the owner's experience, skills, education, goals or projects.
- Only state facts that appear in tool output. Do not fabricate facts, dates, employers or links, and do not fill gaps with general knowledge.
- If the tools return nothing relevant, or you cannot find the answer, reply with exactly: "{fallback}"
- If the request violates the restrictions above, reply with exactly: "{fallback}"
- Keep answers concise, professional and friendly.
""".strip()


def build_system_prompt(settings: BotSettings) -> str:
    return SYSTEM_TEMPLATE.format(
        name=settings.preferred_name,
        instructions=settings.instructions,
        restrictions=settings.restrictions,
        fallback=settings.fallback_phrase,
    )


@dataclass
class TurnStats:
    model_calls: int = 0
    tool_calls: List[str] = field(default_factory=list)
    error: str | None = None


class ChatOrchestrator:
    """
    One chat turn: prompt -> model -> (optional single tool round -> model) -> text.
    """

    def __init__(
        self,
        llm: ILLM,
        tools: ToolRegistry,
        settings_loader: Callable[[], BotSettings],
        max_workers: int = 4,
    ):
        self.llm = llm
        self.tools = tools
        self.settings_loader = settings_loader
        self.max_workers = max(1, max_workers)

    def handle_message(self, user_msg: str) -> str:
        """Terminal handler: never raises, always returns the reply text."""
        reply, _ = self.handle_message_with_stats(user_msg)
        return reply

    def handle_message_with_stats(self, user_msg: str) -> Tuple[str, TurnStats]:
        """Like `handle_message`, plus the stats of this turn only."""
        stats = TurnStats()
        t0 = time.perf_counter()
        try:
            return self._run_turn(user_msg, stats), stats
        except Exception as e:
            logger.exception("[chat] turn failed")
            stats.error = str(e)[:500]
            return ERROR_MESSAGE, stats
        finally:
            logger.info("[chat] done in %.1f ms model_calls=%d tools=%s",
                        (time.perf_counter() - t0) * 1000.0, stats.model_calls, stats.tool_calls)

    def _run_turn(self, user_msg: str, stats: TurnStats) -> str:
        settings = self.settings_loader()
        system = build_system_prompt(settings)
        schemas = self.tools.schemas()
        messages: List[ConversationMessage] = [user_text(user_msg)]

        logger.info("[chat] received message: %s", user_msg[:200])
        response = self._complete(system, messages, schemas, stats)
        if not response.wants_tools:
            return self._reply_text(response, settings)

        tool_uses = response.tool_uses
        stats.tool_calls.extend(t.name for t in tool_uses)
        results = self._run_tools(tool_uses)

        messages.append(ConversationMessage(role="assistant", content=response.content))
        messages.append(ConversationMessage(
            role="user",
            content=tuple(ToolResultBlock(tool_use_id=t.id, content=results[t.id]) for t in tool_uses),
        ))

        final = self._complete(system, messages, schemas, stats)
        if final.wants_tools:
            logger.warning("[chat] second response requested tools again; not serviced")
        return self._reply_text(final, settings)

    def _complete(self, system, messages, schemas, stats: TurnStats) -> ModelResponse:
        stats.model_calls += 1
        return self.llm.complete(system, messages, schemas)

    def _run_tools(self, tool_uses: List[ToolUseBlock]) -> Dict[str, str]:
        if len(tool_uses) == 1:
            t = tool_uses[0]
            return {t.id: self.tools.execute(t.name, t.input)}
        workers = min(self.max_workers, len(tool_uses))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {t.id: pool.submit(self.tools.execute, t.name, t.input) for t in tool_uses}
            return {tid: f.result() for tid, f in futures.items()}

    @staticmethod
    def _reply_text(response: ModelResponse, settings: BotSettings) -> str:
        text = response.first_text()
        if text is None or not text.strip():
            logger.warning("[chat] model returned no text (stop_reason=%s)", response.stop_reason)
            return settings.fallback_phrase
        return text

# tests/test_orchestrator.py
import threading

from conftest import FakeBlobStore, FakeEmbedder, ScriptedLLM, text_response, tool_response
from portfolio_chat.core.knowledge import KNOWLEDGE_KEY, KnowledgeCache
from portfolio_chat.core.messages import ModelResponse, TextBlock, ToolResultBlock, ToolUseBlock
from portfolio_chat.core.orchestrator import ERROR_MESSAGE, ChatOrchestrator, build_system_prompt
from portfolio_chat.core.retriever import Retriever
from portfolio_chat.core.settings import DEFAULT_SETTINGS, BotSettings
from portfolio_chat.core.tools import TOOL_NOT_FOUND, build_registry


def _orchestrator(llm, kb_records, settings=DEFAULT_SETTINGS, **registry_kw):
    cache = KnowledgeCache(FakeBlobStore({KNOWLEDGE_KEY: kb_records}))
    retriever = Retriever(cache, FakeEmbedder(default=[1.0, 0.0]))
    registry = build_registry(retriever, **registry_kw)
    return ChatOrchestrator(llm, registry, settings_loader=lambda: settings)


def _tool_results(call):
    last = call["messages"][-1]
    assert last.role == "user"
    return {b.tool_use_id: b.content for b in last.content if isinstance(b, ToolResultBlock)}


def test_direct_answer_uses_one_model_call(kb_records):
    llm = ScriptedLLM(text_response("Hello there!"))
    chat = _orchestrator(llm, kb_records)

    assert chat.handle_message("hi") == "Hello there!"
    assert len(llm.calls) == 1
    first = llm.calls[0]
    assert [m.role for m in first["messages"]] == ["user"]
    assert first["messages"][0].content == (TextBlock("hi"),)
    assert [t["name"] for t in first["tools"]] == ["search_knowledge"]


def test_tool_round_makes_exactly_two_calls(kb_records):
    llm = ScriptedLLM(
        tool_response(("tu_1", "search_knowledge", {"query": "skills"})),
        text_response("Scott knows A."),
    )
    chat = _orchestrator(llm, kb_records)

    assert chat.handle_message("What are his skills?") == "Scott knows A."
    assert len(llm.calls) == 2

    second = llm.calls[1]
    assert [m.role for m in second["messages"]] == ["user", "assistant", "user"]
    assistant = second["messages"][1]
    assert ToolUseBlock(id="tu_1", name="search_knowledge", input={"query": "skills"}) in assistant.content
    assert _tool_results(second) == {"tu_1": "A\n\nB"}
    assert second["system"] == llm.calls[0]["system"]
    assert second["tools"] == llm.calls[0]["tools"]
    assert chat.last_stats.tool_calls == ["search_knowledge"]


def test_unknown_tool_is_fed_back_not_raised(kb_records):
    llm = ScriptedLLM(
        tool_response(("tu_9", "bogus_tool", {})),
        text_response("I could not look that up."),
    )
    chat = _orchestrator(llm, kb_records)

    assert chat.handle_message("do something odd") == "I could not look that up."
    assert _tool_results(llm.calls[1]) == {"tu_9": TOOL_NOT_FOUND}


def test_multiple_tool_calls_matched_by_id(kb_records):
    llm = ScriptedLLM(
        tool_response(
            ("a", "search_knowledge", {"query": "x"}),
            ("b", "bogus_tool", {}),
            ("c", "about_me", {}),
        ),
        text_response("done"),
    )
    chat = _orchestrator(llm, kb_records, about_me_text="Loves hiking.")

    assert chat.handle_message("tell me everything") == "done"
    results = _tool_results(llm.calls[1])
    assert results == {"a": "A\n\nB", "b": TOOL_NOT_FOUND, "c": "Loves hiking."}
    order = [b.tool_use_id for b in llm.calls[1]["messages"][-1].content]
    assert order == ["a", "b", "c"]


def test_model_failure_returns_error_message(kb_records):
    llm = ScriptedLLM(RuntimeError("throttled"))
    chat = _orchestrator(llm, kb_records)

    assert chat.handle_message("hi") == ERROR_MESSAGE
    assert chat.last_stats.error == "throttled"


def test_second_model_failure_returns_error_message(kb_records):
    llm = ScriptedLLM(
        tool_response(("tu_1", "search_knowledge", {"query": "x"})),
        TimeoutError("read timeout"),
    )
    assert _orchestrator(llm, kb_records).handle_message("hi") == ERROR_MESSAGE


def test_settings_failure_returns_error_message(kb_records):
    llm = ScriptedLLM(text_response("unused"))
    chat = _orchestrator(llm, kb_records)

    def boom():
        raise RuntimeError("settings exploded")

    chat.settings_loader = boom
    assert chat.handle_message("hi") == ERROR_MESSAGE
    assert llm.calls == []


def test_no_third_round_trip(kb_records):
    second = ModelResponse(
        stop_reason="tool_use",
        content=(TextBlock("Partial answer."), ToolUseBlock(id="t2", name="search_knowledge", input={"query": "y"})),
    )
    llm = ScriptedLLM(tool_response(("t1", "search_knowledge", {"query": "x"})), second)

    assert _orchestrator(llm, kb_records).handle_message("q") == "Partial answer."
    assert len(llm.calls) == 2


def test_missing_text_block_yields_fallback_phrase(kb_records):
    settings = BotSettings(fallback_phrase="Nothing to say.")
    llm = ScriptedLLM(ModelResponse(stop_reason="end_turn", content=()))
    assert _orchestrator(llm, kb_records, settings=settings).handle_message("q") == "Nothing to say."


def test_tool_use_stop_without_blocks_is_direct(kb_records):
    llm = ScriptedLLM(ModelResponse(stop_reason="tool_use", content=(TextBlock("plain"),)))
    assert _orchestrator(llm, kb_records).handle_message("q") == "plain"
    assert len(llm.calls) == 1


def test_system_prompt_carries_settings():
    settings = BotSettings(
        preferred_name="Robo",
        fallback_phrase="I can't say.",
        restrictions="No politics.",
        instructions="Be upbeat.",
    )
    prompt = build_system_prompt(settings)
    assert "You are Robo" in prompt
    assert "No politics." in prompt
    assert "Be upbeat." in prompt
    assert prompt.count('"I can\'t say."') == 2
    assert "Do not fabricate" in prompt


def test_system_prompt_uses_loaded_settings(kb_records):
    llm = ScriptedLLM(text_response("ok"))
    chat = _orchestrator(llm, kb_records, settings=BotSettings(preferred_name="Pat"))
    chat.handle_message("hi")
    assert "You are Pat" in llm.calls[0]["system"]


class _GatedLLM:
    """'slow' turns block until released, then fail; other turns answer at once."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def complete(self, system, messages, tools):
        if messages[0].content[0].text == "slow":
            self.entered.set()
            assert self.release.wait(5)
            raise RuntimeError("slow failed")
        return text_response("fast answer")


def test_overlapping_turns_keep_their_own_stats(kb_records):
    llm = _GatedLLM()
    chat = _orchestrator(llm, kb_records)
    out = {}

    def run(msg):
        out[msg] = chat.handle_message_with_stats(msg)

    slow = threading.Thread(target=run, args=("slow",))
    slow.start()
    assert llm.entered.wait(5)
    run("fast")
    llm.release.set()
    slow.join(5)

    slow_reply, slow_stats = out["slow"]
    fast_reply, fast_stats = out["fast"]
    assert slow_reply == ERROR_MESSAGE
    assert slow_stats.error == "slow failed"
    assert fast_reply == "fast answer"
    assert fast_stats.error is None
    assert fast_stats is not slow_stats
    assert not hasattr(chat, "last_stats")

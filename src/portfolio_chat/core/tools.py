# src/portfolio_chat/core/tools.py
"""
Tool schemas declared to the model and the name -> handler dispatch table.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from portfolio_chat.core.ports import IProjectStore
from portfolio_chat.core.retriever import Retriever

logger = logging.getLogger(__name__)

TOOL_NOT_FOUND = "Tool not found."

ToolHandler = Callable[[Dict[str, Any]], str]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: Dict[str, Any]

    def to_wire(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "input_schema": self.input_schema}


SEARCH_KNOWLEDGE = ToolDefinition(
    name="search_knowledge",
    description=(
        "Search the knowledge base built from the portfolio owner's resume and documents. "
        "Use this for any question about work history, education, skills, or projects."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "What to look up, phrased as a search query."},
        },
        "required": ["query"],
    },
)

ABOUT_ME = ToolDefinition(
    name="about_me",
    description="Get general facts, personal and professional goals, and the objective statement of the portfolio owner.",
    input_schema={"type": "object", "properties": {}},
)

LIST_PROJECTS = ToolDefinition(
    name="list_projects",
    description="List portfolio projects from the database. Can filter by skill.",
    input_schema={
        "type": "object",
        "properties": {
            "skill": {"type": "string", "description": "Filter projects by a specific skill (e.g. 'React')."},
        },
    },
)


class ToolRegistry:
    def __init__(self):
        self._defs: List[ToolDefinition] = []
        self._handlers: Dict[str, ToolHandler] = {}

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        if definition.name in self._handlers:
            raise ValueError(f"tool already registered: {definition.name}")
        self._defs.append(definition)
        self._handlers[definition.name] = handler

    @property
    def names(self) -> List[str]:
        return [d.name for d in self._defs]

    def schemas(self) -> List[Dict[str, Any]]:
        return [d.to_wire() for d in self._defs]

    def execute(self, name: str, tool_input: Optional[Dict[str, Any]]) -> str:
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("[tool] unknown tool requested: %s", name)
            return TOOL_NOT_FOUND
        logger.info("[tool] executing %s input=%s", name, tool_input)
        try:
            return handler(tool_input or {})
        except Exception as e:
            logger.exception("[tool] %s failed", name)
            return f"Error running tool {name}: {e}"


def _list_projects_handler(store: IProjectStore) -> ToolHandler:
    def run(tool_input: Dict[str, Any]) -> str:
        projects = store.list_projects(skill=tool_input.get("skill") or None)
        if not projects:
            return "No matching projects found."
        return json.dumps(projects, ensure_ascii=False)
    return run


def build_registry(
    retriever: Retriever,
    about_me_text: str = "",
    project_store: Optional[IProjectStore] = None,
) -> ToolRegistry:
    reg = ToolRegistry()
    reg.register(SEARCH_KNOWLEDGE, lambda inp: retriever.search_knowledge(str(inp.get("query") or "")))
    if about_me_text.strip():
        reg.register(ABOUT_ME, lambda inp: about_me_text)
    if project_store is not None:
        reg.register(LIST_PROJECTS, _list_projects_handler(project_store))
    return reg

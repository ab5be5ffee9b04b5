from typing import Any, Dict, List, Optional, Protocol, Sequence

from portfolio_chat.core.messages import ConversationMessage, ModelResponse


class IEmbedder(Protocol):
    def embed(self, text: str) -> List[float]: ...


class ILLM(Protocol):
    def complete(
        self,
        system: str,
        messages: Sequence[ConversationMessage],
        tools: Sequence[Dict[str, Any]],
    ) -> ModelResponse: ...


class IBlobStore(Protocol):
    def get_json(self, key: str) -> Any: ...
    def put_json(self, key: str, value: Any) -> None: ...


class IProjectStore(Protocol):
    def list_projects(self, skill: Optional[str] = None) -> List[Dict[str, Any]]: ...

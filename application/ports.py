from typing import Any, Dict, Protocol


class ToolInvoker(Protocol):
    def invoke(self, tool_name: str, args: Dict[str, Any]) -> Any:
        """Call a named store operation; raise InvokerError on failure."""
        ...


class AgentChannel(Protocol):
    def send(self, message: str) -> str:
        ...

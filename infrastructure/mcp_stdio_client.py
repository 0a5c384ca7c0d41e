"""Tool invoker speaking newline-delimited JSON-RPC 2.0 to a stdio MCP server."""

import json
import logging
import subprocess
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from core import InvokerError
from infrastructure.server_discovery import find_server_path

logger = logging.getLogger("tddpro.invoker")

PROTOCOL_VERSION = "2024-11-05"
CLIENT_INFO = {"name": "tddpro-tui", "version": "0.1.0"}


def json_rpc_request(id: Optional[int], method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    msg: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if id is not None:
        msg["id"] = id
    if params is not None:
        msg["params"] = params
    return msg


def parse_tool_result(tool: str, result: Any) -> Any:
    """Unwrap `{"content":[{"type":"text","text":...}],"isError":bool}` into a value."""
    if not isinstance(result, dict):
        raise InvokerError(f"{tool}: malformed result", tool=tool)
    content = result.get("content") or []
    text = ""
    if isinstance(content, list) and content and isinstance(content[0], dict):
        text = str(content[0].get("text", "") or "")
    if result.get("isError"):
        raise InvokerError(text or f"{tool} failed", tool=tool)
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError as exc:
        raise InvokerError(f"{tool}: response is not JSON", tool=tool) from exc


class StdioToolInvoker:
    """Spawn the server per call, handshake, call one tool, shut it down."""

    def __init__(
        self,
        server_path: Optional[Path] = None,
        timeout: float = 30.0,
        command_factory: Optional[Callable[[Path], List[str]]] = None,
    ) -> None:
        self._server_path = server_path
        self.timeout = timeout
        self.command_factory = command_factory or (lambda path: [str(path)])

    @property
    def server_path(self) -> Path:
        if self._server_path is None:
            self._server_path = find_server_path()
        return self._server_path

    def invoke(self, tool_name: str, args: Dict[str, Any]) -> Any:
        command = self.command_factory(self.server_path)
        try:
            proc = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
            )
        except OSError as exc:
            raise InvokerError(f"cannot start {command[0]}: {exc}", tool=tool_name) from exc

        watchdog = threading.Timer(self.timeout, proc.kill)
        watchdog.daemon = True
        watchdog.start()
        try:
            self._send(proc, json_rpc_request(1, "initialize", {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": CLIENT_INFO,
            }))
            self._await(proc, 1, tool_name)
            self._send(proc, json_rpc_request(None, "notifications/initialized"))
            self._send(proc, json_rpc_request(2, "tools/call", {"name": tool_name, "arguments": args}))
            result = self._await(proc, 2, tool_name)
        finally:
            watchdog.cancel()
            self._shutdown(proc)
        return parse_tool_result(tool_name, result)

    @staticmethod
    def _send(proc: subprocess.Popen, message: Dict[str, Any]) -> None:
        try:
            proc.stdin.write(json.dumps(message, ensure_ascii=False) + "\n")
            proc.stdin.flush()
        except (BrokenPipeError, OSError) as exc:
            raise InvokerError(f"server closed the pipe: {exc}") from exc

    @staticmethod
    def _await(proc: subprocess.Popen, request_id: int, tool: str) -> Any:
        while True:
            line = proc.stdout.readline()
            if not line:
                raise InvokerError(f"{tool}: server exited without a response", tool=tool)
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except ValueError:
                logger.debug("skipping non-JSON server output: %s", line[:120])
                continue
            if not isinstance(message, dict) or message.get("id") != request_id:
                continue
            error = message.get("error")
            if error:
                text = error.get("message") if isinstance(error, dict) else str(error)
                raise InvokerError(f"{tool}: {text}", tool=tool)
            return message.get("result")

    @staticmethod
    def _shutdown(proc: subprocess.Popen) -> None:
        try:
            if proc.stdin:
                proc.stdin.close()
        except OSError:
            pass
        try:
            proc.wait(timeout=2)
        except subprocess.TimeoutExpired:
            logger.warning("MCP server did not exit; killing pid %s", proc.pid)
            proc.kill()
            proc.wait()


__all__ = ["StdioToolInvoker", "parse_tool_result", "json_rpc_request"]

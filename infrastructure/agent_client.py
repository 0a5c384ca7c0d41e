"""Coaching-agent channel: SSE session plus JSON-RPC `tasks/send` posts."""

import json
import logging
import threading
from typing import Any, Iterator, Optional

import requests

from core import InvokerError

logger = logging.getLogger("tddpro.agent")

DEFAULT_AGENT_ID = "tddAgent"


class AgentClientError(InvokerError):
    pass


def normalize_base_url(api_url: str) -> str:
    url = (api_url or "").strip().rstrip("/")
    if url and "://" not in url:
        url = f"http://{url}"
    return url


def extract_session_id(line: str) -> Optional[str]:
    if not line.startswith("data:") or "sessionId=" not in line:
        return None
    return line.split("sessionId=", 1)[1].strip() or None


def extract_reply(line: str) -> Optional[str]:
    if not line.startswith("data:"):
        return None
    try:
        event = json.loads(line[len("data:"):].strip())
    except ValueError:
        return None
    if not isinstance(event, dict):
        return None
    messages = (event.get("result") or {}).get("messages") if isinstance(event.get("result"), dict) else None
    if not isinstance(messages, list) or not messages:
        return None
    first = messages[0]
    if not isinstance(first, dict):
        return None
    return str(first.get("content", ""))


class AgentClient:
    def __init__(
        self,
        api_url: str,
        session: Optional[requests.Session] = None,
        agent_id: str = DEFAULT_AGENT_ID,
        timeout: int = 120,
    ) -> None:
        self.base_url = normalize_base_url(api_url)
        self.session = session or requests.Session()
        self.agent_id = agent_id
        self.timeout = timeout
        self.session_id: Optional[str] = None
        self._stream: Optional[requests.Response] = None
        self._lines: Optional[Iterator[str]] = None
        # One stream per client; concurrent sends would interleave replies.
        self._lock = threading.Lock()

    def open(self) -> None:
        try:
            self._stream = self.session.get(f"{self.base_url}/sse", stream=True, timeout=self.timeout)
        except requests.RequestException as exc:
            raise AgentClientError(f"agent network error: {exc}", tool="sse") from exc
        if self._stream.status_code >= 400:
            raise AgentClientError(f"agent error: HTTP {self._stream.status_code}", tool="sse")
        self._lines = self._stream.iter_lines(decode_unicode=True)
        line = self._next_line()
        while line is not None:
            session_id = extract_session_id(line)
            if session_id:
                self.session_id = session_id
                return
            line = self._next_line()
        raise AgentClientError("agent stream closed before a session id arrived", tool="sse")

    def _post(self, message: str) -> None:
        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": "1",
            "method": "tasks/send",
            "params": {"agentId": self.agent_id, "messages": [{"role": "user", "content": message}]},
        }
        try:
            response = self.session.post(
                f"{self.base_url}/message",
                params={"sessionId": self.session_id},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AgentClientError(f"agent network error: {exc}", tool="tasks/send") from exc
        if response.status_code >= 400:
            raise AgentClientError(f"agent error: {response.status_code} {response.text}", tool="tasks/send")

    def _next_line(self) -> Optional[str]:
        """Next stream line, or None once the stream is exhausted. The iterator stays open between sends."""
        assert self._lines is not None
        try:
            return next(self._lines, None)
        except requests.RequestException as exc:
            raise AgentClientError(f"agent stream error: {exc}", tool="sse") from exc

    def _listen(self) -> str:
        line = self._next_line()
        while line is not None:
            reply = extract_reply(line)
            if reply is not None:
                return reply
            line = self._next_line()
        raise AgentClientError("no reply received from agent stream", tool="sse")

    def send(self, message: str) -> str:
        """Post one message and wait for its reply; a broken stream is dropped so the next send reconnects."""
        with self._lock:
            try:
                if self._lines is None:
                    self.open()
                self._post(message)
                return self._listen()
            except AgentClientError:
                logger.info("resetting agent stream after failure")
                self.close()
                raise

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
        self._stream = None
        self._lines = None
        self.session_id = None

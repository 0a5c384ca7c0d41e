import json

import pytest
import requests

from infrastructure.agent_client import (
    AgentClient,
    AgentClientError,
    extract_reply,
    extract_session_id,
    normalize_base_url,
)


def reply_line(content):
    return "data: " + json.dumps({"result": {"messages": [{"role": "assistant", "content": content}]}})


class FakeResponse:
    def __init__(self, lines=(), status_code=200, text=""):
        self._lines = list(lines)
        self.status_code = status_code
        self.text = text
        self.closed = False

    def iter_lines(self, decode_unicode=False):
        return iter(self._lines)

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, stream, post_response=None):
        self.stream = stream
        self.post_response = post_response or FakeResponse()
        self.gets = []
        self.posts = []

    def get(self, url, **kwargs):
        self.gets.append(url)
        if isinstance(self.stream, list):
            return self.stream.pop(0)
        return self.stream

    def post(self, url, **kwargs):
        self.posts.append((url, kwargs))
        return self.post_response


def test_normalize_base_url():
    assert normalize_base_url("localhost:800/") == "http://localhost:800"
    assert normalize_base_url("https://agent.example") == "https://agent.example"


def test_extract_helpers():
    assert extract_session_id("data: /message?sessionId=abc") == "abc"
    assert extract_session_id("event: endpoint") is None
    assert extract_reply(reply_line("Hi")) == "Hi"
    assert extract_reply("data: not json") is None
    assert extract_reply('data: {"result": {}}') is None


def test_send_opens_session_posts_and_reads_reply():
    stream = FakeResponse(["event: endpoint", "data: /message?sessionId=abc", "", reply_line("Write a failing test first")])
    session = FakeSession(stream)
    client = AgentClient("localhost:800", session=session)

    assert client.send("how do I start?") == "Write a failing test first"
    assert session.gets == ["http://localhost:800/sse"]
    url, kwargs = session.posts[0]
    assert url == "http://localhost:800/message"
    assert kwargs["params"] == {"sessionId": "abc"}
    assert kwargs["json"]["method"] == "tasks/send"
    assert kwargs["json"]["params"]["agentId"] == "tddAgent"
    assert kwargs["json"]["params"]["messages"] == [{"role": "user", "content": "how do I start?"}]

    client.close()
    assert stream.closed
    assert client.session_id is None


def test_http_error_raises():
    session = FakeSession(FakeResponse(status_code=503))
    with pytest.raises(AgentClientError, match="503"):
        AgentClient("localhost:800", session=session).send("hi")


def test_stream_without_reply_raises():
    stream = FakeResponse(["data: /message?sessionId=abc"])
    with pytest.raises(AgentClientError, match="no reply"):
        AgentClient("localhost:800", session=FakeSession(stream)).send("hi")


def test_exhausted_stream_is_reopened_on_next_send():
    first = FakeResponse(["data: /message?sessionId=abc", reply_line("hi")])
    second = FakeResponse(["data: /message?sessionId=def", reply_line("again")])
    session = FakeSession([first, second])
    client = AgentClient("localhost:800", session=session)

    assert client.send("one") == "hi"
    with pytest.raises(AgentClientError, match="no reply"):
        client.send("two")
    assert first.closed
    assert client.session_id is None

    assert client.send("three") == "again"
    assert len(session.gets) == 2
    assert session.posts[-1][1]["params"] == {"sessionId": "def"}


class BrokenStream(FakeResponse):
    def iter_lines(self, decode_unicode=False):
        yield "data: /message?sessionId=abc"
        raise requests.ConnectionError("connection reset")


def test_stream_network_error_resets_channel():
    stream = BrokenStream()
    client = AgentClient("localhost:800", session=FakeSession(stream))
    with pytest.raises(AgentClientError, match="connection reset"):
        client.send("hi")
    assert stream.closed
    assert client.session_id is None

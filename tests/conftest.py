"""Pytest configuration and shared fixtures."""

import json

import httpx
import pytest

from serpent.config import SerpentSettings
from serpent.extractors.surface import NotebookSession, PageSurface

PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="


def make_settings(**overrides) -> SerpentSettings:
    """Settings with short deadlines, isolated from the environment and .env."""
    values = dict(
        bot_token="123:TEST",
        chat_id="42",
        api_base="https://api.telegram.test",
        request_timeout=1.0,
        cell_timeout=0.5,
        problem_timeout=0.8,
        remote_extract_timeout=0.3,
        handoff_retries=5,
        handoff_interval=0.01,
        clipboard_timeout=0.2,
    )
    values.update(overrides)
    return SerpentSettings(_env_file=None, **values)


class TelegramStub:
    """Fake Bot API behind ``httpx.MockTransport``. Records every call in order."""

    def __init__(self, responder=None):
        self.calls: list[tuple[str, httpx.Request]] = []
        self._responder = responder

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        self.calls.append((method, request))
        if self._responder is not None:
            return self._responder(method, request)
        if method == "getMe":
            return httpx.Response(200, json={"ok": True, "result": {"username": "serpent_bot", "first_name": "Serpent"}})
        return httpx.Response(200, json={"ok": True, "result": {"message_id": len(self.calls)}})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def texts(self) -> list[str]:
        return [json.loads(request.content)["text"] for method, request in self.calls if method == "sendMessage"]


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def telegram():
    return TelegramStub()


def code_cell(source, outputs=None) -> dict:
    return {"cell_type": "code", "source": source, "outputs": outputs or [], "metadata": {}}


CLASSIC_SHELL = '<html><body><div id="notebook-container"></div></body></html>'


@pytest.fixture
def classic_surface():
    notebook = NotebookSession(
        cells=[
            code_cell(["import math\n", "print(math.pi)"], [
                {"output_type": "stream", "name": "stdout", "text": ["3.141592653589793\n"]},
            ]),
            code_cell("x = 1"),
            code_cell("plot()", [
                {"output_type": "display_data", "data": {"image/png": PNG_B64 + "\n", "text/plain": "<Figure>"}},
            ]),
        ],
        selected_index=0,
    )
    return PageSurface(url="http://localhost:8888/notebooks/demo.ipynb", html=CLASSIC_SHELL, notebook=notebook)


CODEFORCES_HTML = """
<html><body>
<div class="problem-statement">
  <div class="header">
    <div class="title">A. Watermelon</div>
    <div class="time-limit"><div class="property-title">time limit per test</div>1 second</div>
    <div class="memory-limit"><div class="property-title">memory limit per test</div>64 megabytes</div>
  </div>
  <div><p>Pete and Billy bought a watermelon weighing w kilos.</p></div>
  <div class="input-specification"><div class="section-title">Input</div><p>The first line contains w.</p></div>
  <div class="output-specification"><div class="section-title">Output</div><p>Print YES or NO.</p></div>
  <div class="sample-tests">
    <div class="input"><pre>8</pre></div>
    <div class="output"><pre>YES</pre></div>
  </div>
  <div class="note"><div class="section-title">Note</div>For example, 2 and 6.</div>
</div>
</body></html>
"""


@pytest.fixture
def codeforces_surface():
    return PageSurface(url="https://codeforces.com/problemset/problem/4/A", html=CODEFORCES_HTML)

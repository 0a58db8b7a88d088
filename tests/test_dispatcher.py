"""Tests for the command dispatcher state machine."""

import asyncio
from unittest.mock import AsyncMock, call

import pytest

from serpent.dispatcher import (
    DEFAULT_KEYMAP,
    Command,
    CommandDispatcher,
    DispatcherState,
    KeyChord,
    Outcome,
)
from serpent.errors import EndpointRejected, NoContentAvailable, RelayTimeout
from serpent.extractors.base import ContentBundle, ProblemBundle
from serpent.extractors.surface import OpenDocument


class FakeContent:
    def __init__(self, notebook=True, cell=None, problem=None, delay=0.0):
        self.notebook = notebook
        self.cell = cell
        self.problem = problem
        self.delay = delay

    def is_notebook(self):
        return self.notebook

    async def fetch_cell(self):
        await asyncio.sleep(self.delay)
        return self.cell

    async def fetch_problem(self):
        await asyncio.sleep(self.delay)
        return self.problem


class FakeRelay:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def _record(self, *item):
        if self.error is not None:
            raise self.error
        self.sent.append(item)

    async def push_text(self, text):
        if not text:
            raise NoContentAvailable("Nothing to send")
        await self._record("text", text)

    async def push_image(self, base64_data, caption=None):
        await self._record("image", base64_data)

    async def push_document(self, content, filename=None):
        await self._record("document", content, filename)


class FakeClipboard:
    def __init__(self, delay=0.0):
        self.delay = delay
        self.text = None

    async def write(self, text):
        await asyncio.sleep(self.delay)
        self.text = text


CELL = ContentBundle(code="print(1)", outputs=["1\n"], images=["AAAA"])


def make_dispatcher(content=None, relay=None, **kwargs):
    return CommandDispatcher(content if content is not None else FakeContent(cell=CELL), relay or FakeRelay(), **kwargs)


# ── Send content ────────────────────────────────────────────

@pytest.mark.asyncio
async def test_send_cell_text_then_images():
    relay = FakeRelay()
    result = await make_dispatcher(relay=relay).invoke(Command.SEND_CONTENT)
    assert result.outcome is Outcome.SENT
    assert result.status == "Sent"
    assert relay.sent == [
        ("text", "<b>Code</b>\n<pre>print(1)</pre>\n\n<b>Output</b>\n<pre>1</pre>"),
        ("image", "AAAA"),
    ]


@pytest.mark.asyncio
async def test_send_problem_on_judge_page():
    relay = FakeRelay()
    content = FakeContent(notebook=False, problem=ProblemBundle("T", "a < b"))
    result = await make_dispatcher(content, relay).invoke(Command.SEND_CONTENT)
    assert result.outcome is Outcome.SENT
    assert relay.sent == [("text", "<pre>a &lt; b</pre>")]


@pytest.mark.asyncio
async def test_no_content_never_reaches_relay():
    relay = FakeRelay()
    dispatcher = make_dispatcher(FakeContent(cell=None), relay)
    result = await dispatcher.invoke(Command.SEND_CONTENT)
    assert result.outcome is Outcome.NO_CONTENT
    assert result.status == "No content"
    assert relay.sent == []
    assert dispatcher.state is DispatcherState.IDLE


@pytest.mark.asyncio
async def test_not_ready_without_bridge():
    dispatcher = CommandDispatcher(None, FakeRelay())
    for command in (Command.SEND_CONTENT, Command.SEND_OUTPUT, Command.COPY):
        assert (await dispatcher.invoke(command)).outcome is Outcome.NOT_READY


# ── Send output ─────────────────────────────────────────────

@pytest.mark.asyncio
async def test_send_output_only():
    relay = FakeRelay()
    result = await make_dispatcher(relay=relay).invoke(Command.SEND_OUTPUT)
    assert result.outcome is Outcome.SENT
    assert relay.sent == [("text", "<pre>1</pre>"), ("image", "AAAA")]


@pytest.mark.asyncio
async def test_send_output_images_only():
    relay = FakeRelay()
    content = FakeContent(cell=ContentBundle(code="plot()", images=["BBBB"]))
    assert (await make_dispatcher(content, relay).invoke(Command.SEND_OUTPUT)).outcome is Outcome.SENT
    assert relay.sent == [("image", "BBBB")]


@pytest.mark.asyncio
async def test_send_output_without_output():
    relay = FakeRelay()
    content = FakeContent(cell=ContentBundle(code="x = 1", outputs=["  "]))
    result = await make_dispatcher(content, relay).invoke(Command.SEND_OUTPUT)
    assert result.outcome is Outcome.NO_OUTPUT
    assert relay.sent == []


@pytest.mark.asyncio
async def test_send_output_on_judge_page_unsupported():
    content = FakeContent(notebook=False, problem=ProblemBundle("T", "b"))
    assert (await make_dispatcher(content).invoke(Command.SEND_OUTPUT)).outcome is Outcome.UNSUPPORTED


# ── Copy ────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_copy_cell_code():
    clipboard = FakeClipboard()
    relay = FakeRelay()
    result = await make_dispatcher(relay=relay, clipboard=clipboard).invoke(Command.COPY)
    assert result.outcome is Outcome.COPIED
    assert result.status == "Copied!"
    assert clipboard.text == "print(1)"
    assert relay.sent == []


@pytest.mark.asyncio
async def test_copy_problem_statement():
    clipboard = FakeClipboard()
    content = FakeContent(notebook=False, problem=ProblemBundle("T", "statement"))
    await make_dispatcher(content, clipboard=clipboard).invoke(Command.COPY)
    assert clipboard.text == "statement"


@pytest.mark.asyncio
async def test_copy_clipboard_timeout():
    dispatcher = make_dispatcher(clipboard=FakeClipboard(delay=1.0), clipboard_timeout=0.05)
    assert (await dispatcher.invoke(Command.COPY)).outcome is Outcome.TIMEOUT


@pytest.mark.asyncio
async def test_copy_without_clipboard():
    assert (await make_dispatcher().invoke(Command.COPY)).outcome is Outcome.UNSUPPORTED


# ── Send document ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_send_document():
    relay = FakeRelay()
    dispatcher = make_dispatcher(relay=relay, documents=lambda: OpenDocument("a.py", "print(2)\n"))
    assert (await dispatcher.invoke(Command.SEND_DOCUMENT)).outcome is Outcome.SENT
    assert relay.sent == [("document", "print(2)\n", "a.py")]


@pytest.mark.asyncio
async def test_send_document_empty():
    relay = FakeRelay()
    dispatcher = make_dispatcher(relay=relay, documents=lambda: OpenDocument("a.py", ""))
    assert (await dispatcher.invoke(Command.SEND_DOCUMENT)).outcome is Outcome.NO_CONTENT
    assert (await make_dispatcher().invoke(Command.SEND_DOCUMENT)).outcome is Outcome.UNSUPPORTED


# ── State machine ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_second_command_rejected_while_sending():
    relay = FakeRelay()
    dispatcher = make_dispatcher(FakeContent(cell=CELL, delay=0.05), relay, clipboard=FakeClipboard())

    first = asyncio.create_task(dispatcher.invoke(Command.SEND_CONTENT))
    await asyncio.sleep(0.01)
    assert dispatcher.state is DispatcherState.SENDING

    busy = await dispatcher.invoke(Command.COPY)
    assert busy.outcome is Outcome.BUSY
    assert busy.status == "Already sending"

    assert (await first).outcome is Outcome.SENT
    assert dispatcher.state is DispatcherState.IDLE
    assert len(relay.sent) == 2


@pytest.mark.asyncio
async def test_state_resets_after_relay_error():
    dispatcher = make_dispatcher(relay=FakeRelay(EndpointRejected("Forbidden")))
    result = await dispatcher.invoke(Command.SEND_CONTENT)
    assert result.outcome is Outcome.FAILED
    assert result.status == "Forbidden"
    assert dispatcher.state is DispatcherState.IDLE

    dispatcher.relay = FakeRelay()
    assert (await dispatcher.invoke(Command.SEND_CONTENT)).outcome is Outcome.SENT


@pytest.mark.asyncio
async def test_relay_timeout_reported():
    result = await make_dispatcher(relay=FakeRelay(RelayTimeout("slow"))).invoke(Command.SEND_CONTENT)
    assert result.outcome is Outcome.TIMEOUT
    assert result.status == "Timed out"


@pytest.mark.asyncio
async def test_unexpected_error_classified():
    class Exploding(FakeContent):
        async def fetch_cell(self):
            raise KeyError("boom")

    result = await make_dispatcher(Exploding()).invoke(Command.SEND_CONTENT)
    assert result.outcome is Outcome.FAILED
    assert "KeyError" in result.status


@pytest.mark.asyncio
async def test_status_callback_receives_every_result():
    statuses = []
    dispatcher = make_dispatcher(on_status=lambda r: statuses.append(r.status))
    await dispatcher.invoke(Command.SEND_CONTENT)
    await dispatcher.invoke(Command.COPY)
    assert statuses == ["Sent", "Not available here"]


# ── Keymap ──────────────────────────────────────────────────

def test_default_keymap():
    assert DEFAULT_KEYMAP[KeyChord("Semicolon", ctrl=True, shift=True)] is Command.SEND_CONTENT
    assert DEFAULT_KEYMAP[KeyChord("KeyC", ctrl=True, shift=True, alt=True)] is Command.COPY
    assert DEFAULT_KEYMAP[KeyChord("KeyO", ctrl=True, shift=True, alt=True)] is Command.SEND_OUTPUT
    assert DEFAULT_KEYMAP[KeyChord("KeyD", ctrl=True, shift=True, alt=True)] is Command.SEND_DOCUMENT


@pytest.mark.asyncio
async def test_handle_key():
    relay = FakeRelay()
    dispatcher = make_dispatcher(relay=relay)
    assert await dispatcher.handle_key(KeyChord("KeyX", ctrl=True)) is None
    result = await dispatcher.handle_key(KeyChord("KeyO", ctrl=True, shift=True, alt=True))
    assert result.command is Command.SEND_OUTPUT
    assert relay.sent[0] == ("text", "<pre>1</pre>")


@pytest.mark.asyncio
async def test_relay_called_once_per_image():
    relay = AsyncMock()
    content = FakeContent(cell=ContentBundle(code="x", images=["A1", "A2"]))
    result = await CommandDispatcher(content, relay).invoke(Command.SEND_CONTENT)

    assert result.outcome is Outcome.SENT
    relay.push_text.assert_awaited_once_with("<b>Code</b>\n<pre>x</pre>")
    assert relay.push_image.await_args_list == [call("A1"), call("A2")]
    relay.push_document.assert_not_awaited()


# ── Copy variants ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_copy_cell_with_output():
    clipboard = FakeClipboard()
    result = await make_dispatcher(clipboard=clipboard).invoke(Command.COPY_CELL)
    assert result.outcome is Outcome.COPIED
    assert clipboard.text == "--- Code ---\nprint(1)\n\n--- Output ---\n1\n[Image Output]"


@pytest.mark.asyncio
async def test_copy_cell_without_output():
    clipboard = FakeClipboard()
    content = FakeContent(cell=ContentBundle(code="x = 1"))
    await make_dispatcher(content, clipboard=clipboard).invoke(Command.COPY_CELL)
    assert clipboard.text == "--- Code ---\nx = 1"


@pytest.mark.asyncio
async def test_copy_output_only():
    clipboard = FakeClipboard()
    content = FakeContent(cell=ContentBundle(
        code="1/0", outputs=["ZeroDivisionError: division by zero\n"], images=["AAAA", "BBBB"],
    ))
    result = await make_dispatcher(content, clipboard=clipboard).invoke(Command.COPY_OUTPUT)
    assert result.outcome is Outcome.COPIED
    assert clipboard.text == "ZeroDivisionError: division by zero\n[Image Output]\n[Image Output]"


@pytest.mark.asyncio
async def test_copy_output_only_without_output():
    clipboard = FakeClipboard()
    content = FakeContent(cell=ContentBundle(code="x = 1", outputs=[" \n"]))
    result = await make_dispatcher(content, clipboard=clipboard).invoke(Command.COPY_OUTPUT)
    assert result.outcome is Outcome.NO_OUTPUT
    assert result.status == "No output"
    assert clipboard.text is None


@pytest.mark.asyncio
async def test_copy_variants_need_a_notebook():
    content = FakeContent(notebook=False, problem=ProblemBundle("T", "b"))
    dispatcher = make_dispatcher(content, clipboard=FakeClipboard())
    for command in (Command.COPY_CELL, Command.COPY_OUTPUT):
        assert (await dispatcher.invoke(command)).outcome is Outcome.UNSUPPORTED


@pytest.mark.asyncio
async def test_copy_variants_rejected_while_sending():
    dispatcher = make_dispatcher(FakeContent(cell=CELL, delay=0.05), clipboard=FakeClipboard())
    first = asyncio.create_task(dispatcher.invoke(Command.SEND_CONTENT))
    await asyncio.sleep(0.01)
    for command in (Command.COPY_CELL, Command.COPY_OUTPUT):
        assert (await dispatcher.invoke(command)).outcome is Outcome.BUSY
    await first
    assert (await dispatcher.invoke(Command.COPY_OUTPUT)).outcome is Outcome.COPIED

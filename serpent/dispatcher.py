"""Command dispatcher — binds user commands to bridge and relay calls.

Two states, Idle and Sending. Every command moves Idle → Sending on
entry and back to Idle when it finishes, whatever the outcome. A
command that arrives while Sending is rejected on the spot; nothing is
queued for later.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from .errors import NoContentAvailable, SerpentError, SerpentTimeout, classify_error
from .extractors.base import ContentBundle, ProblemBundle
from .extractors.surface import OpenDocument
from .relay.outbound import format_cell_message, format_output_message, format_problem_message

logger = logging.getLogger("serpent.dispatcher")

CLIPBOARD_TIMEOUT = 2.0


class DispatcherState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"


class Command(str, Enum):
    SEND_CONTENT = "send-content"
    SEND_OUTPUT = "send-output"
    COPY = "copy"
    COPY_CELL = "copy-cell"
    COPY_OUTPUT = "copy-output"
    SEND_DOCUMENT = "send-document"


class Outcome(str, Enum):
    SENT = "sent"
    COPIED = "copied"
    NO_CONTENT = "no-content"
    NO_OUTPUT = "no-output"
    UNSUPPORTED = "unsupported"
    BUSY = "busy"
    NOT_READY = "not-ready"
    TIMEOUT = "timeout"
    FAILED = "failed"

    @property
    def is_error(self) -> bool:
        return self is Outcome.FAILED


_STATUS_TEXT = {
    Outcome.SENT: "Sent",
    Outcome.COPIED: "Copied!",
    Outcome.NO_CONTENT: "No content",
    Outcome.NO_OUTPUT: "No output",
    Outcome.UNSUPPORTED: "Not available here",
    Outcome.BUSY: "Already sending",
    Outcome.NOT_READY: "Not ready",
    Outcome.TIMEOUT: "Timed out",
}


@dataclass
class CommandResult:
    command: Command
    outcome: Outcome
    detail: str = ""

    @property
    def status(self) -> str:
        """One line for the host's status area."""
        if self.outcome is Outcome.FAILED:
            return self.detail or "Failed"
        return _STATUS_TEXT[self.outcome]


@dataclass(frozen=True)
class KeyChord:
    code: str
    ctrl: bool = False
    shift: bool = False
    alt: bool = False


DEFAULT_KEYMAP: dict[KeyChord, Command] = {
    KeyChord("Semicolon", ctrl=True, shift=True): Command.SEND_CONTENT,
    KeyChord("KeyC", ctrl=True, shift=True, alt=True): Command.COPY,
    KeyChord("KeyO", ctrl=True, shift=True, alt=True): Command.SEND_OUTPUT,
    KeyChord("KeyD", ctrl=True, shift=True, alt=True): Command.SEND_DOCUMENT,
}


class ContentSource(Protocol):
    def is_notebook(self) -> bool: ...
    async def fetch_cell(self) -> Optional[ContentBundle]: ...
    async def fetch_problem(self) -> Optional[ProblemBundle]: ...


class Pusher(Protocol):
    async def push_text(self, text: str) -> None: ...
    async def push_image(self, base64_data: str, caption: Optional[str] = None) -> None: ...
    async def push_document(self, content: str, filename: Optional[str] = None) -> None: ...


class Clipboard(Protocol):
    async def write(self, text: str) -> None: ...


IMAGE_PLACEHOLDER = "[Image Output]"


def clipboard_output(bundle: ContentBundle) -> str:
    """Plain-text outputs, one placeholder line per image."""
    parts = [o.rstrip("\n") for o in bundle.outputs if o.strip()]
    parts.extend(IMAGE_PLACEHOLDER for _ in bundle.images)
    return "\n".join(parts).strip()


def clipboard_cell(bundle: ContentBundle) -> str:
    text = f"--- Code ---\n{bundle.code}"
    output = clipboard_output(bundle)
    if output:
        text += f"\n\n--- Output ---\n{output}"
    return text


StatusCallback = Callable[[CommandResult], None]
DocumentSource = Callable[[], Optional[OpenDocument]]


class CommandDispatcher:
    def __init__(
        self,
        content: Optional[ContentSource],
        relay: Pusher,
        clipboard: Optional[Clipboard] = None,
        documents: Optional[DocumentSource] = None,
        on_status: Optional[StatusCallback] = None,
        keymap: Optional[dict[KeyChord, Command]] = None,
        clipboard_timeout: float = CLIPBOARD_TIMEOUT,
    ):
        self.content = content
        self.relay = relay
        self.clipboard = clipboard
        self.documents = documents
        self.on_status = on_status
        self.keymap = keymap if keymap is not None else dict(DEFAULT_KEYMAP)
        self.clipboard_timeout = clipboard_timeout
        self._state = DispatcherState.IDLE
        self._handlers: dict[Command, Callable[[], Awaitable[Outcome]]] = {
            Command.SEND_CONTENT: self._send_content,
            Command.SEND_OUTPUT: self._send_output,
            Command.COPY: self._copy,
            Command.COPY_CELL: self._copy_cell,
            Command.COPY_OUTPUT: self._copy_output,
            Command.SEND_DOCUMENT: self._send_document,
        }

    @property
    def state(self) -> DispatcherState:
        return self._state

    async def invoke(self, command: Command) -> CommandResult:
        """Run one command. Never raises for delivery or extraction problems."""
        command = Command(command)
        if self._state is DispatcherState.SENDING:
            return self._report(CommandResult(command, Outcome.BUSY))

        self._state = DispatcherState.SENDING
        try:
            result = CommandResult(command, await self._handlers[command]())
        except NoContentAvailable:
            result = CommandResult(command, Outcome.NO_CONTENT)
        except SerpentTimeout:
            result = CommandResult(command, Outcome.TIMEOUT)
        except SerpentError as e:
            result = CommandResult(command, Outcome.FAILED, classify_error(e))
        except Exception as e:
            logger.exception(f"{command.value} failed unexpectedly")
            result = CommandResult(command, Outcome.FAILED, classify_error(e))
        finally:
            self._state = DispatcherState.IDLE
        return self._report(result)

    async def handle_key(self, chord: KeyChord) -> Optional[CommandResult]:
        """Invoke the command bound to ``chord``, if any."""
        command = self.keymap.get(chord)
        if command is None:
            return None
        return await self.invoke(command)

    def _report(self, result: CommandResult) -> CommandResult:
        log = logger.warning if result.outcome.is_error else logger.info
        log(f"{result.command.value}: {result.status}")
        if self.on_status is not None:
            try:
                self.on_status(result)
            except Exception:
                logger.exception("Status callback failed")
        return result

    # ── Commands ────────────────────────────────────────────

    async def _send_content(self) -> Outcome:
        if self.content is None:
            return Outcome.NOT_READY
        if self.content.is_notebook():
            bundle = await self.content.fetch_cell()
            if bundle is None:
                return Outcome.NO_CONTENT
            await self.relay.push_text(format_cell_message(bundle))
            await self._push_images(bundle)
            return Outcome.SENT

        problem = await self.content.fetch_problem()
        if problem is None:
            return Outcome.NO_CONTENT
        await self.relay.push_text(format_problem_message(problem))
        return Outcome.SENT

    async def _send_output(self) -> Outcome:
        if self.content is None:
            return Outcome.NOT_READY
        if not self.content.is_notebook():
            return Outcome.UNSUPPORTED
        bundle = await self.content.fetch_cell()
        if bundle is None:
            return Outcome.NO_CONTENT
        if not bundle.has_output:
            return Outcome.NO_OUTPUT
        text = format_output_message(bundle)
        if text:
            await self.relay.push_text(text)
        await self._push_images(bundle)
        return Outcome.SENT

    async def _copy(self) -> Outcome:
        if self.content is None:
            return Outcome.NOT_READY
        if self.clipboard is None:
            return Outcome.UNSUPPORTED
        if self.content.is_notebook():
            bundle = await self.content.fetch_cell()
            text = bundle.code if bundle is not None else None
        else:
            problem = await self.content.fetch_problem()
            text = problem.body if problem is not None else None
        if text is None:
            return Outcome.NO_CONTENT
        return await self._write_clipboard(text)

    async def _copy_cell(self) -> Outcome:
        if self.content is None:
            return Outcome.NOT_READY
        if self.clipboard is None or not self.content.is_notebook():
            return Outcome.UNSUPPORTED
        bundle = await self.content.fetch_cell()
        if bundle is None:
            return Outcome.NO_CONTENT
        return await self._write_clipboard(clipboard_cell(bundle))

    async def _copy_output(self) -> Outcome:
        if self.content is None:
            return Outcome.NOT_READY
        if self.clipboard is None or not self.content.is_notebook():
            return Outcome.UNSUPPORTED
        bundle = await self.content.fetch_cell()
        if bundle is None:
            return Outcome.NO_CONTENT
        output = clipboard_output(bundle)
        if not output:
            return Outcome.NO_OUTPUT
        return await self._write_clipboard(output)

    async def _write_clipboard(self, text: str) -> Outcome:
        try:
            await asyncio.wait_for(self.clipboard.write(text), self.clipboard_timeout)
        except asyncio.TimeoutError:
            return Outcome.TIMEOUT
        return Outcome.COPIED

    async def _send_document(self) -> Outcome:
        if self.documents is None:
            return Outcome.UNSUPPORTED
        document = self.documents()
        if document is None or not document.content:
            return Outcome.NO_CONTENT
        await self.relay.push_document(document.content, document.filename)
        return Outcome.SENT

    async def _push_images(self, bundle: ContentBundle) -> None:
        for image in bundle.images:
            await self.relay.push_image(image)

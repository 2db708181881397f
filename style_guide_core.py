from __future__ import annotations

import asyncio
import importlib
import inspect
import os
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol

SUCCESS_CLEAR_MS = 3000
DEFAULT_FILENAME = "style-guide.md"
BACKEND_ENV_VAR = "STYLE_GUIDE_BACKEND"

SEVERITY_LOADING = "loading"
SEVERITY_SUCCESS = "success"
SEVERITY_ERROR = "error"
SEVERITIES = (SEVERITY_LOADING, SEVERITY_SUCCESS, SEVERITY_ERROR)

STAGE_FETCH = "fetch"
STAGE_EXTRACT = "extract"
FETCH_FAILURE_MARKER = "Failed to fetch website"
EXTRACT_FAILURE_MARKER = "Failed to extract styles"

EMPTY_INPUT_MESSAGE = "Please enter a valid URL"
LOADING_MESSAGE = "Fetching website and extracting styles..."
EXTRACT_SUCCESS_MESSAGE = "Style guide generated successfully!"
DNS_FAILURE_MESSAGE = "Could not resolve the website URL. Please check the URL and try again."
TIMEOUT_MESSAGE = "Request timed out. The website might be slow or unreachable."
CONNECTION_FAILURE_MESSAGE = "Could not connect to the website. Please check your internet connection."
PARSE_FAILURE_MESSAGE = "Could not parse the website's HTML. The page structure might be unusual."
COPY_SUCCESS_MESSAGE = "Markdown copied to clipboard!"
COPY_FAILURE_MESSAGE = "Failed to copy to clipboard"
SAVE_SUCCESS_MESSAGE = "File saved successfully!"
SAVE_FAILURE_MESSAGE = "Failed to save file"

BackendCapability = Callable[[str], Any]
LogFn = Callable[[str], None]


class ErrorKind(Enum):
    EMPTY_INPUT = "EmptyInput"
    NETWORK_DNS = "NetworkDnsFailure"
    NETWORK_TIMEOUT = "NetworkTimeout"
    NETWORK_CONNECTION = "NetworkConnection"
    NETWORK_OTHER = "NetworkOther"
    PARSE_FAILURE = "ParseFailure"
    UNCLASSIFIED = "Unclassified"
    CLIPBOARD_FAILURE = "ClipboardFailure"
    FILE_SAVE_FAILURE = "FileSaveFailure"


class ExtractionError(Exception):
    """Backend failure, optionally tagged with the stage that failed."""

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage


class BackendLoadError(Exception):
    pass


@dataclass(frozen=True)
class StatusMessage:
    text: str
    severity: str


@dataclass(frozen=True)
class Classification:
    kind: ErrorKind
    message: str


EMPTY_INPUT = Classification(kind=ErrorKind.EMPTY_INPUT, message=EMPTY_INPUT_MESSAGE)
CLIPBOARD_FAILURE = Classification(kind=ErrorKind.CLIPBOARD_FAILURE, message=COPY_FAILURE_MESSAGE)
FILE_SAVE_FAILURE = Classification(kind=ErrorKind.FILE_SAVE_FAILURE, message=SAVE_FAILURE_MESSAGE)


@dataclass
class SessionState:
    url: str = ""
    document: str = ""
    request_in_flight: bool = False
    last_status: Optional[StatusMessage] = None


class Scheduler(Protocol):
    def after(self, ms: int, func: Callable[[], None]) -> str: ...

    def after_cancel(self, id: str) -> None: ...


class ExtractionView(Protocol):
    def set_busy(self, busy: bool) -> None: ...

    def show_document(self, text: str) -> None: ...

    def hide_document(self) -> None: ...


def _ignore_log(message: str) -> None:
    return None


# Checked in order; the first keyword hit wins. Matching is case-sensitive to
# stay compatible with the phrases existing backends emit.
NETWORK_RULES: tuple[tuple[ErrorKind, tuple[str, ...], str], ...] = (
    (ErrorKind.NETWORK_DNS, ("dns", "resolve"), DNS_FAILURE_MESSAGE),
    (ErrorKind.NETWORK_TIMEOUT, ("timeout",), TIMEOUT_MESSAGE),
    (ErrorKind.NETWORK_CONNECTION, ("connection",), CONNECTION_FAILURE_MESSAGE),
)

# Only for errors tagged with the fetch stage; matched against lowercased text.
TAGGED_NETWORK_RULES: tuple[tuple[ErrorKind, tuple[str, ...], str], ...] = (
    (ErrorKind.NETWORK_DNS, ("dns", "resolve"), DNS_FAILURE_MESSAGE),
    (ErrorKind.NETWORK_TIMEOUT, ("timeout", "timed out"), TIMEOUT_MESSAGE),
    (ErrorKind.NETWORK_CONNECTION, ("connection",), CONNECTION_FAILURE_MESSAGE),
)


def _classify_network(detail: str, tagged: bool = False) -> Classification:
    rules = TAGGED_NETWORK_RULES if tagged else NETWORK_RULES
    haystack = detail.lower() if tagged else detail
    for kind, keywords, message in rules:
        if any(keyword in haystack for keyword in keywords):
            return Classification(kind=kind, message=message)
    return Classification(kind=ErrorKind.NETWORK_OTHER, message=f"Network error: {detail}")


def classify_error(error: Any) -> Classification:
    """Map a backend failure to an error kind and the message shown to the user.

    A stage tag on ``ExtractionError`` takes precedence; otherwise the text of
    the error is matched against the phrases the backend is known to emit.
    """
    detail = str(error)
    stage = getattr(error, "stage", None)

    if stage == STAGE_FETCH:
        return _classify_network(detail, tagged=True)
    if FETCH_FAILURE_MARKER in detail:
        return _classify_network(detail)
    if stage == STAGE_EXTRACT or EXTRACT_FAILURE_MARKER in detail:
        return Classification(kind=ErrorKind.PARSE_FAILURE, message=PARSE_FAILURE_MESSAGE)

    if not detail.strip():
        detail = type(error).__name__ if isinstance(error, BaseException) else "Unknown error"
    return Classification(kind=ErrorKind.UNCLASSIFIED, message=detail)


class StatusReporter:
    """Single status line with a severity tag; success messages clear themselves."""

    def __init__(
        self,
        session: SessionState,
        scheduler: Scheduler,
        render: Callable[[Optional[StatusMessage]], None],
        clear_after_ms: int = SUCCESS_CLEAR_MS,
    ) -> None:
        self.session = session
        self._scheduler = scheduler
        self._render = render
        self._clear_after_ms = clear_after_ms
        self._generation = 0
        self._auto_clear_job: Optional[str] = None

    @property
    def current(self) -> Optional[StatusMessage]:
        return self.session.last_status

    def show(self, message: str, severity: str) -> None:
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown status severity: {severity!r}")
        status = StatusMessage(text=message, severity=severity)
        self._supersede()
        self.session.last_status = status
        self._render(status)

        if severity == SEVERITY_SUCCESS:
            generation = self._generation
            self._auto_clear_job = self._scheduler.after(
                self._clear_after_ms, lambda: self._expire(generation)
            )

    def clear(self) -> None:
        self._supersede()
        self.session.last_status = None
        self._render(None)

    def _supersede(self) -> None:
        self._generation += 1
        if self._auto_clear_job is not None:
            self._scheduler.after_cancel(self._auto_clear_job)
            self._auto_clear_job = None

    def _expire(self, generation: int) -> None:
        # A job that outlived its message must not touch the newer one.
        if generation != self._generation:
            return
        self._auto_clear_job = None
        self.clear()


async def _resolve_awaitable(pending: Awaitable[Any]) -> Any:
    return await pending


def call_backend(backend: BackendCapability, url: str) -> str:
    result = backend(url)
    if inspect.isawaitable(result):
        result = asyncio.run(_resolve_awaitable(result))
    if not isinstance(result, str):
        raise ExtractionError(f"Backend returned {type(result).__name__} instead of text.")
    return result


def load_backend(spec: str) -> BackendCapability:
    module_name, sep, attribute = spec.strip().partition(":")
    if not sep or not module_name or not attribute:
        raise BackendLoadError(
            f"Backend must be given as 'package.module:function', got {spec!r}."
        )

    try:
        module = importlib.import_module(module_name)
    except Exception as exc:
        raise BackendLoadError(f"Could not import backend module '{module_name}': {exc}") from exc

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise BackendLoadError(
                f"Backend module '{module_name}' has no attribute '{attribute}'."
            ) from exc

    if not callable(target):
        raise BackendLoadError(f"Backend '{spec}' is not callable.")
    return target


class MissingBackend:
    def __init__(self, reason: str = "") -> None:
        self.reason = reason or (
            "No extraction backend configured. Pass --backend package.module:function "
            f"or set {BACKEND_ENV_VAR}."
        )

    def __call__(self, url: str) -> str:
        raise BackendLoadError(self.reason)


def resolve_backend(spec: Optional[str] = None) -> BackendCapability:
    chosen = (spec or os.environ.get(BACKEND_ENV_VAR, "")).strip()
    if not chosen:
        return MissingBackend()
    return load_backend(chosen)


class StagedBackend:
    """Fetch, extract and render stages composed into one backend capability.

    Failures in the first two stages are re-raised as ``ExtractionError`` with
    the stage tag set and the backend's usual message prefix, so both the
    tagged and the text-based classification recognise them.
    """

    def __init__(
        self,
        fetch: Callable[[str], Any],
        extract: Callable[[Any, str], Any],
        render: Callable[[Any], str],
    ) -> None:
        self.fetch = fetch
        self.extract = extract
        self.render = render

    def __call__(self, url: str) -> str:
        try:
            html = self.fetch(url)
        except Exception as exc:
            raise ExtractionError(f"{FETCH_FAILURE_MARKER}: {exc}", stage=STAGE_FETCH) from exc

        try:
            model = self.extract(html, url)
        except Exception as exc:
            raise ExtractionError(f"{EXTRACT_FAILURE_MARKER}: {exc}", stage=STAGE_EXTRACT) from exc

        return self.render(model)


class ExtractionWorker(threading.Thread):
    def __init__(
        self,
        url: str,
        backend: BackendCapability,
        event_queue: "queue.Queue[tuple[str, Any]]",
    ) -> None:
        super().__init__(daemon=True)
        self.url = url
        self.backend = backend
        self.event_queue = event_queue

    def _emit(self, event: str, payload: Any) -> None:
        self.event_queue.put((event, payload))

    def run(self) -> None:
        try:
            document = call_backend(self.backend, self.url)
        except Exception as exc:
            self._emit("extract_error", exc)
            return
        self._emit("extract_done", document)


class ExtractionCoordinator:
    """Owns one extraction request from submit to cleanup.

    Outcomes come back from the worker thread as queue events and must be fed
    to ``handle_event`` on the thread that owns the view.
    """

    def __init__(
        self,
        session: SessionState,
        status: StatusReporter,
        view: ExtractionView,
        backend: BackendCapability,
        event_queue: "queue.Queue[tuple[str, Any]]",
        log: Optional[LogFn] = None,
    ) -> None:
        self.session = session
        self.status = status
        self.view = view
        self.backend = backend
        self.event_queue = event_queue
        self._log = log or _ignore_log
        self.worker: Optional[ExtractionWorker] = None

    def submit(self, raw_url: str) -> bool:
        if self.session.request_in_flight:
            self._log("Extraction already running; new request ignored.")
            return False

        url = raw_url.strip()
        self.session.url = url
        if not url:
            self.status.show(EMPTY_INPUT.message, SEVERITY_ERROR)
            return False

        self.session.request_in_flight = True
        try:
            self.view.set_busy(True)
            self.status.show(LOADING_MESSAGE, SEVERITY_LOADING)
            self.view.hide_document()
            self._log(f"Extracting styles from {url}")
            self.worker = ExtractionWorker(url=url, backend=self.backend, event_queue=self.event_queue)
            self.worker.start()
        except Exception as exc:
            self._fail(exc)
        return True

    def handle_event(self, event: str, payload: Any) -> bool:
        if event == "extract_done":
            self._succeed(str(payload))
            return True
        if event == "extract_error":
            self._fail(payload)
            return True
        return False

    def _succeed(self, document: str) -> None:
        try:
            self.session.document = document
            self.view.show_document(document)
            self.status.show(EXTRACT_SUCCESS_MESSAGE, SEVERITY_SUCCESS)
            self._log(f"Style guide ready ({len(document)} characters).")
        finally:
            self._release()

    def _fail(self, error: Any) -> None:
        try:
            self._log(f"Error extracting styles: {error}")
            classification = classify_error(error)
            self.status.show(classification.message, SEVERITY_ERROR)
        finally:
            self._release()

    def _release(self) -> None:
        self.worker = None
        self.session.request_in_flight = False
        self.view.set_busy(False)


def write_document(path: Path, text: str) -> None:
    with path.open("w", encoding="utf-8", newline="\n") as out:
        out.write(text)


class ClipboardExporter:
    def __init__(
        self,
        session: SessionState,
        status: StatusReporter,
        write_clipboard: Callable[[str], None],
        log: Optional[LogFn] = None,
    ) -> None:
        self.session = session
        self.status = status
        self._write_clipboard = write_clipboard
        self._log = log or _ignore_log

    def copy_to_clipboard(self) -> bool:
        document = self.session.document
        if not document:
            return False

        try:
            self._write_clipboard(document)
        except Exception as exc:
            self._log(f"Error copying to clipboard: {exc}")
            self.status.show(CLIPBOARD_FAILURE.message, SEVERITY_ERROR)
            return False

        self.status.show(COPY_SUCCESS_MESSAGE, SEVERITY_SUCCESS)
        self._log("Copied style guide to clipboard.")
        return True


class FileExporter:
    def __init__(
        self,
        session: SessionState,
        status: StatusReporter,
        ask_path: Callable[[], Optional[str]],
        write_file: Callable[[Path, str], None] = write_document,
        log: Optional[LogFn] = None,
    ) -> None:
        self.session = session
        self.status = status
        self._ask_path = ask_path
        self._write_file = write_file
        self._log = log or _ignore_log

    def save_to_file(self) -> bool:
        document = self.session.document
        if not document:
            return False

        try:
            chosen = self._ask_path()
            if not chosen:
                return False
            target = Path(chosen)
            self._write_file(target, document)
        except Exception as exc:
            self._log(f"Error saving file: {exc}")
            self.status.show(FILE_SAVE_FAILURE.message, SEVERITY_ERROR)
            return False

        self.status.show(SAVE_SUCCESS_MESSAGE, SEVERITY_SUCCESS)
        self._log(f"Saved style guide to {target}")
        return True

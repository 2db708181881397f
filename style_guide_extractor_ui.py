from __future__ import annotations

import argparse
import queue
import time
from pathlib import Path
from typing import Any, Optional

import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from tkinter.scrolledtext import ScrolledText

from style_guide_core import (
    BACKEND_ENV_VAR,
    DEFAULT_FILENAME,
    EMPTY_INPUT_MESSAGE,
    SAVE_FAILURE_MESSAGE,
    BackendCapability,
    BackendLoadError,
    ClipboardExporter,
    ExtractionCoordinator,
    FileExporter,
    MissingBackend,
    SessionState,
    StatusMessage,
    StatusReporter,
    call_backend,
    classify_error,
    resolve_backend,
    write_document,
)

try:
    from tkinterdnd2 import DND_TEXT, TkinterDnD  # type: ignore

    DND_AVAILABLE = True
except Exception:
    DND_AVAILABLE = False


APP_TITLE = "Style Guide Extractor"
POLL_INTERVAL_MS = 80
MAX_EVENTS_PER_TICK = 200
MAX_LOG_LINES = 800
EXTRACT_LABEL = "Extract Styles"
EXTRACT_BUSY_LABEL = "Extracting..."

PALETTE = {
    "bg": "#edf2f7",
    "card": "#ffffff",
    "header_bg": "#0f172a",
    "text": "#0f172a",
    "muted": "#475569",
    "accent": "#0ea5e9",
    "accent_hover": "#0284c7",
    "input_border": "#cbd5e1",
    "progress_trough": "#dbeafe",
    "progress_bg": "#38bdf8",
    "doc_bg": "#f8fafc",
    "log_bg": "#0b1324",
    "log_fg": "#e2e8f0",
}

STATUS_THEMES = {
    "idle": {"bg": PALETTE["card"], "fg": PALETTE["muted"]},
    "loading": {"bg": "#dbeafe", "fg": "#1e3a8a"},
    "success": {"bg": "#dcfce7", "fg": "#14532d"},
    "error": {"bg": "#fee2e2", "fg": "#7f1d1d"},
}


def build_root() -> tk.Tk:
    if DND_AVAILABLE:
        return TkinterDnD.Tk()  # type: ignore[no-any-return]
    return tk.Tk()


class StyleGuideExtractorApp:
    def __init__(self, root: tk.Tk, backend: BackendCapability) -> None:
        self.root = root
        self.root.title(APP_TITLE)
        self.root.geometry("820x760")
        self.root.minsize(640, 560)
        self.root.configure(bg=PALETTE["bg"])

        self.url_var = tk.StringVar()
        self.status_var = tk.StringVar(value="")
        self._event_queue: "queue.Queue[tuple[str, Any]]" = queue.Queue()
        self._busy = False

        self.url_entry: ttk.Entry
        self.extract_button: ttk.Button
        self.copy_button: ttk.Button
        self.save_button: ttk.Button
        self.status_label: tk.Label
        self.progress: ttk.Progressbar
        self.output_card: ttk.Frame
        self.output_text: ScrolledText
        self.log_card: ttk.Frame
        self.log_text: ScrolledText

        self._init_styles()
        self._build_ui()

        # Every widget exists before the components are wired and handlers bound.
        self.session = SessionState()
        self.status = StatusReporter(self.session, self.root, self._render_status)
        self.coordinator = ExtractionCoordinator(
            session=self.session,
            status=self.status,
            view=self,
            backend=backend,
            event_queue=self._event_queue,
            log=self._add_log,
        )
        self.clipboard_exporter = ClipboardExporter(
            self.session, self.status, self._write_clipboard, log=self._add_log
        )
        self.file_exporter = FileExporter(
            self.session, self.status, self._ask_save_path, log=self._add_log
        )

        self._bind_events()
        self._refresh_buttons()

        if isinstance(backend, MissingBackend):
            self._add_log(backend.reason)
            self.root.after(300, lambda: messagebox.showwarning(APP_TITLE, backend.reason))

        self.root.after(POLL_INTERVAL_MS, self._process_events)
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

    def _init_styles(self) -> None:
        style = ttk.Style(self.root)
        try:
            style.theme_use("clam")
        except tk.TclError:
            pass

        ui_font = "Segoe UI"
        style.configure("Root.TFrame", background=PALETTE["bg"])
        style.configure("Card.TFrame", background=PALETTE["card"])
        style.configure("Header.TFrame", background=PALETTE["header_bg"])
        style.configure(
            "HeaderTitle.TLabel",
            background=PALETTE["header_bg"],
            foreground="#f8fafc",
            font=(ui_font, 16, "bold"),
        )
        style.configure(
            "HeaderSub.TLabel",
            background=PALETTE["header_bg"],
            foreground="#bfdbfe",
            font=(ui_font, 9),
        )
        style.configure(
            "SectionTitle.TLabel",
            background=PALETTE["card"],
            foreground=PALETTE["text"],
            font=(ui_font, 11, "bold"),
        )
        style.configure(
            "Field.TLabel",
            background=PALETTE["card"],
            foreground=PALETTE["muted"],
            font=(ui_font, 10),
        )
        style.configure(
            "Accent.TButton",
            background=PALETTE["accent"],
            foreground="#ffffff",
            borderwidth=0,
            focuscolor=PALETTE["accent"],
            font=(ui_font, 10, "bold"),
            padding=(10, 6),
        )
        style.map(
            "Accent.TButton",
            background=[("active", PALETTE["accent_hover"]), ("disabled", "#93c5fd")],
            foreground=[("disabled", "#e2e8f0")],
        )
        style.configure(
            "Neutral.TButton",
            background="#e2e8f0",
            foreground=PALETTE["text"],
            borderwidth=0,
            font=(ui_font, 10, "bold"),
            padding=(10, 6),
        )
        style.map(
            "Neutral.TButton",
            background=[("active", "#cbd5e1"), ("disabled", "#e2e8f0")],
            foreground=[("disabled", "#94a3b8")],
        )
        style.configure(
            "Accent.Horizontal.TProgressbar",
            troughcolor=PALETTE["progress_trough"],
            background=PALETTE["progress_bg"],
            bordercolor=PALETTE["progress_trough"],
            lightcolor=PALETTE["progress_bg"],
            darkcolor=PALETTE["progress_bg"],
            thickness=6,
        )

    def _build_ui(self) -> None:
        root_frame = ttk.Frame(self.root, style="Root.TFrame")
        root_frame.pack(fill="both", expand=True)

        header = ttk.Frame(root_frame, style="Header.TFrame", padding=(14, 10))
        header.pack(fill="x")
        ttk.Label(header, text=APP_TITLE, style="HeaderTitle.TLabel").pack(anchor="w")
        ttk.Label(
            header,
            text="Turn a website's visual design into a Markdown style guide.",
            style="HeaderSub.TLabel",
        ).pack(anchor="w", pady=(1, 0))

        self.surface = ttk.Frame(root_frame, style="Root.TFrame")
        self.surface.pack(fill="both", expand=True, padx=10, pady=8)
        surface = self.surface

        source_card = ttk.Frame(surface, style="Card.TFrame", padding=(10, 8))
        source_card.pack(fill="x", pady=(0, 6))
        source_card.columnconfigure(1, weight=1)
        ttk.Label(source_card, text="Source", style="SectionTitle.TLabel").grid(
            row=0, column=0, sticky="w", pady=(0, 6)
        )
        ttk.Label(source_card, text="Website URL", style="Field.TLabel").grid(row=1, column=0, sticky="w")
        self.url_entry = ttk.Entry(source_card, textvariable=self.url_var)
        self.url_entry.grid(row=1, column=1, sticky="ew", padx=(10, 8), pady=4)
        self.paste_button = ttk.Button(
            source_card,
            text="Paste",
            style="Neutral.TButton",
            command=self._paste_url,
        )
        self.paste_button.grid(row=1, column=2, sticky="ew", padx=(0, 8), pady=4)
        self.extract_button = ttk.Button(
            source_card,
            text=EXTRACT_LABEL,
            style="Accent.TButton",
            command=self._submit,
        )
        self.extract_button.grid(row=1, column=3, sticky="ew", pady=4)

        self.progress = ttk.Progressbar(
            source_card,
            style="Accent.Horizontal.TProgressbar",
            mode="indeterminate",
        )
        self.progress.grid(row=2, column=0, columnspan=4, sticky="ew", pady=(6, 0))
        self.progress.grid_remove()

        self.status_label = tk.Label(
            surface,
            textvariable=self.status_var,
            anchor="w",
            justify="left",
            font=("Segoe UI", 10, "bold"),
            background=STATUS_THEMES["idle"]["bg"],
            foreground=STATUS_THEMES["idle"]["fg"],
            padx=10,
            pady=8,
            wraplength=760,
        )
        self.status_label.pack(fill="x", pady=(0, 6))

        self.output_card = ttk.Frame(surface, style="Card.TFrame", padding=(10, 8))
        output_head = ttk.Frame(self.output_card, style="Card.TFrame")
        output_head.pack(fill="x", pady=(0, 4))
        ttk.Label(output_head, text="Style Guide", style="SectionTitle.TLabel").pack(side="left")
        self.save_button = ttk.Button(
            output_head,
            text="Save .md",
            style="Neutral.TButton",
            command=self._save_to_file,
        )
        self.save_button.pack(side="right")
        self.copy_button = ttk.Button(
            output_head,
            text="Copy",
            style="Neutral.TButton",
            command=self._copy_to_clipboard,
        )
        self.copy_button.pack(side="right", padx=(0, 8))
        self.output_text = ScrolledText(
            self.output_card,
            height=14,
            wrap="word",
            font=("Consolas", 10),
            background=PALETTE["doc_bg"],
            foreground=PALETTE["text"],
            relief="flat",
            borderwidth=0,
            padx=10,
            pady=8,
        )
        self.output_text.pack(fill="both", expand=True)
        self.output_text.configure(state="disabled")

        self.log_card = ttk.Frame(surface, style="Card.TFrame", padding=(10, 8))
        self.log_card.pack(fill="both", expand=True)
        ttk.Label(self.log_card, text="Activity Log", style="SectionTitle.TLabel").pack(anchor="w", pady=(0, 4))
        self.log_text = ScrolledText(
            self.log_card,
            height=6,
            wrap="word",
            font=("Consolas", 10),
            background=PALETTE["log_bg"],
            foreground=PALETTE["log_fg"],
            insertbackground=PALETTE["log_fg"],
            relief="flat",
            borderwidth=0,
            padx=10,
            pady=8,
        )
        self.log_text.pack(fill="both", expand=True)
        self.log_text.configure(state="disabled")

    def _bind_events(self) -> None:
        self.url_entry.bind("<Return>", lambda _event: self._submit())
        if DND_AVAILABLE:
            self.url_entry.drop_target_register(DND_TEXT)  # type: ignore[attr-defined]
            self.url_entry.dnd_bind("<<Drop>>", self._on_drop)  # type: ignore[attr-defined]

    def _submit(self) -> None:
        self.coordinator.submit(self.url_var.get())

    def _copy_to_clipboard(self) -> None:
        self.clipboard_exporter.copy_to_clipboard()

    def _save_to_file(self) -> None:
        self.file_exporter.save_to_file()

    # View bindings used by the coordinator and the status reporter.

    def set_busy(self, busy: bool) -> None:
        self._busy = busy
        if busy:
            self.extract_button.configure(text=EXTRACT_BUSY_LABEL, state="disabled")
            self.progress.grid()
            self.progress.start(12)
        else:
            self.progress.stop()
            self.progress.grid_remove()
            self.extract_button.configure(text=EXTRACT_LABEL, state="normal")
        self._refresh_buttons()

    def show_document(self, text: str) -> None:
        self.output_text.configure(state="normal")
        self.output_text.delete("1.0", "end")
        self.output_text.insert("1.0", text)
        self.output_text.see("1.0")
        self.output_text.configure(state="disabled")
        self.output_card.pack(fill="both", expand=True, pady=(0, 6), before=self.log_card)
        self._refresh_buttons()

    def hide_document(self) -> None:
        self.output_card.pack_forget()

    def _render_status(self, status: Optional[StatusMessage]) -> None:
        theme = STATUS_THEMES[status.severity if status else "idle"]
        self.status_label.configure(background=theme["bg"], foreground=theme["fg"])
        self.status_var.set(status.text if status else "")

    def _write_clipboard(self, text: str) -> None:
        self.root.clipboard_clear()
        self.root.clipboard_append(text)
        self.root.update_idletasks()

    def _ask_save_path(self) -> Optional[str]:
        chosen = filedialog.asksaveasfilename(
            parent=self.root,
            title="Save style guide",
            initialfile=DEFAULT_FILENAME,
            defaultextension=".md",
            filetypes=[("Markdown", "*.md")],
        )
        return chosen or None

    def _refresh_buttons(self) -> None:
        export_state = "normal" if (self.session.document and not self._busy) else "disabled"
        self.copy_button.configure(state=export_state)
        self.save_button.configure(state=export_state)
        self.paste_button.configure(state="disabled" if self._busy else "normal")
        self.url_entry.configure(state="disabled" if self._busy else "normal")

    def _process_events(self) -> None:
        try:
            for _ in range(MAX_EVENTS_PER_TICK):
                try:
                    event, payload = self._event_queue.get_nowait()
                except queue.Empty:
                    break
                self._handle_event(event, payload)
        finally:
            # Re-armed even when a handler raises, so later outcomes still drain.
            self.root.after(POLL_INTERVAL_MS, self._process_events)

    def _handle_event(self, event: str, payload: Any) -> None:
        if event == "log":
            self._add_log(str(payload))
            return
        if self.coordinator.handle_event(event, payload):
            return
        self._add_log(f"Ignored unknown event: {event}")

    def _paste_url(self) -> None:
        try:
            clipboard_text = self.root.clipboard_get().strip()
        except tk.TclError:
            clipboard_text = ""
        if clipboard_text:
            self.url_var.set(clipboard_text)
            self._add_log("Pasted URL from clipboard.")

    def _on_drop(self, event: Any) -> None:
        items = self.root.tk.splitlist(getattr(event, "data", ""))
        if not items:
            return
        dropped = str(items[0]).strip("{}").strip()
        if not dropped:
            return
        if self._busy:
            self._add_log("Drop ignored while an extraction is running.")
            return
        self.url_var.set(dropped)
        self._add_log(f"Dropped: {dropped}")

    def _on_close(self) -> None:
        if self.session.request_in_flight:
            if not messagebox.askyesno(
                APP_TITLE, "An extraction is still running. Do you want to exit anyway?"
            ):
                return
        self.root.destroy()

    def _add_log(self, message: str) -> None:
        timestamp = time.strftime("%H:%M:%S")
        line = f"[{timestamp}] {message}\n"
        self.log_text.configure(state="normal")
        self.log_text.insert("end", line)
        total_lines = int(self.log_text.index("end-1c").split(".")[0])
        if total_lines > MAX_LOG_LINES:
            self.log_text.delete("1.0", f"{total_lines - MAX_LOG_LINES + 1}.0")
        self.log_text.see("end")
        self.log_text.configure(state="disabled")


def run_cli(args: argparse.Namespace) -> int:
    try:
        backend = resolve_backend(args.backend)
    except BackendLoadError as exc:
        print(f"ERROR: {exc}")
        return 2
    if isinstance(backend, MissingBackend):
        print(f"ERROR: {backend.reason}")
        return 2

    url = (args.url or "").strip()
    if not url:
        print(f"ERROR: {EMPTY_INPUT_MESSAGE}")
        return 2
    output = Path(args.output).expanduser()

    print(f"Extracting styles from {url}...")
    started = time.time()
    try:
        document = call_backend(backend, url)
    except Exception as exc:
        print(f"ERROR: {classify_error(exc).message}")
        print(f"Detail: {exc}")
        return 1

    try:
        write_document(output, document)
    except Exception as exc:
        print(f"ERROR: {SAVE_FAILURE_MESSAGE}: {exc}")
        return 1

    print(f"Style guide: {len(document)} characters in {time.time() - started:.1f}s")
    print(f"Output: {output}")
    return 0


def make_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a Markdown style guide from a website's visual design.",
    )
    parser.add_argument(
        "--backend",
        help=(
            "Extraction backend as 'package.module:function' "
            f"(default: ${BACKEND_ENV_VAR})"
        ),
    )
    parser.add_argument("--url", help="Website to extract; runs without a window when given with --output")
    parser.add_argument("--output", help="Destination .md file for the generated style guide")
    return parser


def main() -> None:
    parser = make_arg_parser()
    args = parser.parse_args()

    if args.url or args.output:
        if not (args.url and args.output):
            parser.error("--url and --output must be given together")
        raise SystemExit(run_cli(args))

    try:
        backend = resolve_backend(args.backend)
    except BackendLoadError as exc:
        backend = MissingBackend(str(exc))

    root = build_root()
    app = StyleGuideExtractorApp(root, backend)
    _ = app
    root.mainloop()


if __name__ == "__main__":
    main()

import tkinter as tk
from tkinter import ttk
from typing import Any, Callable, Dict, List, Optional
import threading
from queue import Queue, Empty
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class UIConfig:
    """Window and font settings from the ``ui`` config section."""
    font_size: int = 10
    window_size: tuple[int, int] = (1200, 760)
    locale: str = 'ru'


class TkTaskRunner:
    """Runs API calls on worker threads and delivers results on the Tk loop."""

    POLL_MS = 50

    def __init__(self, parent: tk.Misc):
        self.parent = parent
        self.queue: Queue = Queue()
        self._pending = 0
        self._polling = False

    def submit(
        self,
        operation: Callable[[], Any],
        on_success: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        """Start ``operation`` in a daemon thread."""

        def worker():
            try:
                result = operation()
                self.queue.put(("success", result, on_success, on_error))
            except Exception as e:  # pylint: disable=broad-except
                self.queue.put(("error", e, on_success, on_error))

        self._pending += 1
        threading.Thread(target=worker, daemon=True).start()
        if not self._polling:
            self._polling = True
            self.parent.after(self.POLL_MS, self._check_queue)

    def _check_queue(self) -> None:
        while True:
            try:
                status, result, on_success, on_error = self.queue.get_nowait()
            except Empty:
                break
            self._pending -= 1
            try:
                if status == "success":
                    if on_success:
                        on_success(result)
                elif on_error:
                    on_error(result)
                else:
                    logger.error("Unhandled background error: %s", result)
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Error in task callback: %s", exc)
        if self._pending > 0:
            self.parent.after(self.POLL_MS, self._check_queue)
        else:
            self._polling = False


class ErrorBanner(ttk.Frame):
    """Dismissible error line shown above a pane."""

    def __init__(self, parent: tk.Misc, on_dismiss: Optional[Callable[[], None]] = None):
        super().__init__(parent, style="Error.TFrame", padding=(8, 4))
        self._on_dismiss = on_dismiss
        self.message_var = tk.StringVar(value="")
        ttk.Label(
            self, textvariable=self.message_var, style="Error.TLabel", wraplength=420
        ).pack(side=tk.LEFT, fill=tk.X, expand=True)
        ttk.Button(self, text="✕", width=3, command=self._dismiss).pack(side=tk.RIGHT)
        self._packed = False
        self._pack_options: Dict[str, Any] = {}

    def place_options(self, **options: Any) -> None:
        self._pack_options = options

    def show(self, message: Optional[str]) -> None:
        if message:
            self.message_var.set(message)
            if not self._packed:
                self.pack(**self._pack_options)
                self._packed = True
        else:
            self.message_var.set("")
            if self._packed:
                self.pack_forget()
                self._packed = False

    def _dismiss(self) -> None:
        self.show(None)
        if self._on_dismiss:
            self._on_dismiss()


class TreeviewManager:
    """Flat Treeview table with click-to-sort headings.

    ``columns`` maps column ids to ``text``/``width`` plus optional ``anchor``
    and ``numeric`` (sort by parsed number instead of text).
    """

    ARROWS = {True: " ▲", False: " ▼"}

    def __init__(self, tree: ttk.Treeview, columns: Dict[str, Dict[str, Any]]):
        self.tree = tree
        self.columns = columns
        self.sort_state: Optional[tuple] = None
        self._configure_columns()

    def _configure_columns(self) -> None:
        self.tree["columns"] = tuple(self.columns)
        for column_id, spec in self.columns.items():
            self.tree.heading(
                column_id, text=spec["text"],
                command=lambda c=column_id: self.sort_by_column(c),
            )
            self.tree.column(
                column_id, width=spec["width"], anchor=spec.get("anchor", tk.W)
            )

    def replace_rows(self, rows: List[Dict[str, Any]]) -> None:
        """Replace all rows; each row needs an ``iid`` and the column values."""
        self.tree.delete(*self.tree.get_children())
        for row in rows:
            self.tree.insert(
                "", "end", iid=row["iid"],
                values=tuple(row.get(column_id, "") for column_id in self.columns),
            )
        self.sort_state = None
        self._refresh_headings()

    def sort_by_column(self, column_id: str) -> None:
        """Sort by ``column_id``; a second click on the same column flips it."""
        descending = self.sort_state == (column_id, False)
        numeric = bool(self.columns[column_id].get("numeric"))

        def sort_key(iid: str):
            value = self.tree.set(iid, column_id)
            return self._parse_number(value) if numeric else value.lower()

        ordered = sorted(self.tree.get_children(""), key=sort_key, reverse=descending)
        for position, iid in enumerate(ordered):
            self.tree.move(iid, "", position)
        self.sort_state = (column_id, descending)
        self._refresh_headings()

    @staticmethod
    def _parse_number(value: str) -> float:
        try:
            return float(value.replace(" ", "").replace(",", "."))
        except (ValueError, AttributeError):
            return 0.0

    def _refresh_headings(self) -> None:
        for column_id, spec in self.columns.items():
            label = spec["text"]
            if self.sort_state and self.sort_state[0] == column_id:
                label += self.ARROWS[not self.sort_state[1]]
            self.tree.heading(column_id, text=label)

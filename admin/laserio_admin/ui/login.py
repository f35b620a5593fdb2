"""
Administrator login dialog.
"""

from __future__ import annotations

import logging
import tkinter as tk
from tkinter import ttk
from typing import Callable, Optional

from ..api_client import CatalogApiClient
from ..category_tree import error_message
from ..session import AdminSession
from ..tasks import TaskRunner

logger = logging.getLogger(__name__)

LOGIN_ERROR_MESSAGE = "Не удалось войти. Проверьте почту и пароль."
DEFAULT_EMAIL = "admin@local"


class LoginDialog(tk.Toplevel):
    """Modal e-mail/password form; calls ``on_success`` once a token is held."""

    def __init__(
        self,
        parent: tk.Misc,
        session: AdminSession,
        client: CatalogApiClient,
        runner: TaskRunner,
        on_success: Callable[[], None],
        on_cancel: Optional[Callable[[], None]] = None,
    ):
        super().__init__(parent)
        self.session = session
        self.client = client
        self.runner = runner
        self.on_success = on_success
        self.on_cancel = on_cancel
        self._in_flight = False

        self.title("Вход в админку")
        self.resizable(False, False)
        self.transient(parent)
        self._build_form()
        self.protocol("WM_DELETE_WINDOW", self._on_close)
        self.bind("<Return>", lambda _e: self._on_submit())
        self.grab_set()
        self.focus()

    def _build_form(self) -> None:
        frame = ttk.Frame(self, padding=16)
        frame.pack(fill=tk.BOTH, expand=True)
        frame.columnconfigure(1, weight=1)

        ttk.Label(frame, text="Laserio Admin", font=("Segoe UI", 13, "bold")).grid(
            row=0, column=0, columnspan=2, sticky="w", pady=(0, 10)
        )

        ttk.Label(frame, text="Email:").grid(row=1, column=0, sticky="w", pady=4, padx=(0, 8))
        self.email_var = tk.StringVar(value=DEFAULT_EMAIL)
        ttk.Entry(frame, textvariable=self.email_var, width=32).grid(
            row=1, column=1, sticky="ew", pady=4
        )

        ttk.Label(frame, text="Пароль:").grid(row=2, column=0, sticky="w", pady=4, padx=(0, 8))
        self.password_var = tk.StringVar()
        password_entry = ttk.Entry(frame, textvariable=self.password_var, show="*", width=32)
        password_entry.grid(row=2, column=1, sticky="ew", pady=4)
        password_entry.focus_set()

        self.error_var = tk.StringVar()
        ttk.Label(
            frame, textvariable=self.error_var, foreground="#b00020", wraplength=300
        ).grid(row=3, column=0, columnspan=2, sticky="w", pady=(6, 0))

        self.submit_button = ttk.Button(frame, text="Войти", command=self._on_submit)
        self.submit_button.grid(row=4, column=1, sticky="e", pady=(10, 0))

    def _on_submit(self) -> None:
        if self._in_flight:
            return
        email = self.email_var.get().strip()
        password = self.password_var.get()
        if not email or not password:
            self.error_var.set("Введите почту и пароль.")
            return
        self._set_in_flight(True)
        self.error_var.set("")
        self.runner.submit(
            lambda: self.session.login(self.client, email, password),
            self._on_login_success,
            self._on_login_error,
        )

    def _set_in_flight(self, value: bool) -> None:
        self._in_flight = value
        self.submit_button.configure(
            state=tk.DISABLED if value else tk.NORMAL,
            text="Вход..." if value else "Войти",
        )

    def _on_login_success(self, _result: object) -> None:
        self._set_in_flight(False)
        self.grab_release()
        self.destroy()
        self.on_success()

    def _on_login_error(self, exc: Exception) -> None:
        logger.warning("Login failed: %s", exc)
        self._set_in_flight(False)
        self.error_var.set(error_message(exc, LOGIN_ERROR_MESSAGE))

    def _on_close(self) -> None:
        if self._in_flight:
            return
        self.grab_release()
        self.destroy()
        if self.on_cancel:
            self.on_cancel()

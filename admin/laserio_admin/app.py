"""
Laserio Admin Application
-------------------------
Startup and shutdown of the catalog administration client: configuration,
logging, login and the Tk main loop.
"""

import tkinter as tk
from tkinter import messagebox
import logging
import logging.handlers
import sys
import os
from typing import Optional, Dict, Any
from pathlib import Path
import argparse
from contextlib import contextmanager
import threading
import signal
import traceback

from . import __version__
from .api_client import CatalogApiClient
from .config import ENV_MODE_VAR, is_development_mode, load_configuration
from .errors import AdminError, ConfigurationError
from .session import AdminSession, SessionStore
from .ui import TkTaskRunner, UIConfig
from .ui.login import LoginDialog
from .ui.main_window import MainWindow

LOG_FILE_NAME = "laserio_admin.log"


class ApplicationError(AdminError):
    """Raised for failures of the application shell itself."""


class AdminApplication:
    """Owns the Tk root, the admin session and the API client."""

    def __init__(self):
        self.exit_event = threading.Event()
        self.config: Dict[str, Any] = {}
        self.logger: Optional[logging.Logger] = None
        self.root: Optional[tk.Tk] = None
        self.window: Optional[MainWindow] = None
        self.session: Optional[AdminSession] = None
        self.client: Optional[CatalogApiClient] = None
        self.runner: Optional[TkTaskRunner] = None
        self._setup_signal_handlers()

    def _setup_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to the exit event."""
        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, self._handle_shutdown_signal)

    def _handle_shutdown_signal(self, signum: int, frame) -> None:
        if self.logger:
            self.logger.info("Signal %s received, shutting down", signum)
        self.exit_event.set()

    def initialize(self, config_path: Optional[str] = None) -> None:
        """
        Load configuration and start logging.

        Args:
            config_path: JSON file overriding the defaults, if any

        Raises:
            ConfigurationError: If the file is unusable or logging cannot start
        """
        self.config = load_configuration(config_path)
        try:
            self._setup_logging()
        except OSError as e:
            raise ConfigurationError(f"Failed to initialize logging: {e}") from e
        self.logger.info("Laserio Admin %s starting", __version__)
        self.logger.info("Catalog API: %s", self.config["api"]["base_url"])

    def _setup_logging(self) -> None:
        """Configure the package logger every module logger propagates to."""
        self.logger = logging.getLogger("laserio_admin")
        self.logger.setLevel(getattr(logging, self.config["log_level"]))

        log_dir = Path(self.config["log_dir"])
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=self.config["max_log_size"],
            backupCount=self.config["backup_count"],
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        self.logger.addHandler(file_handler)

        if is_development_mode():
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(
                "%(levelname)s: %(message)s"
            ))
            self.logger.addHandler(console_handler)

    @contextmanager
    def error_handler(self):
        """Log unexpected errors and show them instead of crashing the loop."""
        try:
            yield
        except Exception as e:  # pylint: disable=broad-except
            if self.logger:
                self.logger.error("Unhandled error: %s", e)
                self.logger.debug(traceback.format_exc())
            message = (f"Произошла непредвиденная ошибка: {e}\n\n"
                       "Подробности смотрите в файле журнала.")
            if self.root is not None:
                messagebox.showerror("Ошибка", message)
            else:
                print(f"Error: {e}", file=sys.stderr)

    def _create_session(self) -> AdminSession:
        """Create the administrator session backed by the token file."""
        return AdminSession(SessionStore(Path(self.config["session"]["file"])))

    def _create_client(self, session: AdminSession) -> CatalogApiClient:
        """Create the API client bound to the session."""
        api_cfg = self.config["api"]
        return CatalogApiClient(
            api_base=api_cfg["base_url"],
            session=session,
            timeout=api_cfg["timeout"],
            page_limit=api_cfg["page_limit"],
        )

    def _create_ui_config(self) -> UIConfig:
        """Build the window settings from the ``ui`` section."""
        ui_config = self.config["ui"]
        return UIConfig(
            font_size=ui_config["font_size"],
            window_size=tuple(ui_config["window_size"]),
            locale=ui_config["locale"],
        )

    def run(self) -> None:
        """Open the login or the catalog window and enter the Tk loop."""
        if not self.config:
            raise ApplicationError("initialize() must be called before run()")
        with self.error_handler():
            self.logger.debug("Creating Tk root")

            root = tk.Tk()
            self.root = root
            root.title("Laserio Admin")
            root.protocol("WM_DELETE_WINDOW", self._on_window_close)

            self.session = self._create_session()
            self.client = self._create_client(self.session)
            self.runner = TkTaskRunner(root)

            if self.session.restore():
                self._show_main_window()
            else:
                self._show_login()

            self._check_exit(root)

            root.mainloop()

            self._cleanup()

    def _show_login(self) -> None:
        """Ask for credentials; the catalog opens once a token is held."""
        self.window = None
        LoginDialog(
            self.root,
            self.session,
            self.client,
            self.runner,
            on_success=self._show_main_window,
            on_cancel=self.exit_event.set,
        )

    def _show_main_window(self) -> None:
        self.window = MainWindow(
            self.root,
            self.client,
            self.session,
            self.runner,
            config=self._create_ui_config(),
            on_logout=self._show_login,
        )
        self.window.start()

    def _check_exit(self, root: tk.Tk) -> None:
        """Poll the exit event from the Tk loop."""
        if self.exit_event.is_set():
            self.logger.info("Exit requested, leaving the main loop")
            root.quit()
        else:
            root.after(100, lambda: self._check_exit(root))

    def _on_window_close(self) -> None:
        self.logger.info("Main window closed by user")
        self.exit_event.set()

    def _cleanup(self) -> None:
        """Destroy the Tk root and flush log handlers."""
        self.logger.info("Shutting down")
        try:
            if self.root is not None:
                self.root.destroy()
        except tk.TclError as e:
            self.logger.error("Error during cleanup: %s", e)
        finally:
            self.root = None
            self.logger.info("Shutdown complete")
            logging.shutdown()


def parse_arguments(argv=None):
    """Command line: ``--config FILE`` and ``--debug``."""
    parser = argparse.ArgumentParser(description="Laserio catalog administration")
    parser.add_argument(
        "--config",
        help="JSON configuration file",
        default=None
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log to the console as well (development mode)"
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Console script entry point."""
    args = parse_arguments(argv)

    if args.debug:
        os.environ[ENV_MODE_VAR] = "development"

    app = AdminApplication()

    try:
        app.initialize(args.config)
        app.run()
    except Exception as e:  # pylint: disable=broad-except
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

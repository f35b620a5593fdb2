import tkinter as tk
from tkinter import ttk, messagebox
from typing import Callable, Optional
import logging

from ..api_client import CatalogApiClient
from ..category_tree import CategoryTreeController
from ..products import ProductListController
from ..session import AdminSession
from ..tasks import TaskRunner
from .category_panel import CategoryTreePanel
from .components import UIConfig
from .product_panel import ProductPanel

logger = logging.getLogger(__name__)


class MainWindow:
    """Catalog window: category tree on the left, products on the right."""

    def __init__(
        self,
        master: tk.Tk,
        client: CatalogApiClient,
        session: AdminSession,
        runner: TaskRunner,
        config: Optional[UIConfig] = None,
        on_logout: Optional[Callable[[], None]] = None,
    ):
        self.master = master
        self.client = client
        self.session = session
        self.runner = runner
        self.config = config or UIConfig()
        self.on_logout = on_logout

        self.tree_controller = CategoryTreeController(client, runner)
        self.products_controller = ProductListController(client, runner)
        # Tree selection drives the product list; product saves refresh counts.
        self.tree_controller.on_select(self.products_controller.select_category)
        self.products_controller.on_products_changed(self.tree_controller.reload)

        self._configure_styles()
        self.setup_gui()
        self.bind_shortcuts()

    def _configure_styles(self) -> None:
        """ttk theme, including the Error.* styles used by ErrorBanner."""
        style = ttk.Style()
        theme = "clam" if "clam" in style.theme_names() else "alt"
        style.theme_use(theme)

        bg_color = "#f5f5f5"
        fg_color = "#333333"
        accent_color = "#007acc"
        font = ("Segoe UI", self.config.font_size)

        style.configure(".", background=bg_color, foreground=fg_color, font=font)
        style.configure("TFrame", background=bg_color)
        style.configure("TLabel", background=bg_color, foreground=fg_color)
        style.configure("TButton", padding=6, relief="flat", background="#e1e1e1")
        style.map("TButton",
                  background=[("active", "#d4d4d4"), ("disabled", "#f0f0f0")],
                  foreground=[("disabled", "#a0a0a0")])
        style.configure("Treeview", background="white", fieldbackground="white",
                        foreground=fg_color, rowheight=28, font=font)
        style.configure("Treeview.Heading", font=(font[0], font[1], "bold"),
                        background="#e1e1e1", relief="flat")
        style.map("Treeview", background=[("selected", accent_color)],
                  foreground=[("selected", "white")])

        style.configure("Error.TFrame", background="#fdecea")
        style.configure("Error.TLabel", background="#fdecea", foreground="#b00020")

    def setup_gui(self) -> None:
        """Menu, status bar and the two-pane catalog layout."""
        self.master.title("Laserio Admin: каталог")
        self.master.geometry(
            f"{self.config.window_size[0]}x{self.config.window_size[1]}")
        self.create_menu()

        self.status_var = tk.StringVar(value="")
        ttk.Label(self.master, textvariable=self.status_var, relief=tk.SUNKEN,
                  padding=(8, 2)).pack(side=tk.BOTTOM, fill=tk.X)

        self.paned = ttk.PanedWindow(self.master, orient=tk.HORIZONTAL)
        self.paned.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)
        self.tree_panel = CategoryTreePanel(self.paned, self.tree_controller)
        self.product_panel = ProductPanel(self.paned, self.products_controller)
        self.paned.add(self.tree_panel, weight=1)
        self.paned.add(self.product_panel, weight=2)

        self.tree_controller.state.subscribe("loading", self._update_status)
        self.products_controller.state.subscribe("products_loading", self._update_status)

    def create_menu(self) -> None:
        """Catalog menu: refresh, logout, close."""
        menubar = tk.Menu(self.master)

        catalog_menu = tk.Menu(menubar, tearoff=0)
        catalog_menu.add_command(label="Обновить", accelerator="F5",
                                 command=self.refresh_all)
        catalog_menu.add_separator()
        catalog_menu.add_command(label="Выйти из аккаунта", command=self.logout)
        catalog_menu.add_command(label="Закрыть", command=self.master.quit)
        menubar.add_cascade(label="Каталог", menu=catalog_menu)

        self.master.config(menu=menubar)

    def bind_shortcuts(self) -> None:
        self.master.bind("<F5>", lambda _e: self.refresh_all())

    def start(self) -> None:
        """Kick off the initial tree and category loads."""
        self.tree_controller.load()
        self.products_controller.load_categories()

    def refresh_all(self) -> None:
        self.tree_controller.reload()
        self.products_controller.load_categories()
        self.products_controller.refresh()

    def _update_status(self, _value: bool) -> None:
        busy = self.tree_controller.loading or self.products_controller.products_loading
        self.status_var.set("Загрузка данных..." if busy else "Готово")

    def logout(self) -> None:
        if not messagebox.askyesno("Выход", "Завершить сеанс администратора?",
                                   parent=self.master):
            return
        logger.info("Logout requested from the catalog window")
        self.session.logout()
        self.destroy()
        if self.on_logout:
            self.on_logout()

    def destroy(self) -> None:
        self.master.unbind("<F5>")
        self.master.config(menu=tk.Menu(self.master))
        self.paned.destroy()
        for child in self.master.pack_slaves():
            child.destroy()

"""
Tkinter views for the product list and the product form.
"""

from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Dict, List, Optional

from ..category_models import CategoryOption
from ..forms import slug_warning
from ..product_models import ProductListItem
from ..products import ProductEditor, ProductListController
from .components import ErrorBanner, TreeviewManager

NO_CATEGORY_LABEL = "Не выбрана"


def _format_price(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}".replace(",", " ")
    return f"{value:,.2f}".replace(",", " ")


class ProductFormDialog(tk.Toplevel):
    """Dialog bound to the controller's open product editor."""

    def __init__(self, parent: tk.Misc, controller: ProductListController):
        super().__init__(parent)
        self.controller = controller
        editor = controller.editor
        self.title(editor.title if editor else "Товар")
        self.geometry("720x620")
        self.transient(parent)

        self._category_ids: Dict[str, int] = {
            category.name: category.id for category in controller.categories
        }
        self._build_form()
        self._load_from_editor()
        self.controller.state.subscribe("editor", self._on_editor_changed)
        self.protocol("WM_DELETE_WINDOW", self._on_cancel)
        self.grab_set()
        self.focus()

    def _build_form(self) -> None:
        frame = ttk.Frame(self, padding=12)
        frame.pack(fill=tk.BOTH, expand=True)
        frame.columnconfigure(1, weight=1)

        ttk.Label(frame, text="Категория:").grid(
            row=0, column=0, sticky="w", pady=4, padx=(0, 8)
        )
        self.category_var = tk.StringVar()
        ttk.Combobox(
            frame,
            textvariable=self.category_var,
            values=list(self._category_ids.keys()),
            state="readonly",
        ).grid(row=0, column=1, sticky="ew", pady=4)

        ttk.Label(frame, text="Название:").grid(
            row=1, column=0, sticky="w", pady=4, padx=(0, 8)
        )
        self.name_var = tk.StringVar()
        name_entry = ttk.Entry(frame, textvariable=self.name_var)
        name_entry.grid(row=1, column=1, sticky="ew", pady=4)
        name_entry.bind("<KeyRelease>", self._on_name_changed)

        ttk.Label(frame, text="Slug:").grid(
            row=2, column=0, sticky="w", pady=4, padx=(0, 8)
        )
        self.slug_var = tk.StringVar()
        ttk.Entry(frame, textvariable=self.slug_var).grid(
            row=2, column=1, sticky="ew", pady=4
        )
        self.slug_var.trace_add("write", self._on_slug_typed)

        ttk.Label(frame, text="Цена:").grid(
            row=3, column=0, sticky="w", pady=4, padx=(0, 8)
        )
        self.price_var = tk.StringVar(value="0")
        ttk.Entry(frame, textvariable=self.price_var, width=16).grid(
            row=3, column=1, sticky="w", pady=4
        )

        ttk.Label(frame, text="Описание (content_html):").grid(
            row=4, column=0, sticky="nw", pady=4, padx=(0, 8)
        )
        self.content_text = tk.Text(frame, height=8, wrap=tk.WORD)
        self.content_text.grid(row=4, column=1, sticky="nsew", pady=4)

        ttk.Label(frame, text="Характеристики (specs_html):").grid(
            row=5, column=0, sticky="nw", pady=4, padx=(0, 8)
        )
        self.specs_text = tk.Text(frame, height=8, wrap=tk.WORD)
        self.specs_text.grid(row=5, column=1, sticky="nsew", pady=4)
        frame.rowconfigure(4, weight=1)
        frame.rowconfigure(5, weight=1)

        self.error_var = tk.StringVar()
        ttk.Label(
            frame, textvariable=self.error_var, foreground="#b00020", wraplength=560
        ).grid(row=6, column=0, columnspan=2, sticky="w", pady=(6, 0))
        self.warning_var = tk.StringVar()
        ttk.Label(
            frame, textvariable=self.warning_var, foreground="#a15c00", wraplength=560
        ).grid(row=7, column=0, columnspan=2, sticky="w")

        buttons = ttk.Frame(self, padding=(12, 0, 12, 12))
        buttons.pack(fill=tk.X)
        ttk.Button(buttons, text="Вставить JSON", command=self._on_paste_json).pack(
            side=tk.LEFT
        )
        self.cancel_button = ttk.Button(buttons, text="Отмена", command=self._on_cancel)
        self.cancel_button.pack(side=tk.RIGHT, padx=(8, 0))
        self.save_button = ttk.Button(buttons, text="Сохранить", command=self._on_accept)
        self.save_button.pack(side=tk.RIGHT)

    def _category_label(self, category_id: Optional[int]) -> str:
        for label, value in self._category_ids.items():
            if value == category_id:
                return label
        return ""

    def _load_from_editor(self) -> None:
        editor = self.controller.editor
        if editor is None:
            return
        form = editor.form
        self.category_var.set(self._category_label(form.category_id))
        self.name_var.set(form.name)
        self.slug_var.set(form.slug)
        self.price_var.set(_format_price(form.price or 0).replace(" ", ""))
        for widget, value in (
            (self.content_text, form.content_html),
            (self.specs_text, form.specs_html),
        ):
            widget.delete("1.0", tk.END)
            widget.insert("1.0", value or "")
        self.error_var.set(editor.error or "")

    def _on_name_changed(self, _event: tk.Event) -> None:
        editor = self.controller.editor
        if editor is None:
            return
        typed_slug = self.slug_var.get().strip()
        if typed_slug != editor.form.slug:
            self.controller.update_form(name=self.name_var.get(), slug=typed_slug)
        else:
            self.controller.update_form(name=self.name_var.get())
        self.slug_var.set(editor.form.slug)

    def _on_slug_typed(self, *_args) -> None:
        self.warning_var.set(slug_warning(self.slug_var.get()) or "")

    def _push_form(self) -> bool:
        price_raw = self.price_var.get().strip().replace(",", ".")
        try:
            price = float(price_raw) if price_raw else 0.0
        except ValueError:
            self.error_var.set("Цена должна быть числом.")
            return False
        self.controller.update_form(
            name=self.name_var.get().strip(),
            slug=self.slug_var.get().strip(),
            price=price,
            category_id=self._category_ids.get(self.category_var.get()),
            content_html=self.content_text.get("1.0", tk.END).strip(),
            specs_html=self.specs_text.get("1.0", tk.END).strip(),
        )
        return True

    def _on_paste_json(self) -> None:
        try:
            text = self.clipboard_get()
        except tk.TclError:
            text = ""
        if self._push_form() and self.controller.apply_prefill(text):
            self._load_from_editor()

    def _on_accept(self) -> None:
        if self._push_form():
            self.controller.save()

    def _on_cancel(self) -> None:
        if self.controller.cancel():
            return
        if self.controller.editor is None:
            self._close()

    def _on_editor_changed(self, editor: Optional[ProductEditor]) -> None:
        if editor is None:
            self._close()
            return
        self.error_var.set(editor.error or "")
        state = tk.DISABLED if editor.saving else tk.NORMAL
        self.save_button.configure(state=state, text="Сохранение..." if editor.saving else "Сохранить")
        self.cancel_button.configure(state=state)

    def _close(self) -> None:
        self.controller.state.unsubscribe("editor", self._on_editor_changed)
        if self.winfo_exists():
            self.grab_release()
            self.destroy()


class ProductPanel(ttk.Frame):
    """Right pane: category picker and the product table."""

    def __init__(self, parent: tk.Misc, controller: ProductListController):
        super().__init__(parent, padding=(8, 0, 0, 0))
        self.controller = controller
        self._dialog: Optional[ProductFormDialog] = None
        self._slug_by_label: Dict[str, str] = {NO_CATEGORY_LABEL: ""}
        self._items: Dict[str, ProductListItem] = {}

        self._build_ui()
        state = controller.state
        state.subscribe("categories", self._on_categories_changed)
        state.subscribe("selected_slug", self._on_selected_slug)
        state.subscribe("products", self._on_products_changed)
        state.subscribe("products_loading", self._on_loading_changed)
        state.subscribe("categories_error", self.categories_banner.show)
        state.subscribe("products_error", self.products_banner.show)
        state.subscribe("detail_error", self._on_detail_error)
        state.subscribe("editor", self._on_editor_opened)

    def _build_ui(self) -> None:
        header = ttk.Frame(self)
        header.pack(fill=tk.X, pady=(0, 6))
        ttk.Label(header, text="Товары", font=("Segoe UI", 13, "bold")).pack(side=tk.LEFT)
        self.add_button = ttk.Button(
            header, text="Добавить товар", command=self.controller.begin_create,
            state=tk.DISABLED,
        )
        self.add_button.pack(side=tk.RIGHT)
        self.refresh_button = ttk.Button(
            header, text="Обновить", command=self.controller.refresh, state=tk.DISABLED
        )
        self.refresh_button.pack(side=tk.RIGHT, padx=(0, 8))

        picker = ttk.Frame(self)
        picker.pack(fill=tk.X, pady=(0, 6))
        ttk.Label(picker, text="Категория:").pack(side=tk.LEFT, padx=(0, 8))
        self.category_var = tk.StringVar(value=NO_CATEGORY_LABEL)
        self.category_combo = ttk.Combobox(
            picker, textvariable=self.category_var, values=[NO_CATEGORY_LABEL],
            state="readonly", width=36,
        )
        self.category_combo.pack(side=tk.LEFT)
        self.category_combo.bind("<<ComboboxSelected>>", self._on_category_picked)

        self.status_var = tk.StringVar(value="Сначала выберите категорию.")
        ttk.Label(self, textvariable=self.status_var, foreground="#666666").pack(fill=tk.X)

        table_frame = ttk.Frame(self)
        self.categories_banner = ErrorBanner(self, on_dismiss=self.controller.dismiss_errors)
        self.categories_banner.place_options(fill=tk.X, pady=(0, 6), before=table_frame)
        self.products_banner = ErrorBanner(self, on_dismiss=self.controller.dismiss_errors)
        self.products_banner.place_options(fill=tk.X, pady=(0, 6), before=table_frame)
        table_frame.pack(fill=tk.BOTH, expand=True)

        self.tree = ttk.Treeview(table_frame, show="headings", selectmode="browse")
        self.table = TreeviewManager(
            self.tree,
            {
                "name": {"text": "Название", "width": 260},
                "slug": {"text": "Slug", "width": 200},
                "price": {"text": "Цена", "width": 90, "anchor": tk.E, "numeric": True},
            },
        )
        self.tree.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        scrollbar = ttk.Scrollbar(table_frame, orient=tk.VERTICAL, command=self.tree.yview)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)
        self.tree.configure(yscrollcommand=scrollbar.set)
        self.tree.bind("<Double-1>", lambda _e: self._edit_selected())

        buttons = ttk.Frame(self)
        buttons.pack(fill=tk.X, pady=(6, 0))
        ttk.Button(buttons, text="Редактировать", command=self._edit_selected).pack(
            side=tk.LEFT
        )

    def _on_categories_changed(self, categories: List[CategoryOption]) -> None:
        self._slug_by_label = {NO_CATEGORY_LABEL: ""}
        for category in categories:
            self._slug_by_label[category.name] = category.slug
        self.category_combo.configure(values=list(self._slug_by_label.keys()))
        self.add_button.configure(state=tk.NORMAL if categories else tk.DISABLED)
        self._on_selected_slug(self.controller.selected_slug)

    def _on_category_picked(self, _event: tk.Event) -> None:
        self.controller.select_category(self._slug_by_label.get(self.category_var.get(), ""))

    def _on_selected_slug(self, slug: str) -> None:
        label = next(
            (name for name, value in self._slug_by_label.items() if value == slug),
            NO_CATEGORY_LABEL,
        )
        self.category_var.set(label)
        self.refresh_button.configure(state=tk.NORMAL if slug else tk.DISABLED)
        if not slug:
            self.status_var.set("Сначала выберите категорию.")

    def _on_products_changed(self, products: List[ProductListItem]) -> None:
        self._items = {str(item.id): item for item in products}
        self.table.replace_rows([
            {
                "iid": str(item.id),
                "name": item.name,
                "slug": item.slug,
                "price": _format_price(item.price),
            }
            for item in products
        ])
        if self.controller.selected_slug:
            self.status_var.set(
                "" if products else "В выбранной категории пока нет товаров."
            )

    def _on_loading_changed(self, loading: bool) -> None:
        if loading:
            self.status_var.set("Загрузка...")
            self.refresh_button.configure(state=tk.DISABLED)
        else:
            self.refresh_button.configure(
                state=tk.NORMAL if self.controller.selected_slug else tk.DISABLED
            )
            if self.controller.products_error:
                self.status_var.set("")

    def _on_detail_error(self, message: Optional[str]) -> None:
        if message:
            self.products_banner.show(message)

    def _edit_selected(self) -> None:
        selection = self.tree.selection()
        item = self._items.get(selection[0]) if selection else None
        if item is not None:
            self.controller.begin_edit(item)

    def _on_editor_opened(self, editor: Optional[ProductEditor]) -> None:
        if editor is None:
            self._dialog = None
            return
        if self._dialog is not None and self._dialog.winfo_exists():
            return
        self._dialog = ProductFormDialog(self.winfo_toplevel(), self.controller)

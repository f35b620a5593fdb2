"""
Tkinter views for the category tree and the category form.
"""

from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Optional

from ..category_models import CategoryForest
from ..category_tree import CategoryEditor, CategoryTreeController
from ..forms import slug_warning
from .components import ErrorBanner


class CategoryFormDialog(tk.Toplevel):
    """Dialog bound to the controller's open category editor."""

    def __init__(self, parent: tk.Misc, controller: CategoryTreeController):
        super().__init__(parent)
        self.controller = controller
        editor = controller.editor
        self.title(editor.title if editor else "Категория")
        self.resizable(False, False)
        self.transient(parent)

        self._build_form()
        self._load_from_editor()
        self.controller.state.subscribe("editor", self._on_editor_changed)
        self.protocol("WM_DELETE_WINDOW", self._on_cancel)
        self.grab_set()
        self.focus()

    def _build_form(self) -> None:
        frame = ttk.Frame(self, padding=12)
        frame.grid(row=0, column=0, sticky="nsew")
        self.columnconfigure(0, weight=1)
        frame.columnconfigure(1, weight=1)

        self.parent_var = tk.StringVar()
        ttk.Label(frame, textvariable=self.parent_var, foreground="#666666").grid(
            row=0, column=0, columnspan=2, sticky="w", pady=(0, 4)
        )

        ttk.Label(frame, text="Название:").grid(
            row=1, column=0, sticky="w", pady=4, padx=(0, 8)
        )
        self.name_var = tk.StringVar()
        name_entry = ttk.Entry(frame, textvariable=self.name_var, width=44)
        name_entry.grid(row=1, column=1, sticky="ew", pady=4)
        name_entry.bind("<KeyRelease>", self._on_name_changed)

        ttk.Label(frame, text="Slug:").grid(
            row=2, column=0, sticky="w", pady=4, padx=(0, 8)
        )
        self.slug_var = tk.StringVar()
        ttk.Entry(frame, textvariable=self.slug_var, width=44).grid(
            row=2, column=1, sticky="ew", pady=4
        )
        self.slug_var.trace_add("write", self._on_slug_typed)

        ttk.Label(frame, text="Описание (HTML):").grid(
            row=3, column=0, sticky="nw", pady=4, padx=(0, 8)
        )
        self.description_text = tk.Text(frame, width=44, height=6)
        self.description_text.grid(row=3, column=1, sticky="ew", pady=4)

        ttk.Label(frame, text="Порядок сортировки:").grid(
            row=4, column=0, sticky="w", pady=4, padx=(0, 8)
        )
        self.order_var = tk.StringVar(value="0")
        ttk.Entry(frame, textvariable=self.order_var, width=12).grid(
            row=4, column=1, sticky="w", pady=4
        )

        self.active_var = tk.BooleanVar(value=True)
        ttk.Checkbutton(frame, text="Активна", variable=self.active_var).grid(
            row=5, column=1, sticky="w", pady=2
        )
        self.featured_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(
            frame, text="Только избранные товары", variable=self.featured_var
        ).grid(row=6, column=1, sticky="w", pady=2)

        self.error_var = tk.StringVar()
        ttk.Label(
            frame, textvariable=self.error_var, foreground="#b00020", wraplength=360
        ).grid(row=7, column=0, columnspan=2, sticky="w", pady=(6, 0))
        self.warning_var = tk.StringVar()
        ttk.Label(
            frame, textvariable=self.warning_var, foreground="#a15c00", wraplength=360
        ).grid(row=8, column=0, columnspan=2, sticky="w")

        buttons = ttk.Frame(self, padding=(12, 0, 12, 12))
        buttons.grid(row=1, column=0, sticky="ew")
        ttk.Button(buttons, text="Вставить JSON", command=self._on_paste_json).pack(
            side=tk.LEFT
        )
        self.cancel_button = ttk.Button(buttons, text="Отмена", command=self._on_cancel)
        self.cancel_button.pack(side=tk.RIGHT, padx=(8, 0))
        self.save_button = ttk.Button(buttons, text="Сохранить", command=self._on_accept)
        self.save_button.pack(side=tk.RIGHT)

    def _load_from_editor(self) -> None:
        editor = self.controller.editor
        if editor is None:
            return
        form = editor.form
        if editor.parent_id is not None:
            self.parent_var.set(f"Родительская категория ID: {editor.parent_id}")
        self.name_var.set(form.name)
        self.slug_var.set(form.slug)
        self.description_text.delete("1.0", tk.END)
        self.description_text.insert("1.0", form.description or "")
        self.order_var.set(str(form.sort_order))
        self.active_var.set(bool(form.is_active))
        self.featured_var.set(bool(form.featured_only))
        self.error_var.set(editor.error or "")

    def _on_name_changed(self, _event: tk.Event) -> None:
        editor = self.controller.editor
        if editor is None:
            return
        typed_slug = self.slug_var.get().strip()
        if typed_slug != editor.form.slug:
            # A hand-typed slug wins over the derived one.
            self.controller.update_form(name=self.name_var.get(), slug=typed_slug)
        else:
            self.controller.update_form(name=self.name_var.get())
        self.slug_var.set(editor.form.slug)

    def _on_slug_typed(self, *_args) -> None:
        self.warning_var.set(slug_warning(self.slug_var.get()) or "")

    def _push_form(self) -> bool:
        order_raw = self.order_var.get().strip()
        try:
            order = int(order_raw) if order_raw else 0
        except ValueError:
            self.error_var.set("Порядок сортировки должен быть целым числом.")
            return False
        self.controller.update_form(
            name=self.name_var.get().strip(),
            slug=self.slug_var.get().strip(),
            description=self.description_text.get("1.0", tk.END).strip(),
            sort_order=order,
            is_active=self.active_var.get(),
            featured_only=self.featured_var.get(),
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

    def _on_editor_changed(self, editor: Optional[CategoryEditor]) -> None:
        if editor is None:
            self._close()
            return
        self.error_var.set(editor.error or "")
        state = tk.DISABLED if editor.saving else tk.NORMAL
        self.save_button.configure(state=state)
        self.cancel_button.configure(state=state)
        self.save_button.configure(text="Сохранение..." if editor.saving else "Сохранить")

    def _close(self) -> None:
        self.controller.state.unsubscribe("editor", self._on_editor_changed)
        if self.winfo_exists():
            self.grab_release()
            self.destroy()


class CategoryTreePanel(ttk.Frame):
    """Left pane: the category tree with create/edit actions."""

    def __init__(self, parent: tk.Misc, controller: CategoryTreeController):
        super().__init__(parent, padding=(0, 0, 8, 0))
        self.controller = controller
        self._dialog: Optional[CategoryFormDialog] = None

        self._build_ui()
        state = controller.state
        state.subscribe("forest", self._on_forest_changed)
        state.subscribe("loading", self._on_loading_changed)
        state.subscribe("error", self.error_banner.show)
        state.subscribe("editor", self._on_editor_opened)

    def _build_ui(self) -> None:
        header = ttk.Frame(self)
        header.pack(fill=tk.X, pady=(0, 6))
        ttk.Label(header, text="Категории", font=("Segoe UI", 13, "bold")).pack(
            side=tk.LEFT
        )
        ttk.Button(
            header, text="Добавить категорию",
            command=lambda: self.controller.begin_create(None),
        ).pack(side=tk.RIGHT)

        self.status_var = tk.StringVar(value="")
        ttk.Label(self, textvariable=self.status_var, foreground="#666666").pack(
            fill=tk.X
        )

        tree_frame = ttk.Frame(self)
        self.error_banner = ErrorBanner(self, on_dismiss=self.controller.dismiss_error)
        self.error_banner.place_options(fill=tk.X, pady=(0, 6), before=tree_frame)
        tree_frame.pack(fill=tk.BOTH, expand=True)

        self.tree = ttk.Treeview(
            tree_frame,
            columns=("slug", "count"),
            show="tree headings",
            selectmode="browse",
        )
        self.tree.heading("#0", text="Название")
        self.tree.heading("slug", text="Slug")
        self.tree.heading("count", text="Товаров")
        self.tree.column("#0", width=240, stretch=True)
        self.tree.column("slug", width=160, stretch=False)
        self.tree.column("count", width=70, anchor=tk.CENTER, stretch=False)
        self.tree.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        scrollbar = ttk.Scrollbar(tree_frame, orient=tk.VERTICAL, command=self.tree.yview)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)
        self.tree.configure(yscrollcommand=scrollbar.set)

        self.tree.bind("<<TreeviewOpen>>", lambda _e: self._on_tree_toggle(True))
        self.tree.bind("<<TreeviewClose>>", lambda _e: self._on_tree_toggle(False))
        self.tree.bind("<<TreeviewSelect>>", self._on_tree_select)
        self.tree.bind("<Double-1>", lambda _e: self._edit_selected())

        buttons = ttk.Frame(self)
        buttons.pack(fill=tk.X, pady=(6, 0))
        ttk.Button(buttons, text="Добавить подкатегорию", command=self._add_child).pack(
            side=tk.LEFT, padx=(0, 8)
        )
        ttk.Button(buttons, text="Редактировать", command=self._edit_selected).pack(
            side=tk.LEFT, padx=(0, 8)
        )
        ttk.Button(buttons, text="Обновить", command=self.controller.load).pack(
            side=tk.RIGHT
        )

    def _on_forest_changed(self, forest: CategoryForest) -> None:
        selected = self._selected_id()
        self.tree.delete(*self.tree.get_children())
        for row in self.controller.rows():
            parent_iid = "" if row.parent_id is None else str(row.parent_id)
            self.tree.insert(
                parent_iid,
                "end",
                iid=str(row.node.id),
                text=row.node.name,
                values=(row.node.slug, row.node.desc_product_count),
                open=row.expanded,
            )
        if selected is not None and self.tree.exists(str(selected)):
            self.tree.selection_set(str(selected))
        self.status_var.set("" if len(forest) else "Категорий пока нет.")

    def _on_loading_changed(self, loading: bool) -> None:
        if loading:
            self.status_var.set("Загрузка...")
        elif self.controller.error is None:
            self.status_var.set("" if len(self.controller.forest) else "Категорий пока нет.")
        else:
            self.status_var.set("")

    def _selected_id(self) -> Optional[int]:
        selection = self.tree.selection()
        iid = selection[0] if selection else self.tree.focus()
        if not iid:
            return None
        try:
            return int(iid)
        except ValueError:
            return None

    def _on_tree_toggle(self, expanded: bool) -> None:
        # Tk focuses the clicked row before the event; the selection may differ.
        iid = self.tree.focus()
        if iid:
            self.controller.set_expanded(int(iid), expanded)

    def _on_tree_select(self, _event: tk.Event) -> None:
        node_id = self._selected_id()
        if node_id is not None:
            self.controller.select(node_id)

    def _add_child(self) -> None:
        self.controller.begin_create(self._selected_id())

    def _edit_selected(self) -> None:
        node_id = self._selected_id()
        if node_id is not None:
            self.controller.begin_edit(node_id)

    def _on_editor_opened(self, editor: Optional[CategoryEditor]) -> None:
        if editor is None:
            self._dialog = None
            return
        if self._dialog is not None and self._dialog.winfo_exists():
            return
        self._dialog = CategoryFormDialog(self.winfo_toplevel(), self.controller)

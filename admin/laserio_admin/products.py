"""
Product pane controller: category picker, product list and product edits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from .api_client import CatalogApiClient
from .category_models import CategoryOption
from .category_tree import error_message
from .errors import FormValidationError, PrefillError
from .forms import ProductFormState, apply_prefill, derive_slug
from .product_models import CategoryProducts, Pagination, ProductDetail, ProductListItem
from .state import UIState
from .tasks import ImmediateRunner, TaskRunner

logger = logging.getLogger(__name__)

CATEGORIES_ERROR_MESSAGE = "Не удалось загрузить список категорий."
PRODUCTS_ERROR_MESSAGE = "Не удалось загрузить товары для выбранной категории."
DETAIL_ERROR_MESSAGE = "Не удалось загрузить данные товара."
SAVE_ERROR_MESSAGE = "Не удалось сохранить товар."


@dataclass
class ProductEditor:
    mode: str
    form: ProductFormState
    product_id: Optional[int] = None
    error: Optional[str] = None
    saving: bool = False

    @property
    def title(self) -> str:
        return "Редактирование товара" if self.mode == "edit" else "Новый товар"


class ProductListController:
    """State of the product pane.

    Every product-list request is tagged with a sequence number and the slug
    it was issued for; responses that do not match the latest request are
    dropped so a slow answer for an old category never replaces the list of
    the current one.
    """

    def __init__(self, client: CatalogApiClient, runner: Optional[TaskRunner] = None):
        self.client = client
        self.runner: TaskRunner = runner or ImmediateRunner()
        self.state = UIState()

        self.categories: List[CategoryOption] = []
        self.categories_loading = False
        self.categories_error: Optional[str] = None

        self.selected_slug = ""
        self.products: List[ProductListItem] = []
        self.pagination = Pagination()
        self.products_loading = False
        self.products_error: Optional[str] = None
        self._products_seq = 0

        self.editor: Optional[ProductEditor] = None
        self.detail_loading = False
        self.detail_error: Optional[str] = None
        self._changed_callbacks: List[Callable[[], None]] = []

    # Categories

    def load_categories(self) -> bool:
        if self.categories_loading:
            return False
        self.categories_loading = True
        self.categories_error = None
        self.state.update("categories_loading", True)
        self.runner.submit(
            self.client.list_categories,
            self._on_categories_loaded,
            self._on_categories_error,
        )
        return True

    def _on_categories_loaded(self, categories: List[CategoryOption]) -> None:
        self.categories_loading = False
        self.categories = list(categories)
        self.state.update("categories_loading", False)
        self.state.update("categories", self.categories)

    def _on_categories_error(self, exc: Exception) -> None:
        logger.warning("Category list load failed: %s", exc)
        self.categories_loading = False
        self.categories_error = error_message(exc, CATEGORIES_ERROR_MESSAGE)
        self.state.update("categories_loading", False)
        self.state.update("categories_error", self.categories_error)

    def selected_category(self) -> Optional[CategoryOption]:
        for category in self.categories:
            if category.slug == self.selected_slug:
                return category
        return None

    # Products

    def select_category(self, slug: str) -> None:
        slug = (slug or "").strip()
        self.selected_slug = slug
        self.state.update("selected_slug", slug)
        if not slug:
            # Invalidate anything still in flight for the previous category.
            self._products_seq += 1
            self._set_products([], Pagination())
            self._set_products_loading(False)
            return
        self.load_products()

    def load_products(self, page: int = 1) -> bool:
        slug = self.selected_slug
        if not slug:
            return False
        self._products_seq += 1
        seq = self._products_seq
        self.products_error = None
        self.state.update("products_error", None)
        self._set_products_loading(True)
        self.runner.submit(
            lambda: self.client.get_category_products(slug, page=page),
            lambda result: self._on_products_loaded(seq, slug, result),
            lambda exc: self._on_products_error(seq, slug, exc),
        )
        return True

    def refresh(self) -> bool:
        if self.products_loading:
            return False
        return self.load_products(self.pagination.page or 1)

    def _is_current(self, seq: int, slug: str) -> bool:
        return seq == self._products_seq and slug == self.selected_slug

    def _on_products_loaded(self, seq: int, slug: str, result: CategoryProducts) -> None:
        if not self._is_current(seq, slug):
            logger.debug("Discarding stale products for '%s'", slug)
            return
        self._set_products_loading(False)
        self._set_products(result.products, result.pagination)

    def _on_products_error(self, seq: int, slug: str, exc: Exception) -> None:
        if not self._is_current(seq, slug):
            logger.debug("Discarding stale products error for '%s'", slug)
            return
        logger.warning("Products load for '%s' failed: %s", slug, exc)
        self.products_error = error_message(exc, PRODUCTS_ERROR_MESSAGE)
        self._set_products_loading(False)
        self.state.update("products_error", self.products_error)

    def _set_products(self, products: List[ProductListItem], pagination: Pagination) -> None:
        self.products = list(products)
        self.pagination = pagination
        self.state.update("products", self.products)

    def _set_products_loading(self, value: bool) -> None:
        self.products_loading = value
        self.state.update("products_loading", value)

    def dismiss_errors(self) -> None:
        self.categories_error = None
        self.products_error = None
        self.detail_error = None
        self.state.update("categories_error", None)
        self.state.update("products_error", None)
        self.state.update("detail_error", None)

    # Create / edit

    def on_products_changed(self, callback: Callable[[], None]) -> None:
        self._changed_callbacks.append(callback)

    def begin_create(self) -> ProductEditor:
        selected = self.selected_category()
        self.editor = ProductEditor(
            mode="create",
            form=ProductFormState(category_id=selected.id if selected else None),
        )
        self.state.update("editor", self.editor)
        return self.editor

    def begin_edit(self, item: ProductListItem) -> bool:
        """Fetch the product detail, then open the edit form."""
        if self.detail_loading:
            return False
        self.detail_loading = True
        self.detail_error = None
        self.state.update("detail_error", None)
        self.runner.submit(
            lambda: self.client.get_product(item.slug),
            self._on_detail_loaded,
            self._on_detail_error,
        )
        return True

    def _on_detail_loaded(self, detail: ProductDetail) -> None:
        self.detail_loading = False
        self.editor = ProductEditor(
            mode="edit",
            form=ProductFormState.from_detail(detail),
            product_id=detail.id,
        )
        self.state.update("editor", self.editor)

    def _on_detail_error(self, exc: Exception) -> None:
        logger.warning("Product detail load failed: %s", exc)
        self.detail_loading = False
        self.detail_error = error_message(exc, DETAIL_ERROR_MESSAGE)
        self.state.update("detail_error", self.detail_error)

    def update_form(self, **changes) -> None:
        editor = self.editor
        if editor is None:
            return
        previous_name = editor.form.name
        form = replace(editor.form, **changes)
        if editor.mode == "create" and "name" in changes and "slug" not in changes:
            form = derive_slug(form, previous_name)
        editor.form = form
        self.state.update("editor", editor)

    def apply_prefill(self, text: str) -> bool:
        editor = self.editor
        if editor is None:
            return False
        try:
            editor.form = apply_prefill(editor.form, text)
        except PrefillError as exc:
            editor.error = str(exc)
            self.state.update("editor", editor)
            return False
        editor.error = None
        self.state.update("editor", editor)
        return True

    def cancel(self) -> bool:
        if self.editor is None or self.editor.saving:
            return False
        self.editor = None
        self.state.update("editor", None)
        return True

    def save(self) -> bool:
        editor = self.editor
        if editor is None or editor.saving:
            return False
        try:
            editor.form.validate()
        except FormValidationError as exc:
            editor.error = str(exc)
            self.state.update("editor", editor)
            return False

        editor.saving = True
        editor.error = None
        self.state.update("editor", editor)
        payload = editor.form.to_payload()

        if editor.mode == "edit" and editor.product_id is not None:
            product_id = editor.product_id

            def operation():
                return self.client.update_product(product_id, payload)
        else:

            def operation():
                return self.client.create_product(payload)

        self.runner.submit(
            operation,
            lambda _result: self._on_save_success(editor),
            lambda exc: self._on_save_error(editor, exc),
        )
        return True

    def _on_save_success(self, editor: ProductEditor) -> None:
        editor.saving = False
        logger.info("Product '%s' saved (%s)", editor.form.slug, editor.mode)
        if self.editor is editor:
            self.editor = None
            self.state.update("editor", None)
        if self.selected_slug:
            self.load_products(self.pagination.page or 1)
        for callback in list(self._changed_callbacks):
            callback()

    def _on_save_error(self, editor: ProductEditor, exc: Exception) -> None:
        editor.saving = False
        editor.error = error_message(exc, SAVE_ERROR_MESSAGE)
        logger.warning("Product save failed: %s", exc)
        if self.editor is editor:
            self.state.update("editor", editor)

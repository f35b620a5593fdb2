"""
Category tree controller: forest, expansion state and the create/edit flow.

The controller is GUI-agnostic. Views subscribe to ``controller.state`` keys
(``forest``, ``loading``, ``error``, ``editor``, ``expanded``,
``selected_slug``) and call the public methods in response to user input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple, Union

from .api_client import CatalogApiClient
from .category_models import CategoryForest, CategoryNode
from .errors import ApiError, FormValidationError, PrefillError
from .forms import CategoryFormState, apply_prefill, derive_slug
from .state import UIState
from .tasks import ImmediateRunner, TaskRunner

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Не удалось загрузить дерево категорий."
SAVE_ERROR_MESSAGE = "Не удалось сохранить категорию."


def error_message(exc: Exception, fallback: str) -> str:
    """Message to show for a failed remote operation."""
    if isinstance(exc, ApiError) and exc.message:
        return exc.message
    return fallback


@dataclass(frozen=True)
class TreeRow:
    """One rendered line of the category tree."""

    node: CategoryNode
    depth: int
    parent_id: Optional[int]
    has_children: bool
    expanded: bool
    visible: bool


def walk_forest(
    forest: CategoryForest, expanded: Iterable[int] = ()
) -> Iterator[TreeRow]:
    """Yield every node once, depth-first, in the forest's display order.

    ``visible`` is False for nodes hidden under a collapsed ancestor; leaves
    report ``has_children=False`` and get no expand/collapse affordance.
    """
    expanded_ids = set(expanded)
    # (node_id, depth, parent_id, visible); siblings pushed in reverse
    stack: List[Tuple[int, int, Optional[int], bool]] = [
        (root_id, 0, None, True) for root_id in reversed(forest.roots)
    ]
    while stack:
        node_id, depth, parent_id, visible = stack.pop()
        is_expanded = node_id in expanded_ids
        yield TreeRow(
            node=forest.nodes[node_id],
            depth=depth,
            parent_id=parent_id,
            has_children=forest.has_children(node_id),
            expanded=is_expanded,
            visible=visible,
        )
        child_visible = visible and is_expanded
        stack.extend(
            (child_id, depth + 1, node_id, child_visible)
            for child_id in reversed(forest.children.get(node_id, []))
        )


class ExpansionState:
    """Set of category ids currently shown expanded."""

    def __init__(self, ids: Iterable[int] = ()):
        self._ids: Set[int] = set(ids)

    def toggle(self, node_id: int) -> bool:
        """Flip membership; returns the new expanded flag."""
        if node_id in self._ids:
            self._ids.discard(node_id)
            return False
        self._ids.add(node_id)
        return True

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._ids

    def __iter__(self) -> Iterator[int]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def snapshot(self) -> Set[int]:
        return set(self._ids)


@dataclass
class CategoryEditor:
    """Open create/edit dialog state."""

    mode: str
    form: CategoryFormState
    parent_id: Optional[int] = None
    node_id: Optional[int] = None
    error: Optional[str] = None
    saving: bool = False

    @property
    def title(self) -> str:
        if self.mode == "edit":
            return "Редактирование категории"
        if self.parent_id is not None:
            return "Новая подкатегория"
        return "Новая корневая категория"


class CategoryTreeController:
    """Holds the category forest and mediates edits against the API."""

    def __init__(self, client: CatalogApiClient, runner: Optional[TaskRunner] = None):
        self.client = client
        self.runner: TaskRunner = runner or ImmediateRunner()
        self.state = UIState()
        self.forest = CategoryForest()
        self.expansion = ExpansionState()
        self.error: Optional[str] = None
        self.loading = False
        self.editor: Optional[CategoryEditor] = None
        self._load_seq = 0
        self._select_callbacks: List[Callable[[str], None]] = []

    # Loading

    def load(self, *, force: bool = False) -> bool:
        """Fetch the whole forest.

        Returns False when a load is already in flight. ``force`` issues a new
        request anyway; the older response is then discarded on arrival.
        """
        if self.loading and not force:
            logger.debug("Category tree load already in flight; skipping")
            return False
        self._load_seq += 1
        seq = self._load_seq
        self._set_loading(True)
        self._set_error(None)
        self.runner.submit(
            self.client.get_category_tree,
            lambda forest: self._on_load_success(seq, forest),
            lambda exc: self._on_load_error(seq, exc),
        )
        return True

    def reload(self) -> bool:
        return self.load(force=True)

    def _on_load_success(self, seq: int, forest: CategoryForest) -> None:
        if seq != self._load_seq:
            logger.debug("Discarding stale category tree response #%s", seq)
            return
        self.forest = forest
        logger.info("Category tree loaded: %d categories", len(forest))
        self._set_loading(False)
        self.state.update("forest", forest)

    def _on_load_error(self, seq: int, exc: Exception) -> None:
        if seq != self._load_seq:
            logger.debug("Discarding stale category tree error #%s", seq)
            return
        logger.warning("Category tree load failed: %s", exc)
        self._set_loading(False)
        self._set_error(error_message(exc, LOAD_ERROR_MESSAGE))

    def _set_loading(self, value: bool) -> None:
        self.loading = value
        self.state.update("loading", value)

    def _set_error(self, message: Optional[str]) -> None:
        self.error = message
        self.state.update("error", message)

    def dismiss_error(self) -> None:
        self._set_error(None)

    # Expansion and rendering

    def toggle(self, node_id: int) -> bool:
        expanded = self.expansion.toggle(node_id)
        self.state.update("expanded", self.expansion.snapshot())
        return expanded

    def set_expanded(self, node_id: int, expanded: bool) -> bool:
        """Bring ``node_id`` to the given state; returns whether it changed."""
        if (node_id in self.expansion) == expanded:
            return False
        self.toggle(node_id)
        return True

    def rows(self) -> List[TreeRow]:
        return list(walk_forest(self.forest, self.expansion))

    def visible_rows(self) -> List[TreeRow]:
        return [row for row in walk_forest(self.forest, self.expansion) if row.visible]

    # Selection

    def on_select(self, callback: Callable[[str], None]) -> None:
        """Register an observer notified with the slug of a selected node."""
        self._select_callbacks.append(callback)

    def select(self, node: Union[CategoryNode, int]) -> None:
        resolved = self._resolve(node)
        if resolved is None:
            return
        self.state.update("selected_slug", resolved.slug)
        for callback in list(self._select_callbacks):
            callback(resolved.slug)

    def _resolve(self, node: Union[CategoryNode, int]) -> Optional[CategoryNode]:
        if isinstance(node, CategoryNode):
            return node
        return self.forest.get(node)

    # Create / edit

    def begin_create(self, parent_id: Optional[int] = None) -> CategoryEditor:
        self.editor = CategoryEditor(
            mode="create", form=CategoryFormState(), parent_id=parent_id
        )
        self.state.update("editor", self.editor)
        return self.editor

    def begin_edit(self, node: Union[CategoryNode, int]) -> Optional[CategoryEditor]:
        resolved = self._resolve(node)
        if resolved is None:
            logger.warning("Cannot edit unknown category %r", node)
            return None
        self.editor = CategoryEditor(
            mode="edit",
            form=CategoryFormState.from_node(resolved),
            parent_id=self.forest.parent_of(resolved.id),
            node_id=resolved.id,
        )
        self.state.update("editor", self.editor)
        return self.editor

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
        """Merge pasted JSON into the open form; errors stay inline."""
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
        """Validate and submit the open form.

        Returns False when nothing was sent: no open form, a save already in
        flight, or a validation error (reported on ``editor.error``).
        """
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

        if editor.mode == "edit" and editor.node_id is not None:
            node_id = editor.node_id
            payload = editor.form.to_payload()

            def operation():
                return self.client.update_category(node_id, payload)
        else:
            payload = editor.form.to_payload(parent_id=editor.parent_id)

            def operation():
                return self.client.create_category(payload)

        self.runner.submit(
            operation,
            lambda _result: self._on_save_success(editor),
            lambda exc: self._on_save_error(editor, exc),
        )
        return True

    def _on_save_success(self, editor: CategoryEditor) -> None:
        editor.saving = False
        logger.info("Category '%s' saved (%s)", editor.form.slug, editor.mode)
        if self.editor is editor:
            self.editor = None
            self.state.update("editor", None)
        self.load(force=True)

    def _on_save_error(self, editor: CategoryEditor, exc: Exception) -> None:
        editor.saving = False
        editor.error = error_message(exc, SAVE_ERROR_MESSAGE)
        logger.warning("Category save failed: %s", exc)
        if self.editor is editor:
            self.state.update("editor", editor)

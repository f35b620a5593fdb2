"""
Data models for the catalog category tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .errors import CategoryDataError


def _coerce_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class CategoryNode:
    """A single category; children are referenced through the forest."""

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    desc_product_count: int = 0
    sort_order: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryNode":
        if "id" not in data:
            raise CategoryDataError("Category entry without id")
        try:
            node_id = int(data["id"])
        except (TypeError, ValueError) as exc:
            raise CategoryDataError(f"Invalid category id: {data['id']!r}") from exc
        return cls(
            id=node_id,
            name=str(data.get("name") or ""),
            slug=str(data.get("slug") or ""),
            description=_optional_text(data.get("description")),
            desc_product_count=_coerce_int(data.get("desc_product_count"), 0),
            sort_order=_coerce_int(data.get("sort_order"), 0),
        )


@dataclass
class CategoryForest:
    """Arena storage for the category forest.

    Nodes live in a flat id mapping; the hierarchy is kept as ordered child
    id lists so lookups by id stay O(1) and no node owns another.
    """

    nodes: Dict[int, CategoryNode] = field(default_factory=dict)
    children: Dict[int, List[int]] = field(default_factory=dict)
    parents: Dict[int, Optional[int]] = field(default_factory=dict)
    roots: List[int] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "CategoryForest":
        """Build a forest from the nested ``categories/tree`` payload."""
        if payload is None:
            return cls()
        if not isinstance(payload, list):
            raise CategoryDataError("Category tree payload must be a list")
        forest = cls()
        stack = [(entry, None) for entry in reversed(payload)]
        while stack:
            entry, parent_id = stack.pop()
            if not isinstance(entry, dict):
                raise CategoryDataError(f"Invalid category entry: {entry!r}")
            node = CategoryNode.from_dict(entry)
            forest._attach(node, parent_id)
            raw_children = entry.get("children") or []
            if not isinstance(raw_children, list):
                raise CategoryDataError(
                    f"Children of category {node.id} must be a list"
                )
            stack.extend((child, node.id) for child in reversed(raw_children))
        return forest

    def _attach(self, node: CategoryNode, parent_id: Optional[int]) -> None:
        if node.id in self.nodes:
            raise CategoryDataError(f"Duplicate category id: {node.id}")
        self.nodes[node.id] = node
        self.children[node.id] = []
        self.parents[node.id] = parent_id
        if parent_id is None:
            self.roots.append(node.id)
        else:
            self.children[parent_id].append(node.id)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def get(self, node_id: int) -> Optional[CategoryNode]:
        return self.nodes.get(node_id)

    def parent_of(self, node_id: int) -> Optional[int]:
        return self.parents.get(node_id)

    def has_children(self, node_id: int) -> bool:
        return bool(self.children.get(node_id))

    def find_by_slug(self, slug: str) -> Optional[CategoryNode]:
        for node in self.iter_preorder():
            if node.slug == slug:
                return node
        return None

    def iter_preorder(self) -> Iterator[CategoryNode]:
        """Yield every node parent-first, keeping sibling order."""
        stack = list(reversed(self.roots))
        while stack:
            node_id = stack.pop()
            yield self.nodes[node_id]
            stack.extend(reversed(self.children.get(node_id, [])))


@dataclass(frozen=True)
class CategoryOption:
    """Flat ``{id, name, slug}`` entry used by selection widgets."""

    id: int
    name: str
    slug: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryOption":
        return cls(
            id=_coerce_int(data.get("id"), 0),
            name=str(data.get("name") or ""),
            slug=str(data.get("slug") or ""),
        )

    @staticmethod
    def list_from_payload(payload: Iterable[Any]) -> List["CategoryOption"]:
        return [
            CategoryOption.from_dict(entry)
            for entry in payload or []
            if isinstance(entry, dict) and "id" in entry
        ]

"""Product data models returned by the catalog API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .category_models import _coerce_int


def _coerce_price(value: Any) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    return price


@dataclass(frozen=True)
class ProductListItem:
    """Row of a category product listing."""

    id: int
    name: str
    slug: str
    price: float = 0.0
    primary_image_url: Optional[str] = None
    doc_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductListItem":
        return cls(
            id=_coerce_int(data.get("id"), 0),
            name=str(data.get("name") or ""),
            slug=str(data.get("slug") or ""),
            price=_coerce_price(data.get("price")),
            primary_image_url=data.get("primary_image_url"),
            doc_url=data.get("doc_url"),
        )


@dataclass(frozen=True)
class ProductDetail(ProductListItem):
    """Full product record, including the HTML content fields."""

    content_html: Optional[str] = None
    specs_html: Optional[str] = None
    category_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductDetail":
        category_id = data.get("category_id")
        return cls(
            id=_coerce_int(data.get("id"), 0),
            name=str(data.get("name") or ""),
            slug=str(data.get("slug") or ""),
            price=_coerce_price(data.get("price")),
            primary_image_url=data.get("primary_image_url"),
            doc_url=data.get("doc_url"),
            content_html=data.get("content_html"),
            specs_html=data.get("specs_html"),
            category_id=_coerce_int(category_id) if category_id is not None else None,
        )


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 0
    total: int = 0
    pages: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Pagination":
        data = data or {}
        return cls(
            page=_coerce_int(data.get("page"), 1),
            limit=_coerce_int(data.get("limit"), 0),
            total=_coerce_int(data.get("total"), 0),
            pages=_coerce_int(data.get("pages"), 0),
        )


@dataclass(frozen=True)
class CategorySummary:
    id: int
    name: str
    slug: str
    description: Optional[str] = None


@dataclass
class CategoryProducts:
    """Response of ``categories/{slug}/products``."""

    category: Optional[CategorySummary]
    products: List[ProductListItem] = field(default_factory=list)
    pagination: Pagination = field(default_factory=Pagination)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryProducts":
        raw_category = data.get("category")
        category = None
        if isinstance(raw_category, dict):
            category = CategorySummary(
                id=_coerce_int(raw_category.get("id"), 0),
                name=str(raw_category.get("name") or ""),
                slug=str(raw_category.get("slug") or ""),
                description=raw_category.get("description"),
            )
        products = [
            ProductListItem.from_dict(entry)
            for entry in data.get("products") or []
            if isinstance(entry, dict)
        ]
        return cls(
            category=category,
            products=products,
            pagination=Pagination.from_dict(data.get("pagination")),
        )

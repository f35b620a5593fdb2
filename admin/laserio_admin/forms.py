"""
Edit buffers for the category and product dialogs.

Buffers are plain dataclasses: created fresh for "create", pre-filled for
"edit", thrown away on save or cancel. ``to_payload`` mirrors what the API
expects, omitting empty optional values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, TypeVar

from .category_models import CategoryNode
from .errors import FormValidationError, PrefillError
from .product_models import ProductDetail
from .slug import is_slug_safe, slugify

FormT = TypeVar("FormT", "CategoryFormState", "ProductFormState")

CATEGORY_REQUIRED_MESSAGE = "Имя и slug обязательны."
PRODUCT_REQUIRED_MESSAGE = "Название, slug и категория обязательны."
SLUG_FORMAT_WARNING = "Slug должен состоять из латинских букв, цифр и дефисов."


def _parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if value in ("true", "True", "1", 1):
        return True
    if value in ("false", "False", "0", 0):
        return False
    return None


def _to_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class CategoryFormState:
    name: str = ""
    slug: str = ""
    description: str = ""
    sort_order: int = 0
    is_active: bool = True
    featured_only: bool = False

    @classmethod
    def from_node(cls, node: CategoryNode) -> "CategoryFormState":
        # The tree payload carries no flags, so edits start from the defaults.
        return cls(
            name=node.name,
            slug=node.slug,
            description=node.description or "",
            sort_order=node.sort_order or 0,
        )

    def validate(self) -> None:
        if not self.name.strip() or not self.slug.strip():
            raise FormValidationError(CATEGORY_REQUIRED_MESSAGE)

    def to_payload(self, parent_id: Optional[int] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "is_active": self.is_active,
            "featured_only": self.featured_only,
            "sort_order": _to_int(self.sort_order, 0),
        }
        if self.name:
            payload["name"] = self.name
        if self.slug:
            payload["slug"] = self.slug
        if parent_id is not None:
            payload["parent_id"] = parent_id
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass
class ProductFormState:
    name: str = ""
    slug: str = ""
    price: float = 0.0
    category_id: Optional[int] = None
    content_html: str = ""
    specs_html: str = ""

    @classmethod
    def from_detail(cls, detail: ProductDetail) -> "ProductFormState":
        return cls(
            name=detail.name,
            slug=detail.slug,
            price=detail.price,
            category_id=detail.category_id,
            content_html=detail.content_html or "",
            specs_html=detail.specs_html or "",
        )

    def validate(self) -> None:
        if (
            not self.name.strip()
            or not self.slug.strip()
            or not isinstance(self.category_id, int)
            or isinstance(self.category_id, bool)
        ):
            raise FormValidationError(PRODUCT_REQUIRED_MESSAGE)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"price": self.price or 0}
        if self.name:
            payload["name"] = self.name
        if self.slug:
            payload["slug"] = self.slug
        if isinstance(self.category_id, int):
            payload["category_id"] = self.category_id
        if self.content_html:
            payload["content_html"] = self.content_html
        if self.specs_html:
            payload["specs_html"] = self.specs_html
        return payload


def _coerce_field(name: str, value: Any) -> Any:
    if name in ("is_active", "featured_only"):
        coerced = _parse_bool(value)
        if coerced is None:
            raise PrefillError(f"Поле {name} должно быть логическим значением.")
        return coerced
    if name in ("sort_order", "category_id"):
        if value is None and name == "category_id":
            return None
        if isinstance(value, bool):
            raise PrefillError(f"Поле {name} должно быть целым числом.")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise PrefillError(f"Поле {name} должно быть целым числом.") from exc
    if name == "price":
        if isinstance(value, bool):
            raise PrefillError("Поле price должно быть числом.")
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise PrefillError("Поле price должно быть числом.") from exc
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise PrefillError(f"Поле {name} должно быть строкой.")
    return str(value)


def parse_prefill(text: str, form_cls: type) -> Dict[str, Any]:
    """Turn pasted JSON into a patch of known ``form_cls`` fields.

    Unknown keys are ignored. Raises PrefillError when the text is not a JSON
    object or a known field has an unusable value.
    """
    if not text or not text.strip():
        raise PrefillError("Буфер обмена пуст.")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PrefillError(f"Некорректный JSON: {exc.msg} (строка {exc.lineno}).") from exc
    if not isinstance(data, dict):
        raise PrefillError("Ожидается JSON-объект с полями формы.")
    known = {item.name for item in fields(form_cls)}
    return {
        key: _coerce_field(key, value)
        for key, value in data.items()
        if key in known
    }


def apply_prefill(form: FormT, text: str) -> FormT:
    """Return a copy of ``form`` updated from pasted JSON."""
    patch = parse_prefill(text, type(form))
    return replace(form, **patch)


def derive_slug(form: FormT, previous_name: str = "") -> FormT:
    """Fill the slug from the name while the user has not typed one.

    A slug that still equals the slug of the previous name is considered
    auto-generated and keeps following the name.
    """
    current = (form.slug or "").strip()
    if current and current != slugify(previous_name):
        return form
    return replace(form, slug=slugify(form.name))


def slug_warning(slug: str) -> Optional[str]:
    """Warning for a hand-typed slug the catalog would not accept as is."""
    slug = (slug or "").strip()
    if slug and not is_slug_safe(slug):
        return SLUG_FORMAT_WARNING
    return None

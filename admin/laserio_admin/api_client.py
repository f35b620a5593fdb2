"""
HTTP client for the Laserio catalog REST API.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from urllib import error, parse, request

from .category_models import CategoryForest, CategoryOption
from .errors import ApiError, CategoryDataError
from .product_models import CategoryProducts, ProductDetail

if TYPE_CHECKING:
    from .session import AdminSession

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://tamasaya.ru/api/laserio"
GENERIC_ERROR_MESSAGE = "Не удалось выполнить запрос к серверу."


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    expires_in: Optional[int] = None


def extract_error_message(body: Any, fallback: str) -> str:
    """Return the human readable message of an error body, or ``fallback``."""
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return fallback


class CatalogApiClient:
    """Thin JSON client; every call raises ApiError on failure."""

    def __init__(
        self,
        *,
        api_base: str = DEFAULT_API_BASE,
        session: Optional["AdminSession"] = None,
        timeout: int = 10,
        page_limit: int = 50,
    ) -> None:
        self.api_base = (api_base or DEFAULT_API_BASE).rstrip("/")
        self.session = session
        self.timeout = timeout
        self.page_limit = page_limit

    def _build_url(self, path: str, query: Optional[Dict[str, Any]] = None) -> str:
        url = f"{self.api_base}{path}"
        if query:
            url = f"{url}?{parse.urlencode(query)}"
        return url

    def _build_request_headers(self, *, with_body: bool = False) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if with_body:
            headers["Content-Type"] = "application/json"
        token = (self.session.token if self.session else None) or ""
        token = token.strip()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[Dict[str, Any]] = None,
        query: Optional[Dict[str, Any]] = None,
        fallback: str = GENERIC_ERROR_MESSAGE,
    ) -> Any:
        data = None
        if payload is not None:
            data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        req = request.Request(
            self._build_url(path, query),
            data=data,
            method=method,
            headers=self._build_request_headers(with_body=data is not None),
        )
        logger.debug("%s %s", method, req.full_url)
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8")
        except error.HTTPError as exc:
            body = self._read_error_body(exc)
            message = extract_error_message(body, fallback)
            logger.warning("%s %s failed with HTTP %s: %s", method, path, exc.code, message)
            raise ApiError(message, status=exc.code) from exc
        except (error.URLError, OSError) as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(fallback) from exc
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("%s %s returned invalid JSON: %s", method, path, exc)
            raise ApiError(fallback) from exc

    @staticmethod
    def _read_error_body(exc: error.HTTPError) -> Any:
        try:
            raw = exc.read().decode("utf-8")
        except (OSError, AttributeError, UnicodeDecodeError):
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    @staticmethod
    def _quote(segment: Any) -> str:
        return parse.quote(str(segment), safe="")

    # Auth

    def login(self, email: str, password: str) -> LoginResult:
        data = self._request(
            "POST",
            "/admin/auth/login",
            payload={"email": email, "password": password},
            fallback="Не удалось войти. Проверьте почту и пароль.",
        )
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise ApiError("Не удалось войти. Проверьте почту и пароль.")
        expires_in = data.get("expires_in")
        return LoginResult(
            access_token=str(token),
            expires_in=int(expires_in) if isinstance(expires_in, (int, float)) else None,
        )

    # Categories

    def get_category_tree(self) -> CategoryForest:
        fallback = "Не удалось загрузить дерево категорий."
        data = self._request("GET", "/categories/tree", fallback=fallback)
        try:
            return CategoryForest.from_payload(data)
        except CategoryDataError as exc:
            logger.warning("Malformed category tree: %s", exc)
            raise ApiError(fallback) from exc

    def list_categories(self) -> List[CategoryOption]:
        data = self._request(
            "GET",
            "/categories/",
            fallback="Не удалось загрузить список категорий.",
        )
        return CategoryOption.list_from_payload(data if isinstance(data, list) else [])

    def create_category(self, payload: Dict[str, Any]) -> Any:
        return self._request(
            "POST",
            "/admin/categories",
            payload=payload,
            fallback="Не удалось сохранить категорию.",
        )

    def update_category(self, category_id: int, payload: Dict[str, Any]) -> Any:
        return self._request(
            "PUT",
            f"/admin/categories/{self._quote(category_id)}",
            payload=payload,
            fallback="Не удалось сохранить категорию.",
        )

    # Products

    def get_category_products(
        self, slug: str, *, page: int = 1, limit: Optional[int] = None
    ) -> CategoryProducts:
        data = self._request(
            "GET",
            f"/categories/{self._quote(slug)}/products",
            query={"page": page, "limit": limit or self.page_limit},
            fallback="Не удалось загрузить товары для выбранной категории.",
        )
        return CategoryProducts.from_dict(data if isinstance(data, dict) else {})

    def get_product(self, slug: str) -> ProductDetail:
        fallback = "Не удалось загрузить данные товара."
        data = self._request("GET", f"/products/{self._quote(slug)}", fallback=fallback)
        if not isinstance(data, dict):
            raise ApiError(fallback)
        return ProductDetail.from_dict(data)

    def create_product(self, payload: Dict[str, Any]) -> Any:
        return self._request(
            "POST",
            "/admin/products",
            payload=payload,
            fallback="Не удалось сохранить товар.",
        )

    def update_product(self, product_id: int, payload: Dict[str, Any]) -> Any:
        return self._request(
            "PATCH",
            f"/admin/products/{self._quote(product_id)}",
            payload=payload,
            fallback="Не удалось сохранить товар.",
        )

import io
import json
from urllib import error

import pytest

from laserio_admin import api_client
from laserio_admin.api_client import CatalogApiClient, extract_error_message
from laserio_admin.errors import ApiError
from laserio_admin.session import AdminSession
from test_support import category, deep_tree_payload, require


class _FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *_exc):
        return False


class _Recorder:
    """Stands in for ``urlopen``; replays one canned outcome per call."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def __call__(self, req, timeout=None):
        self.requests.append((req, timeout))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, bytes):
            return _FakeResponse(outcome)
        return _FakeResponse(json.dumps(outcome).encode("utf-8"))


def _http_error(code: int, body: bytes) -> error.HTTPError:
    return error.HTTPError("https://api.test/x", code, "error", {}, io.BytesIO(body))


@pytest.fixture
def urlopen(monkeypatch):
    def install(*outcomes):
        recorder = _Recorder(*outcomes)
        monkeypatch.setattr(api_client.request, "urlopen", recorder)
        return recorder

    return install


def _client(token=None, **kwargs) -> CatalogApiClient:
    session = AdminSession()
    session.token = token
    return CatalogApiClient(api_base="https://api.test/laserio/", session=session, **kwargs)


# Headers


def test_bearer_header_attached_only_with_token() -> None:
    require(
        _client("abc")._build_request_headers().get("Authorization") == "Bearer abc",
        "Expected bearer header with token",
    )
    require(
        "Authorization" not in _client(None)._build_request_headers(),
        "Authorization header must be omitted without token",
    )
    require(
        "Authorization" not in _client("   ")._build_request_headers(),
        "Authorization header must be omitted for blank token",
    )


def test_content_type_only_with_body() -> None:
    client = _client()
    require(
        "Content-Type" not in client._build_request_headers(),
        "Expected no Content-Type without a body",
    )
    require(
        client._build_request_headers(with_body=True)["Content-Type"] == "application/json",
        "Expected JSON Content-Type with a body",
    )


# Error messages


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"message": "Нет доступа", "error": "forbidden"}, "Нет доступа"),
        ({"error": "forbidden"}, "forbidden"),
        ({"message": "  "}, "fallback"),
        ({"detail": "x"}, "fallback"),
        (["message"], "fallback"),
        (None, "fallback"),
    ],
)
def test_extract_error_message(body, expected) -> None:
    require(extract_error_message(body, "fallback") == expected, "Unexpected extracted message")


# Requests


def test_get_category_tree_builds_forest(urlopen) -> None:
    recorder = urlopen(deep_tree_payload())

    forest = _client(timeout=7).get_category_tree()

    req, timeout = recorder.requests[0]
    require(
        req.full_url == "https://api.test/laserio/categories/tree",
        f"Unexpected URL {req.full_url}",
    )
    require(req.get_method() == "GET", "Expected GET")
    require(timeout == 7, "Expected configured timeout")
    require(len(forest) == 8, "Expected parsed forest")


def test_malformed_tree_becomes_api_error(urlopen) -> None:
    urlopen([category(1, "A", "a"), category(1, "B", "b")])

    with pytest.raises(ApiError) as excinfo:
        _client().get_category_tree()

    require(
        excinfo.value.message == "Не удалось загрузить дерево категорий.",
        f"Unexpected message {excinfo.value.message!r}",
    )


def test_http_error_surfaces_remote_message(urlopen) -> None:
    urlopen(_http_error(409, json.dumps({"message": "Slug уже занят"}).encode("utf-8")))

    with pytest.raises(ApiError) as excinfo:
        _client("t").create_category({"name": "A", "slug": "a"})

    require(excinfo.value.status == 409, "Expected HTTP status kept")
    require(str(excinfo.value) == "Slug уже занят", "Expected remote message")


def test_http_error_without_json_uses_fallback(urlopen) -> None:
    urlopen(_http_error(500, b"<html>Internal error</html>"))

    with pytest.raises(ApiError) as excinfo:
        _client().update_product(3, {"price": 0})

    require(
        excinfo.value.message == "Не удалось сохранить товар.",
        f"Unexpected message {excinfo.value.message!r}",
    )
    require(excinfo.value.status == 500, f"Unexpected status {excinfo.value.status!r}")


def test_network_failure_uses_fallback(urlopen) -> None:
    urlopen(error.URLError("connection refused"))

    with pytest.raises(ApiError) as excinfo:
        _client().list_categories()

    require(
        excinfo.value.message == "Не удалось загрузить список категорий.",
        f"Unexpected message {excinfo.value.message!r}",
    )
    require(excinfo.value.status is None, f"Unexpected status {excinfo.value.status!r}")


def test_create_category_posts_json_with_bearer(urlopen) -> None:
    recorder = urlopen({"id": 5})

    result = _client("tok").create_category({"name": "Линзы", "slug": "linzy"})

    req, _timeout = recorder.requests[0]
    require(result == {"id": 5}, "Expected decoded response")
    require(req.get_method() == "POST", "Expected POST")
    require(req.full_url.endswith("/admin/categories"), "Expected admin categories path")
    require(req.get_header("Authorization") == "Bearer tok", "Expected bearer header")
    require(
        json.loads(req.data.decode("utf-8")) == {"name": "Линзы", "slug": "linzy"},
        "Expected JSON body",
    )


def test_update_category_uses_put_with_id(urlopen) -> None:
    recorder = urlopen(b"")

    result = _client("tok").update_category(12, {"name": "A"})

    req, _timeout = recorder.requests[0]
    require(result is None, f"Unexpected result {result!r}")
    require(req.get_method() == "PUT", "Expected PUT for category update")
    require(
        req.full_url == "https://api.test/laserio/admin/categories/12",
        f"Unexpected full url {req.full_url!r}",
    )


def test_update_product_uses_patch(urlopen) -> None:
    recorder = urlopen({"id": 3})
    _client("tok").update_product(3, {"price": 10})
    req, _timeout = recorder.requests[0]
    require(req.get_method() == "PATCH", "Expected PATCH for product update")
    require(req.full_url.endswith("/admin/products/3"), "Expected product id in update URL")


def test_get_category_products_sends_page_and_limit(urlopen) -> None:
    recorder = urlopen({
        "category": {"id": 1, "name": "Станки", "slug": "stanki"},
        "products": [{"id": 4, "name": "Станок", "slug": "stanok", "price": "1500"}],
        "pagination": {"page": 2, "limit": 20, "total": 21, "pages": 2},
    })

    result = _client(page_limit=20).get_category_products("stanki", page=2)

    req, _timeout = recorder.requests[0]
    require(
        req.full_url == "https://api.test/laserio/categories/stanki/products?page=2&limit=20",
        f"Unexpected URL {req.full_url}",
    )
    require(result.category.slug == "stanki", "Expected category summary")
    require(result.products[0].price == 1500.0, "Expected numeric price")
    require(result.pagination.pages == 2, "Expected pagination")


def test_get_product_quotes_slug(urlopen) -> None:
    recorder = urlopen({"id": 4, "name": "Станок", "slug": "a b", "category_id": 1})

    detail = _client().get_product("a b")

    req, _timeout = recorder.requests[0]
    require(req.full_url.endswith("/products/a%20b"), "Expected slug to be URL-quoted")
    require(detail.category_id == 1, f"Unexpected category id {detail.category_id!r}")


def test_login_returns_token(urlopen) -> None:
    recorder = urlopen({"access_token": "jwt-token", "expires_in": 3600})

    result = _client().login("admin@local", "secret")

    req, _timeout = recorder.requests[0]
    require(req.full_url.endswith("/admin/auth/login"), "Expected login path")
    require(
        json.loads(req.data) == {"email": "admin@local", "password": "secret"},
        "Expected credentials",
    )
    require(
        result.access_token == "jwt-token" and result.expires_in == 3600,
        "Expected login result",
    )


def test_login_without_token_fails(urlopen) -> None:
    urlopen({"detail": "ok"})
    with pytest.raises(ApiError):
        _client().login("admin@local", "secret")


def test_invalid_json_response_uses_fallback(urlopen) -> None:
    urlopen(b"{not json")
    with pytest.raises(ApiError) as excinfo:
        _client().get_product("x")
    require(
        excinfo.value.message == "Не удалось загрузить данные товара.",
        f"Unexpected message {excinfo.value.message!r}",
    )

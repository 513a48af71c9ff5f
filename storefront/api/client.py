"""
Storefront API client.

Thin async wrapper over the remote storefront API: cart, catalog, orders,
announcements and operator accounts. Every failure leaves this module as a
StorefrontError:
- no response (connection, timeout)          -> TransportError
- response that does not match the contract  -> MalformedResponseError
- explicit refusal (4xx/5xx)                 -> RejectedError and subclasses
"""
from typing import Any, Callable, Optional, Type

import httpx
from pydantic import ValidationError

from storefront.cart.models import CartSnapshot
from storefront.config import StorefrontSettings, get_settings
from storefront.errors import (
    AuthRejectedError,
    CartLineNotFoundError,
    InsufficientStockError,
    MalformedResponseError,
    RejectedError,
    TransportError,
)
from storefront.logging import get_logger, mask_credential, mask_session_id
from storefront.models import Announcement, Order, Product, User, normalize_keys
from storefront.session import SessionContext

logger = get_logger(__name__)

# Wrapper keys seen around list payloads
LIST_KEYS = ("data", "items", "value")


def extract_list(data: Any, *keys: str) -> Optional[list]:
    """Return `data` if it is a list, else the first list found under `keys`."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys or LIST_KEYS:
            value = data.get(key)
            if isinstance(value, list):
                return value
    return None


def _error_message(response: httpx.Response) -> str:
    """Human-readable reason from an error response."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "Message", "title", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Server error: {response.status_code} {response.reason_phrase}".strip()


class StorefrontApi:
    """Async client for the storefront backend."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        settings: Optional[StorefrontSettings] = None,
        context: Optional[SessionContext] = None,
        auth_token: Optional[str] = None,
        on_unauthorized: Optional[Callable[[], Any]] = None,
    ):
        """
        Args:
            client: Pre-built httpx client (tests mount an ASGI app here);
                one is created from settings when omitted
            settings: Client settings, defaults to `get_settings()`
            context: Session identity; its `auth_token` is the credential
                attached to every request
            auth_token: Credential for a client without a session context,
                or one replacing the context's
            on_unauthorized: Called after a 401 dropped the credential
        """
        self.settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.api_url,
            timeout=self.settings.api_timeout,
            headers={"Content-Type": "application/json"},
        )
        self.context = context
        self._auth_token: Optional[str] = None
        if auth_token is not None:
            self.auth_token = auth_token
        self.on_unauthorized = on_unauthorized

    @property
    def auth_token(self) -> Optional[str]:
        if self.context is not None:
            return self.context.auth_token
        return self._auth_token

    @auth_token.setter
    def auth_token(self, value: Optional[str]) -> None:
        # The context is immutable: a new credential means a new context
        if self.context is not None:
            self.context = self.context.with_auth(value)
        self._auth_token = value or None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "StorefrontApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ==================== TRANSPORT ====================

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        not_found_error: Type[RejectedError] = RejectedError,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty)."""
        logger.debug(f"[API Request] {method} {path} params={params}")
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=self._headers()
            )
        except httpx.RequestError as e:
            logger.warning(f"[API] No response for {method} {path}: {e!r}")
            raise TransportError(raw_error=e) from e

        logger.debug(f"[API Response] {method} {path} -> {response.status_code}")

        if response.status_code == 401:
            self._drop_credential()
            raise AuthRejectedError()

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"[API] {method} {path} rejected ({response.status_code}): {message}")
            if response.status_code == 409:
                raise InsufficientStockError(message, status_code=409)
            if response.status_code == 404:
                raise not_found_error(message, status_code=404)
            raise RejectedError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"[API] Non-JSON body from {method} {path}")
            raise MalformedResponseError(raw_error=e) from e

    def _drop_credential(self) -> None:
        if not self.auth_token:
            return
        logger.info(f"Credential {mask_credential(self.auth_token)} rejected, dropping it")
        if self.context is not None:
            self.context = self.context.without_auth()
        self._auth_token = None
        if self.on_unauthorized is not None:
            self.on_unauthorized()

    # ==================== CART ====================

    async def get_cart(self, session_id: str) -> CartSnapshot:
        """GET cart?sessionId=S"""
        data = await self._request("GET", "cart", params={"sessionId": session_id})
        try:
            return CartSnapshot.from_wire(session_id, data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"[API] Malformed cart for session {mask_session_id(session_id)}: {e}")
            raise MalformedResponseError(raw_error=e) from e

    async def add_line(self, session_id: str, product_id: str, quantity: int = 1) -> Any:
        """POST cart: server creates the line or increments the existing one."""
        return await self._request(
            "POST",
            "cart",
            json={"sessionId": session_id, "productId": product_id, "quantity": quantity},
        )

    async def update_line(self, line_id: str, quantity: int) -> Any:
        """PUT cart/{lineId}"""
        return await self._request(
            "PUT", f"cart/{line_id}", json={"quantity": quantity}, not_found_error=CartLineNotFoundError
        )

    async def delete_line(self, line_id: str) -> None:
        """DELETE cart/{lineId}"""
        await self._request("DELETE", f"cart/{line_id}", not_found_error=CartLineNotFoundError)

    async def clear_cart(self, session_id: str) -> None:
        """DELETE cart?sessionId=S"""
        await self._request("DELETE", "cart", params={"sessionId": session_id})

    # ==================== CATALOG ====================

    def _parse_products(self, data: Any, what: str) -> list[Product]:
        items = extract_list(data)
        if items is None:
            raise MalformedResponseError(raw_error=f"{what} response is not a list")
        try:
            return [Product.model_validate(raw) for raw in items]
        except ValidationError as e:
            # Availability is judged over the whole list; a partial one is not trusted
            logger.error(f"[Validation] Invalid product in {what}: {e.error_count()} errors")
            raise MalformedResponseError(raw_error=e) from e

    async def get_products(self, session_id: Optional[str] = None) -> list[Product]:
        """GET products?sessionId=S (availability net of all reservations)."""
        params = {"sessionId": session_id} if session_id else None
        data = await self._request("GET", "products", params=params)
        return self._parse_products(data, "products")

    def _parse_product(self, data: Any) -> Product:
        try:
            return Product.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(raw_error=e) from e

    async def get_product(self, product_id: str) -> Product:
        data = await self._request("GET", f"products/{product_id}")
        return self._parse_product(data)

    async def create_product(self, payload: dict) -> Product:
        """POST products (images as base64 strings)."""
        data = await self._request("POST", "products", json=payload)
        return self._parse_product(data)

    async def update_product(self, product_id: str, payload: dict) -> Product:
        """PUT products/{id}; `existingImages` lists the image paths to keep."""
        data = await self._request("PUT", f"products/{product_id}", json=payload)
        return self._parse_product(data)

    async def delete_product(self, product_id: str) -> None:
        await self._request("DELETE", f"products/{product_id}")

    async def get_unpublished_products(self) -> list[Product]:
        data = await self._request("GET", "products/unpublished")
        return self._parse_products(data, "unpublished products")

    async def get_colors(self) -> Any:
        return await self._request("GET", "colors")

    async def get_brands(self, search: Optional[str] = None) -> Any:
        params = {"search": search} if search else None
        return await self._request("GET", "brands", params=params)

    # ==================== ORDERS ====================

    def _parse_order(self, data: Any) -> Order:
        try:
            return Order.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(raw_error=e) from e

    async def create_order(self, payload: dict) -> Order:
        data = await self._request("POST", "orders", json=payload)
        return self._parse_order(data)

    async def get_orders(self) -> list[Order]:
        items = extract_list(await self._request("GET", "orders"))
        if items is None:
            raise MalformedResponseError(raw_error="orders response is not a list")
        return [self._parse_order(item) for item in items]

    async def update_order_status(self, order_id: str, status: str) -> None:
        await self._request("PUT", f"orders/{order_id}/status", json={"status": status})

    # ==================== ANNOUNCEMENTS ====================

    async def get_announcements(self) -> list[Announcement]:
        items = extract_list(await self._request("GET", "announcements"))
        if items is None:
            raise MalformedResponseError(raw_error="announcements response is not a list")
        try:
            return [Announcement.model_validate(item) for item in items]
        except ValidationError as e:
            raise MalformedResponseError(raw_error=e) from e

    async def create_announcement(self, payload: dict) -> Optional[Announcement]:
        data = await self._request("POST", "announcements", json=payload)
        if not data:
            return None
        try:
            return Announcement.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(raw_error=e) from e

    async def delete_announcement(self, announcement_id: str) -> None:
        await self._request("DELETE", f"announcements/{announcement_id}")

    # ==================== AUTH ====================

    async def login(self, username: str, password: str) -> dict:
        """
        Exchange credentials for a bearer token and attach it to this client.

        Storing the token between runs is up to the caller.
        """
        data = await self._request("POST", "auth/login", json={"username": username, "password": password})
        normalized = normalize_keys(data or {})
        result = {
            "token": normalized.get("token") or "",
            "expires_at": normalized.get("expires_at") or "",
            "username": normalized.get("username") or "",
            "full_name": normalized.get("full_name") or "",
        }
        if not result["token"]:
            raise RejectedError("Invalid username or password", status_code=200)
        # Lands in the session context too, when there is one
        self.auth_token = result["token"]
        logger.info(f"Logged in as {result['username'] or username}")
        return result

    async def get_current_user(self) -> dict:
        return normalize_keys(await self._request("GET", "auth/me") or {})

    # ==================== USERS ====================

    def _parse_user(self, data: Any) -> User:
        try:
            return User.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(raw_error=e) from e

    async def get_users(self) -> list[User]:
        items = extract_list(await self._request("GET", "users"))
        if items is None:
            raise MalformedResponseError(raw_error="users response is not a list")
        return [self._parse_user(item) for item in items]

    async def create_user(self, payload: dict) -> Optional[User]:
        data = await self._request("POST", "users", json=payload)
        return self._parse_user(data) if data else None

    async def change_password(self, user_id: str, new_password: str) -> None:
        """PUT users/{id}/password"""
        await self._request("PUT", f"users/{user_id}/password", json={"newPassword": new_password})

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"users/{user_id}")

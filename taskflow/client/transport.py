"""HTTP client with silent session refresh.

Every request goes through :meth:`ApiClient.request`, which applies this policy
to failed responses:

* login failures propagate untouched;
* refresh failures end the local session and propagate;
* a 401 triggers one refresh attempt and, if it succeeds, one replay of the
  original request. A failed refresh ends the local session and, when the user
  had been signed in, sends them to the login view with a session-expired flag;
* everything else propagates.

The one-shot retry flag lives on a :class:`RequestContext` passed explicitly
down the call chain, so a replay that fails with 401 again is never retried.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from taskflow.client.session import SessionStore

logger = logging.getLogger("taskflow.client")

LOGIN_PATH = "/user/login"
REFRESH_PATH = "/user/refresh"
LOGIN_VIEW = "/login"
SESSION_EXPIRED_VIEW = "/login?message=session_expired"

DEFAULT_TIMEOUT = 30.0


@dataclass
class RequestContext:
    """Per-call state carried through the send/retry path."""

    retried: bool = False


class Navigator:
    """Tracks the client's current view. UI layers observe ``history`` or override ``navigate``."""

    def __init__(self, path: str = "/") -> None:
        self.path = path
        self.history: list[str] = []

    def navigate(self, url: str) -> None:
        self.history.append(url)
        self.path = url.split("?", 1)[0]


class ApiClient:
    """Cookie-based API client for the ``/api/v1`` surface."""

    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        navigator: Navigator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.session = session
        self.navigator = navigator or Navigator()
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    # --- interception ---

    async def request(
        self, method: str, url: str, *, context: RequestContext | None = None, **kwargs: Any
    ) -> httpx.Response:
        """Send a request, applying the refresh-and-replay policy on failure."""
        context = context or RequestContext()
        response = await self._client.request(method, url, **kwargs)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as error:
            return await self._handle_failure(error, method, url, context, kwargs)
        return response

    async def _handle_failure(
        self,
        error: httpx.HTTPStatusError,
        method: str,
        url: str,
        context: RequestContext,
        kwargs: dict[str, Any],
    ) -> httpx.Response:
        if LOGIN_PATH in url:
            raise error

        if REFRESH_PATH in url:
            self.session.logout()
            raise error

        if error.response.status_code == 401 and not context.retried:
            context.retried = True
            was_authenticated = self.session.state.is_authenticated
            try:
                await self._refresh()
            except httpx.HTTPError:
                self.session.logout()
                if was_authenticated and self.navigator.path != LOGIN_VIEW:
                    self.navigator.navigate(SESSION_EXPIRED_VIEW)
                raise
            logger.debug("Session refreshed; replaying %s %s", method, url)
            return await self.request(method, url, context=context, **kwargs)

        raise error

    async def _refresh(self) -> None:
        # Bypasses request() so a failed refresh is never itself intercepted
        response = await self._client.post(REFRESH_PATH)
        response.raise_for_status()

    # --- user endpoints ---

    async def signup(self, first_name: str, last_name: str, email: str, password: str, username: str) -> str:
        payload = {
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
            "username": username,
        }
        response = await self.request("POST", "/user/signup", json=payload)
        return response.json()["message"]

    async def login(self, email: str, password: str, remember_me: bool = False) -> dict[str, Any]:
        response = await self.request(
            "POST", LOGIN_PATH, json={"email": email, "password": password, "rememberMe": remember_me}
        )
        user = response.json()["user"]
        self.session.set_auth(user)
        return user

    async def logout(self) -> None:
        """Best-effort server logout; the local session is always cleared before navigating."""
        try:
            await self.request("POST", "/user/logout")
        except httpx.HTTPError as exc:
            logger.warning("Server logout failed: %s", exc)
        finally:
            self.session.logout()
            self.navigator.navigate(LOGIN_VIEW)

    async def profile(self) -> dict[str, Any]:
        response = await self.request("GET", "/user/profile")
        return response.json()

    async def update_profile(self, **changes: Any) -> dict[str, Any]:
        response = await self.request("PUT", "/user/profile", json=changes)
        user = response.json()["user"]
        self.session.update_user(user)
        return user

    async def forgot_password(self, email: str) -> str:
        response = await self.request("POST", "/user/forgot-password", json={"email": email})
        return response.json()["message"]

    async def reset_password(self, token: str, password: str, confirm_password: str | None = None) -> str:
        payload = {"password": password, "confirmPassword": password if confirm_password is None else confirm_password}
        response = await self.request("POST", f"/user/reset-password/{token}", json=payload)
        return response.json()["message"]

    # --- todo endpoints ---

    async def list_todos(self) -> list[dict[str, Any]]:
        response = await self.request("GET", "/todo/all-todos")
        return response.json().get("todos") or []

    async def create_todo(self, todo: dict[str, Any]) -> dict[str, Any]:
        response = await self.request("POST", "/todo/create-todo", json=todo)
        return response.json()["todo"]

    async def update_todo(self, todo_id: int | str, changes: dict[str, Any]) -> dict[str, Any]:
        response = await self.request("PUT", f"/todo/update-todo/{todo_id}", json=changes)
        return response.json()["todo"]

    async def delete_todo(self, todo_id: int | str) -> None:
        await self.request("DELETE", f"/todo/delete-todo/{todo_id}")

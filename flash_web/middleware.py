"""
ASGI binding for FlashScope.
FlashMiddleware resolves the server-side session from its cookie, exposes the
flash map on request.state and sweeps it when the outermost layer finishes.
Stacking the middleware, or calling back into the app for the same scope, nests.
"""
import logging

from fastapi import Request
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from flash_web.config import SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE
from flash_web.flash_map import FlashMap
from flash_web.scope import FLASH_ATTR, FlashScope, RequestContext
from flash_web.session import Session, SessionStore

logger = logging.getLogger(__name__)

SESSION_ATTR = "flash_session"


class FlashMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        flash_scope: FlashScope | None = None,
        store: SessionStore | None = None,
        cookie_name: str = SESSION_COOKIE_NAME,
        create_session: bool = True,
        secure: bool = SESSION_COOKIE_SECURE,
    ) -> None:
        self.app = app
        self.flash_scope = flash_scope or FlashScope()
        self.store = store if store is not None else SessionStore()
        self.cookie_name = cookie_name
        self.create_session = create_session
        self.secure = secure

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        attributes = scope.setdefault("state", {})
        session, is_new = self._resolve_session(scope, attributes)
        ctx = RequestContext(attributes=attributes, session=session)

        async def send_wrapper(message: Message) -> None:
            if is_new and message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.append("set-cookie", self._cookie_header(session))
            await send(message)

        with self.flash_scope.enter(ctx):
            await self.app(scope, receive, send_wrapper)

    def _resolve_session(self, scope: Scope, attributes: dict) -> tuple[Session | None, bool]:
        """Session already bound to this request, else the cookie's, else a new one. Returns (session, created)."""
        if SESSION_ATTR in attributes:
            return attributes[SESSION_ATTR], False
        session_id = HTTPConnection(scope).cookies.get(self.cookie_name)
        session = self.store.get(session_id)
        created = False
        if session is None and self.create_session:
            session = self.store.create()
            created = True
            logger.debug("Issued session cookie %s for %s", self.cookie_name, scope.get("path"))
        attributes[SESSION_ATTR] = session
        return session, created

    def _cookie_header(self, session: Session) -> str:
        header = f"{self.cookie_name}={session.id}; path=/; Max-Age={self.store.ttl_seconds}; httponly; samesite=lax"
        if self.secure:
            header += "; secure"
        return header


def get_flash(request: Request) -> FlashMap:
    """Dependency: the flash map of the current request."""
    f = request.scope.get("state", {}).get(FLASH_ATTR)
    if not isinstance(f, FlashMap):
        raise RuntimeError("FlashMiddleware is not installed")
    return f


def get_session(request: Request) -> Session | None:
    """Dependency: the server-side session of the current request, if any."""
    return request.scope.get("state", {}).get(SESSION_ATTR)


def invalidate_session(request: Request) -> None:
    """End the current session. Its flash map is lost; the store forgets it on next lookup."""
    session = get_session(request)
    if session is not None:
        session.invalidate()

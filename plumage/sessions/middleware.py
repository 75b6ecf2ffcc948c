"""
PlumageSessions - Host integration.

Runs ``fetch`` before the handler and exposes the principal under the
configured assigns key, so handlers read ``context.assigns["current_user"]``
instead of touching the store.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from .context import SessionContext
from .manager import SessionManager

Handler = Callable[[SessionContext], Awaitable[Any]]


class SessionAuthMiddleware:
    """
    Middleware for session-based authentication.

    Example:
        >>> auth = SessionAuthMiddleware(manager)
        >>> async def sign_in(ctx):
        ...     user = await verify_password(...)
        ...     await auth.login(ctx, user)
        >>> response = await auth(ctx, sign_in)
    """

    def __init__(self, manager: SessionManager):
        self.manager = manager
        self.assigns_key = manager.config.current_user_assigns_key

    async def __call__(self, context: SessionContext, next_handler: Handler) -> Any:
        await self.authenticate(context)
        return await next_handler(context)

    async def authenticate(self, context: SessionContext) -> Any | None:
        """Fetch the session and assign its principal (None if absent)."""
        context, principal = await self.manager.fetch(context)
        context.assign(self.assigns_key, principal)
        return principal

    async def login(self, context: SessionContext, principal: Any) -> SessionContext:
        """Start a session for an already verified principal."""
        context, principal = await self.manager.create(context, principal)
        context.assign(self.assigns_key, principal)
        return context

    async def logout(self, context: SessionContext) -> SessionContext:
        context = await self.manager.delete(context)
        context.assign(self.assigns_key, None)
        return context

    def current_principal(self, context: SessionContext) -> Any | None:
        return context.assigns.get(self.assigns_key)

"""
Caller context - the "who is asking" for each request.

This is the lightweight object handed to services. It carries the
identity and system role decoded from the access token; everything else
about a decision comes from the resource being acted on.
"""

from __future__ import annotations

from dataclasses import dataclass

from projecthub.core.models import Role


@dataclass(frozen=True)
class Caller:
    """
    Identity of the requester.

    Usage in routes:
        async def my_route(caller: Caller = Depends(get_caller)):
            ensure(caller, Action.PROJECT_LIST)
    """

    user_id: str | None = None
    email: str | None = None
    role: Role | None = None

    @property
    def is_authenticated(self) -> bool:
        """Is there a logged-in user?"""
        return self.user_id is not None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @property
    def is_admin(self) -> bool:
        """System-role ADMIN (not project admin)."""
        return self.is_authenticated and self.role == Role.ADMIN

    def is_self(self, user_id: str | None) -> bool:
        return self.is_authenticated and self.user_id == user_id

    @classmethod
    def anonymous(cls) -> Caller:
        """Create an anonymous caller (no token)."""
        return cls()

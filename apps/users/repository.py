"""User module repository implementation."""

from typing import Optional
from framework.repository import AsyncRepository
from .models import User


class UserRepository(AsyncRepository[User]):
    """User repository."""

    def __init__(self, session):
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Find user by email (detached)."""
        return await self.get_by_expression_async(User.email == email)

    async def email_taken(self, email: str) -> bool:
        return await self.any_async(User.email == email)

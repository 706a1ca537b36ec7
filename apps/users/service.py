from typing import Dict, List
from loguru import logger
from framework.repository import AsyncUnitOfWork, EntityNotFoundError
from framework.result import Result, to_result_async
from .models import User, UserCreate, UserUpdate
from .repository import UserRepository


class UserService:
    def __init__(self, uow: AsyncUnitOfWork):
        """Initialize User Service with AsyncUnitOfWork."""
        self.uow = uow

    @property
    def users(self) -> UserRepository:
        return self.uow.get_repository(UserRepository, User)

    async def create(self, data: UserCreate) -> Result[User]:
        """Register a user; email must be unique."""
        if await self.users.email_taken(data.email):
            return Result.bad_request(f"Email {data.email} is already registered")

        user = User(name=data.name, email=data.email)
        await self.users.add_async(user)
        await self.uow.save_changes_async()
        logger.info(f"User {user.id} created ({user.email})")
        return Result.success(user)

    async def get_by_id(self, user_id: int) -> Result[User]:
        user = await self.users.get_by_expression_async(User.id == user_id)
        if user is None:
            return Result.not_found(f"User {user_id} not found")
        return Result.success(user)

    async def list_users(self, active_only: bool = False) -> Result[List[User]]:
        query = self.users.where(User.is_active == True) if active_only else self.users.get_all()  # noqa: E712
        return await to_result_async(query.order_by(User.id).all())

    async def update(self, user_id: int, data: UserUpdate) -> Result[User]:
        """Apply a partial update to a detached read, then stage it explicitly."""
        user = await self.users.get_by_expression_async(User.id == user_id)
        if user is None:
            return Result.not_found(f"User {user_id} not found")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        new_email = changes.get("email")
        if new_email and new_email != user.email and await self.users.email_taken(new_email):
            return Result.bad_request(f"Email {new_email} is already registered")

        for key, value in changes.items():
            setattr(user, key, value)
        self.users.update(user)
        await self.uow.save_changes_async()
        logger.info(f"User {user_id} updated: {sorted(changes)}")
        return Result.success(user)

    async def delete(self, user_id: int) -> Result[int]:
        try:
            await self.users.delete_by_id_async(user_id)
        except EntityNotFoundError:
            return Result.not_found(f"User {user_id} not found")
        await self.uow.save_changes_async()
        logger.info(f"User {user_id} deleted")
        return Result.success(user_id)

    async def stats(self) -> Result[Dict[str, int]]:
        """Active/inactive head count."""
        buckets = dict(await self.users.count_by(User.is_active == True).all())  # noqa: E712
        return Result.success({
            "active": buckets.get(True, 0),
            "inactive": buckets.get(False, 0),
        })

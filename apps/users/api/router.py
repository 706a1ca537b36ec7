from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession
from framework.database.manager import DatabaseManager
from framework.repository import AsyncUnitOfWork
from framework.response import to_response
from ..models import UserCreate, UserUpdate
from ..service import UserService

router = APIRouter()


async def get_db():
    manager = DatabaseManager.get_instance()
    async for session in manager.sql.get_session():
        yield session


def get_uow(db: AsyncSession = Depends(get_db)) -> AsyncUnitOfWork:
    """Dependency: one unit of work per request."""
    return AsyncUnitOfWork(session=db)


def get_user_service(uow: AsyncUnitOfWork = Depends(get_uow)) -> UserService:
    return UserService(uow)


@router.get("")
async def list_users(active_only: bool = False, service: UserService = Depends(get_user_service)):
    return to_response(await service.list_users(active_only=active_only))


@router.get("/stats")
async def user_stats(service: UserService = Depends(get_user_service)):
    """Active/inactive user counts."""
    return to_response(await service.stats())


@router.get("/{user_id}")
async def get_user(user_id: int, service: UserService = Depends(get_user_service)):
    return to_response(await service.get_by_id(user_id))


@router.post("")
async def create_user(data: UserCreate, service: UserService = Depends(get_user_service)):
    return to_response(await service.create(data))


@router.patch("/{user_id}")
async def update_user(user_id: int, data: UserUpdate, service: UserService = Depends(get_user_service)):
    return to_response(await service.update(user_id, data))


@router.delete("/{user_id}")
async def delete_user(user_id: int, service: UserService = Depends(get_user_service)):
    return to_response(await service.delete(user_id))

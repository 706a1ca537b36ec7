from sqlmodel import SQLModel, Field
from typing import Optional


class UserBase(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=320)


class User(UserBase, table=True):
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=100)
    email: str = Field(unique=True, index=True, max_length=320)
    is_active: bool = Field(default=True)


class UserCreate(UserBase):
    pass


class UserUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=320)
    is_active: Optional[bool] = None

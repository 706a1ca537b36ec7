"""
Model registration: import every table model here so SQLModel metadata knows it before tables are created.
"""
from apps.users.models import User

__all__ = ["User"]

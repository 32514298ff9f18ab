"""Database models."""

from mediconnect.models.appointments import appointments
from mediconnect.models.base import metadata
from mediconnect.models.doctors import doctors
from mediconnect.models.profiles import profiles
from mediconnect.models.user_roles import user_roles
from mediconnect.models.users import users

__all__ = [
    "appointments",
    "doctors",
    "metadata",
    "profiles",
    "user_roles",
    "users",
]

"""User model definitions."""

from sqlalchemy import Column, String
from tutorbook.database import Base
from tutorbook.models.slot import generate_id

ROLE_STUDENT = "student"
ROLE_TEACHER = "teacher"
ROLE_ADMIN = "admin"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=generate_id)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    role = Column(String)  # student/teacher/admin

"""
User database model.

Login identities. Credentials live with the identity provider; this table
only maps a token's user_id to a role and, for drivers, a Driver profile.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from conduz.app.db.session import Base
from conduz.app.models.enums import UserRole


class User(Base):
    """
    Payroll actor.

    ADMIN users run weekly payroll; DRIVER users see their own records
    through the Driver row whose user_id points here.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=True)
    role = Column(Enum(UserRole), default=UserRole.DRIVER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)  # inactive users get 403

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role.value}')>"

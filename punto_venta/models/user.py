"""User model - identities managed by the external auth provider."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from punto_venta.database import Base


class UserRole(enum.Enum):
    """User roles."""
    ADMIN = 'admin'
    USER = 'user'


class User(Base):
    """Cashier or administrator."""

    __tablename__ = 'users'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def display_name(self):
        return self.full_name or self.email

    def is_admin(self):
        """Check if user has the admin role."""
        return self.role == UserRole.ADMIN.value

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

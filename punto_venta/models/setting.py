"""Key/value settings model."""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime
from sqlalchemy.sql import func
from punto_venta.database import Base


class Setting(Base):
    """Setting row. ``user_id`` NULL is the global value; per-user rows are legacy."""

    __tablename__ = 'settings'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    key = Column(String(80), nullable=False, index=True)
    value = Column(String(255), nullable=False)
    user_id = Column(BigInteger, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Setting(key='{self.key}', value='{self.value}', user_id={self.user_id})>"

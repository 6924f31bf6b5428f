"""Exchange rate history model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, DateTime
from sqlalchemy.sql import func
from punto_venta.database import Base


class ExchangeRateHistory(Base):
    """One row per exchange rate change (local units per USD)."""

    __tablename__ = 'exchange_rate_history'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    rate = Column(Numeric(14, 4), nullable=False)
    user_id = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<ExchangeRateHistory(rate={self.rate}, user_id={self.user_id})>"

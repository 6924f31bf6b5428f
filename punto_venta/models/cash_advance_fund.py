"""Cash advance fund model."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Boolean, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from punto_venta.database import Base

DEFAULT_FUND_DESCRIPTION = 'Fondo de avance de efectivo'


class CashAdvanceFund(Base):
    """Named pool of cash used to issue advances."""

    __tablename__ = 'cash_advance_fund'
    __table_args__ = (
        CheckConstraint('current_balance >= 0', name='ck_fund_balance_non_negative'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    initial_amount = Column(Numeric(14, 2), nullable=False)
    current_balance = Column(Numeric(14, 2), nullable=False)
    description = Column(String(255), nullable=False, default=DEFAULT_FUND_DESCRIPTION)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    transactions = relationship('CashAdvanceTransaction', back_populates='fund')

    def to_dict(self):
        return {
            'id': self.id,
            'initial_amount': self.initial_amount,
            'current_balance': self.current_balance,
            'description': self.description,
            'is_active': self.is_active,
            'created_at': self.created_at,
        }

    def __repr__(self):
        return f"<CashAdvanceFund(id={self.id}, balance={self.current_balance}, active={self.is_active})>"

"""Cash advance transaction model (append-only audit record)."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from punto_venta.database import Base


class TransactionType(str, enum.Enum):
    """Cash advance transaction type."""
    ADVANCE = 'advance'
    REPLENISHMENT = 'replenishment'


class CashAdvanceTransaction(Base):
    """
    Movement against a fund.

    ``amount`` is what touches the fund balance, stored at the balance's
    scale. For advances ``final_amount`` is what the customer pays
    (amount + fee); for replenishments it equals ``amount``.
    """

    __tablename__ = 'cash_advance_transactions'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    fund_id = Column(BigInteger, ForeignKey('cash_advance_fund.id'), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    fee_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    # cents x percent with two decimals each: six fractional digits are exact
    fee_amount = Column(Numeric(16, 6), nullable=False, default=0)
    final_amount = Column(Numeric(16, 6), nullable=False)
    transaction_type = Column(String(20), nullable=False)  # advance | replenishment
    description = Column(Text, nullable=True)
    cashier_name = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    fund = relationship('CashAdvanceFund', back_populates='transactions')

    def to_dict(self):
        return {
            'id': self.id,
            'fund_id': self.fund_id,
            'fund_description': self.fund.description if self.fund else None,
            'amount': self.amount,
            'fee_percentage': self.fee_percentage,
            'fee_amount': self.fee_amount,
            'final_amount': self.final_amount,
            'transaction_type': self.transaction_type,
            'description': self.description,
            'cashier_name': self.cashier_name,
            'created_at': self.created_at,
        }

    def __repr__(self):
        return (
            f"<CashAdvanceTransaction(id={self.id}, type={self.transaction_type}, "
            f"amount={self.amount}, fee={self.fee_amount})>"
        )

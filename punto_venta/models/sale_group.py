"""Sale group model - one checkout, one ticket."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from punto_venta.database import Base


class SaleGroup(Base):
    """
    Header of a checkout transaction.

    Rows created before split payments existed only carry ``payment_method``;
    see ``is_legacy``.
    """

    __tablename__ = 'sale_groups'

    sale_group_id = Column(String(36), primary_key=True)
    user_id = Column(BigInteger, nullable=True)
    subtotal = Column(Numeric(14, 4), nullable=False)
    tax = Column(Numeric(14, 4), nullable=False)
    total = Column(Numeric(14, 4), nullable=False)
    sale_number = Column(Integer, nullable=False)  # cosmetic, not unique
    payment_method = Column(String(40), nullable=True)  # legacy
    primary_payment_method = Column(String(40), nullable=True)
    paid_amount = Column(Numeric(14, 4), nullable=True)
    secondary_payment_method = Column(String(40), nullable=True)
    second_paid_amount = Column(Numeric(14, 4), nullable=True)
    exchange_rate = Column(Numeric(14, 4), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    sales = relationship('Sale', back_populates='group', order_by='Sale.id')

    @property
    def is_legacy(self) -> bool:
        """Created before primary/paid amount fields existed."""
        return not self.primary_payment_method and not self.paid_amount

    def __repr__(self):
        return f"<SaleGroup(id={self.sale_group_id}, number={self.sale_number}, total={self.total})>"

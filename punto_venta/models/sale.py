"""Sale model (one row per cart line)."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from punto_venta.database import Base


class Sale(Base):
    """Sale line. Only ``is_canceled`` changes after insertion."""

    __tablename__ = 'sales'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sale_group_id = Column(String(36), ForeignKey('sale_groups.sale_group_id'), nullable=False, index=True)
    # No FK to products: rows must survive product deletion
    product_id = Column(BigInteger, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    total = Column(Numeric(14, 4), nullable=False)  # moneda local
    user_id = Column(BigInteger, nullable=True)
    is_canceled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    group = relationship('SaleGroup', back_populates='sales')

    def __repr__(self):
        return (
            f"<Sale(id={self.id}, group={self.sale_group_id}, product_id={self.product_id}, "
            f"qty={self.quantity}, canceled={self.is_canceled})>"
        )

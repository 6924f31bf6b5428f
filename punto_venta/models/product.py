"""Product model."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, CheckConstraint
from sqlalchemy.sql import func
from punto_venta.database import Base


class Product(Base):
    """Product with on-hand quantity and a USD price (tax included)."""

    __tablename__ = 'products'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),
        CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 3), nullable=False, default=0)  # USD, 3 decimales
    category = Column(String(120), nullable=True)
    user_id = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'quantity': self.quantity,
            'price': self.price,
            'category': self.category,
        }

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', quantity={self.quantity})>"

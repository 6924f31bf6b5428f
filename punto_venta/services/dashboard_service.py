"""
Dashboard service.
Daily sales figure and product count for the home screen.
"""
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import func

from punto_venta.models import Sale
from punto_venta.services.cache_service import get_cache, DASHBOARD_MODULE
from punto_venta.services.inventory_service import count_products

logger = logging.getLogger(__name__)


def get_daily_sales_total(session, day: Optional[date] = None) -> Decimal:
    """Sum of non-canceled sale rows created on ``day`` (today by default)."""
    day = day or date.today()
    start_dt = datetime.combine(day, time.min)
    end_dt = start_dt + timedelta(days=1)

    total = session.query(
        func.coalesce(func.sum(Sale.total), 0)
    ).filter(
        Sale.is_canceled.is_(False),
        Sale.created_at >= start_dt,
        Sale.created_at < end_dt,
    ).scalar()
    return Decimal(str(total)) if total is not None else Decimal('0')


def _load_dashboard(session, day: date) -> dict:
    return {
        'date': day.isoformat(),
        'daily_sales_total': get_daily_sales_total(session, day),
        'product_count': count_products(session),
    }


def get_dashboard_data(session, day: Optional[date] = None) -> dict:
    """
    Dashboard figures, served from Redis when available.

    The cache is dropped after every sale, cancellation and inventory write.
    """
    day = day or date.today()
    try:
        cache = get_cache()
    except RuntimeError:
        return _load_dashboard(session, day)

    return cache.memoize(
        DASHBOARD_MODULE,
        f"summary:{day.isoformat()}",
        lambda: _load_dashboard(session, day),
        ttl=current_app.config.get('CACHE_DASHBOARD_TTL', 60),
    )

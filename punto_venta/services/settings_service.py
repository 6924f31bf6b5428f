"""Settings service - global exchange rate and its history."""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from punto_venta.models import Setting, ExchangeRateHistory
from punto_venta.exceptions import PersistenceError
from punto_venta.utils.money import validate_exchange_rate

logger = logging.getLogger(__name__)

EXCHANGE_RATE_KEY = 'exchange_rate'


def _setting_row(session, key: str, user_id: Optional[int]) -> Optional[Setting]:
    query = session.query(Setting).filter(Setting.key == key)
    if user_id is None:
        query = query.filter(Setting.user_id.is_(None))
    else:
        query = query.filter(Setting.user_id == user_id)
    return query.order_by(Setting.id.desc()).first()


def get_exchange_rate(session, user_id: Optional[int] = None) -> Optional[Decimal]:
    """
    Current local-currency units per USD.

    The global row wins; a per-user row (legacy) is used only when there is
    no global one. Returns None when nothing usable is configured.
    """
    row = _setting_row(session, EXCHANGE_RATE_KEY, None)
    if row is None and user_id is not None:
        row = _setting_row(session, EXCHANGE_RATE_KEY, user_id)
    if row is None:
        return None
    try:
        rate = Decimal(row.value)
    except (InvalidOperation, ValueError):
        logger.warning(f"Invalid exchange rate stored in settings: '{row.value}'")
        return None
    if not rate.is_finite() or rate <= 0:
        return None
    return rate


def set_exchange_rate(session, rate, user_id: Optional[int]) -> Decimal:
    """Store a new global exchange rate and append it to the history."""
    value = validate_exchange_rate(rate)
    try:
        row = _setting_row(session, EXCHANGE_RATE_KEY, None)
        if row is None:
            row = Setting(key=EXCHANGE_RATE_KEY, user_id=None, value=str(value))
            session.add(row)
        else:
            row.value = str(value)
            row.updated_at = datetime.now()
        session.add(ExchangeRateHistory(rate=value, user_id=user_id, created_at=datetime.now()))
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error saving exchange rate: {e}")
        raise PersistenceError(f'Error al guardar la tasa de cambio: {str(e)}')

    logger.info(f"Exchange rate set to {value} by user {user_id}")
    return value


def list_exchange_rate_history(session, limit: int = 30) -> List[ExchangeRateHistory]:
    return session.query(ExchangeRateHistory).order_by(
        ExchangeRateHistory.created_at.desc(), ExchangeRateHistory.id.desc()
    ).limit(limit).all()

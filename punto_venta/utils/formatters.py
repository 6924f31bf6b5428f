"""
Utilidades de formateo de fechas para reportes y exportaciones CSV.
"""
from datetime import date, datetime
from typing import Union


def date_ve(value: Union[date, datetime, None]) -> str:
    """
    Formatea una fecha: DD/MM/YYYY

    Examples:
        date_ve(date(2026, 1, 12)) -> "12/01/2026"
    """
    if value is None:
        return "-"

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")


def datetime_ve(value: Union[datetime, None], with_time: bool = True) -> str:
    """
    Formatea un datetime: DD/MM/YYYY HH:MM

    Examples:
        datetime_ve(datetime(2026, 1, 12, 15, 30)) -> "12/01/2026 15:30"
    """
    if value is None:
        return "-"

    if not isinstance(value, datetime):
        return "-"

    if with_time:
        return value.strftime("%d/%m/%Y %H:%M")
    return value.strftime("%d/%m/%Y")

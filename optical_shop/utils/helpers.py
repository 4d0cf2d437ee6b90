# optical_shop/utils/helpers.py
import calendar
from datetime import date


def add_months(d: date, months: int) -> date:
    """
    Same day `months` later; clamps to the last day of a shorter month
    (Jan 31 + 1 month -> Feb 28/29).
    """
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)

"""Trip categories and display titles derived from a resolved location name"""

from config import CATEGORY_KEYWORDS, VACATION_MIN_DAYS, WEEKEND_MAX_DAYS
from core.models import TripCategory
from datetime import datetime

TITLE_SEPARATOR = ' • '


def classify_category(location_name: str, duration_days: int) -> TripCategory:
    """Pick a category from location keywords, falling back to trip length.

    Keyword matches win over duration. Trips of 4-6 days have no category of
    their own and count as vacations.
    """
    lowercased = (location_name or '').lower()

    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowercased for keyword in keywords):
            return TripCategory(category)

    if duration_days <= WEEKEND_MAX_DAYS:
        return TripCategory.WEEKEND
    elif duration_days >= VACATION_MIN_DAYS:
        return TripCategory.VACATION
    else:
        return TripCategory.VACATION


def generate_title(location_name: str, start_date: datetime) -> str:
    """Format "<Month> <Year> • <location>" using the process locale for the month name"""
    month_year = start_date.strftime('%B %Y')
    return f"{month_year}{TITLE_SEPARATOR}{location_name}"

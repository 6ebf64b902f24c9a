from .states import LeadTemperature


# interest_level → (readiness_score, lead_temperature)
INTEREST_SCORING = {
    'high': (8, LeadTemperature.HOT),
    'medium': (5, LeadTemperature.WARM),
}
DEFAULT_SCORING = (3, LeadTemperature.COLD)


def derive_lead_scoring(interest_level):
    """High → (8, hot), Medium → (5, warm), Low or anything else → (3, cold)."""
    key = (interest_level or '').strip().lower()
    return INTEREST_SCORING.get(key, DEFAULT_SCORING)

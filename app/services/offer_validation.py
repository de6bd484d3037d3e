# app/services/offer_validation.py
"""
Business rules for offer terms.

Applied on create, on host re-counter (new cash amount) and on agreement
amendments. All violations are collected and reported together.
"""
from typing import List

from app.core.errors import ValidationError
from app.schemas.offer import OfferTerms, OfferType

MIN_TOTAL_VALUE_MINOR = 10000      # $100
MIN_CASH_IF_NO_STAY_MINOR = 5000   # $50
MAX_DELIVERABLES = 10
STAY_VALUE_PER_NIGHT_MINOR = 15000  # $150/night estimate
MIN_CONTENT_DEADLINE_DAYS = 1
MAX_CONTENT_DEADLINE_DAYS = 90


def estimated_total_value(terms: OfferTerms) -> int:
    stay_value = (terms.stay_nights or 0) * STAY_VALUE_PER_NIGHT_MINOR
    return terms.cash_amount_minor + stay_value


def collect_term_errors(terms: OfferTerms) -> List[str]:
    errors: List[str] = []
    is_post_for_stay = terms.offer_type == OfferType.POST_FOR_STAY

    # offerType invariant: cash deals carry cash, post-for-stay carries nights
    if terms.cash_amount_minor < 0:
        errors.append("Cash amount cannot be negative")
    if is_post_for_stay:
        if not terms.stay_nights or terms.stay_nights <= 0:
            errors.append("Post-for-stay offers require at least one night")
        if terms.cash_amount_minor != 0:
            errors.append("Post-for-stay offers cannot include cash")
    else:
        if terms.stay_nights:
            errors.append("Stay nights are only allowed on post-for-stay offers")
        if terms.cash_amount_minor <= 0:
            errors.append("Cash offers require a cash amount")

    # Minimum value
    if estimated_total_value(terms) < MIN_TOTAL_VALUE_MINOR:
        errors.append(f"Offer value must be at least ${MIN_TOTAL_VALUE_MINOR // 100}")
    if not terms.stay_nights and terms.cash_amount_minor < MIN_CASH_IF_NO_STAY_MINOR:
        errors.append(
            f"Cash offers without a stay must be at least ${MIN_CASH_IF_NO_STAY_MINOR // 100}"
        )

    # Deliverables
    if not terms.deliverables:
        errors.append("At least one deliverable is required")
    elif len(terms.deliverables) > MAX_DELIVERABLES:
        errors.append(f"Maximum {MAX_DELIVERABLES} deliverables per offer")
    elif any(not d or not d.strip() for d in terms.deliverables):
        errors.append("Deliverables cannot be blank")

    # Traffic bonus
    if terms.offer_type == OfferType.FLAT_WITH_BONUS and not terms.traffic_bonus_enabled:
        errors.append("Flat-with-bonus offers require a traffic bonus")
    if terms.offer_type != OfferType.FLAT_WITH_BONUS and terms.traffic_bonus_enabled:
        errors.append("Traffic bonus is only available on flat-with-bonus offers")
    if terms.traffic_bonus_enabled:
        if not terms.traffic_bonus_threshold_clicks or terms.traffic_bonus_threshold_clicks <= 0:
            errors.append("Traffic bonus requires a click threshold")
        if not terms.traffic_bonus_amount_minor or terms.traffic_bonus_amount_minor <= 0:
            errors.append("Traffic bonus requires a bonus amount")
    elif (
        terms.traffic_bonus_threshold_clicks is not None
        or terms.traffic_bonus_amount_minor is not None
    ):
        errors.append("Traffic bonus fields require the traffic bonus to be enabled")

    if not MIN_CONTENT_DEADLINE_DAYS <= terms.content_deadline_days <= MAX_CONTENT_DEADLINE_DAYS:
        errors.append(
            f"Content deadline must be between {MIN_CONTENT_DEADLINE_DAYS} "
            f"and {MAX_CONTENT_DEADLINE_DAYS} days"
        )

    return errors


def validate_terms(terms: OfferTerms) -> None:
    errors = collect_term_errors(terms)
    if errors:
        raise ValidationError("Invalid offer terms", details={"errors": errors})

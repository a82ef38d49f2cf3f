"""Ranking of substitute products offered to the customer.

A picker may supply a score; otherwise one is derived from how close the
substitute's price is to the original and whether it is sold in the same unit.
Scores range from 0 to 1, best first.
"""

from uuid import uuid4

PRICE_WEIGHT = 0.7
UNIT_WEIGHT = 0.3


def match_score(original: dict, candidate: dict) -> float:
    original_price = float(original.get("unit_price") or 0.0)
    candidate_price = float(candidate.get("unit_price") or 0.0)
    if original_price > 0:
        price_closeness = 1.0 - min(abs(candidate_price - original_price) / original_price, 1.0)
    else:
        price_closeness = 1.0 if candidate_price == 0 else 0.0

    same_unit = str(original.get("unit") or "").lower() == str(candidate.get("unit") or "").lower()
    return round(PRICE_WEIGHT * price_closeness + (UNIT_WEIGHT if same_unit else 0.0), 2)


def rank_alternatives(original: dict, candidates: list[dict]) -> list[dict]:
    """Give every candidate an id and a score, then sort best first."""
    ranked = []
    for candidate in candidates:
        alternative = dict(candidate)
        alternative["alternative_id"] = alternative.get("alternative_id") or uuid4().hex[:12]
        if alternative.get("match_score") is None:
            alternative["match_score"] = match_score(original, alternative)
        else:
            alternative["match_score"] = max(0.0, min(float(alternative["match_score"]), 1.0))
        ranked.append(alternative)
    return sorted(ranked, key=lambda a: a["match_score"], reverse=True)

import math
import sys
from typing import Optional

EPSILON = sys.float_info.epsilon


def _round_half_up(value: Optional[float], places: int) -> float:
    if value is None:
        return 0.0
    scale = 10 ** places
    # epsilon nudges values like 1.005 (stored as 1.00499999...) back over the half
    return math.floor((float(value) + EPSILON) * scale + 0.5) / scale


def round_currency(value: Optional[float]) -> float:
    """
    Round a money amount to paise (2 places), halves going up.
    Every amount is passed through this before it is stored or compared.
    """
    return _round_half_up(value, 2)


def round_weight(value: Optional[float]) -> float:
    """Weights are kept to the milligram (3 places)."""
    return _round_half_up(value, 3)

import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Rounds halves up: 2.5 -> 3, 4.25 (ndigits=1) -> 4.3."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor

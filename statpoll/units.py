import math
from typing import Union

from .errors import InvalidConfig

Number = Union[int, float]

SIZE_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
}


def round_to(value: float, decimals: int) -> float:
    """Round to ``decimals`` places, halves away from zero."""
    factor = 10**decimals
    scaled = value * factor
    return math.copysign(math.floor(abs(scaled) + 0.5), scaled) / factor


def validate_unit(unit: str) -> str:
    if unit not in SIZE_UNITS:
        raise InvalidConfig(
            f"invalid size unit: {unit!r} (expected one of {', '.join(SIZE_UNITS)})"
        )
    return unit


def convert(value: Number, unit: str) -> Number:
    divisor = SIZE_UNITS[validate_unit(unit)]
    if divisor == 1:
        return value
    return round_to(value / divisor, 2)

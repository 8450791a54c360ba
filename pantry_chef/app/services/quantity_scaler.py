import re
from decimal import Decimal
from fractions import Fraction
from typing import Optional, Union

# Order matters: mixed numbers and ranges must win over their parts.
_QUANTITY_RE = re.compile(
    r"(?P<mixed>\d+\s+\d+/\d+)"
    r"|(?P<range>\d+(?:\.\d+)?-\d+(?:\.\d+)?)"
    r"|(?P<fraction>\d+/\d+)"
    r"|(?P<number>\d+(?:\.\d+)?)"
)

_SNAP_FRACTIONS = (
    (Fraction(1, 4), "1/4"),
    (Fraction(1, 2), "1/2"),
    (Fraction(3, 4), "3/4"),
)
_SNAP_TOLERANCE = Fraction(1, 100)

Number = Union[Decimal, Fraction]


def _exact(value: Number) -> Fraction:
    return value if isinstance(value, Fraction) else Fraction(value)


def _as_decimal(value: Fraction) -> Decimal:
    return Decimal(value.numerator) / Decimal(value.denominator)


def _fraction_value(raw: str) -> Optional[Fraction]:
    try:
        if " " in raw.strip():
            whole_part, frac_part = raw.split(None, 1)
            whole = Fraction(int(whole_part))
        else:
            whole, frac_part = Fraction(0), raw
        num_str, denom_str = frac_part.split("/", 1)
        denom = int(denom_str)
        if denom == 0:
            return None
        return whole + Fraction(int(num_str), denom)
    except ValueError:
        return None


def format_plain(value: Number) -> str:
    exact = _exact(value)
    if 0 < exact < 1:
        return f"{_as_decimal(exact):.2f}"
    text = f"{_as_decimal(exact):.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return text


def format_fraction(value: Number) -> str:
    exact = _exact(value)
    for target, label in _SNAP_FRACTIONS:
        if abs(exact - target) <= _SNAP_TOLERANCE:
            return label
    return f"{_as_decimal(exact):.2f}"


def _scale_token(match: re.Match, ratio: Fraction) -> str:
    token = match.group(0)
    if match.group("range"):
        low, high = token.split("-", 1)
        return f"{format_plain(Fraction(low) * ratio)}-{format_plain(Fraction(high) * ratio)}"
    if match.group("mixed") or match.group("fraction"):
        value = _fraction_value(token)
        if value is None:
            return token
        return format_fraction(value * ratio)
    return format_plain(Fraction(token) * ratio)


def scale_segment(segment: str, ratio: Fraction) -> str:
    return _QUANTITY_RE.sub(lambda m: _scale_token(m, ratio), segment)


def scale(text: str, from_servings: int, to_servings: int) -> str:
    """
    Rescale every quantity in a comma-separated ingredient string.

    Each comma-separated segment is rescaled on its own and the segments are
    rejoined in their original order, so the segment count never changes.
    Recognised quantities are integers/decimals ("2", "1.5"), fractions
    ("1/2", "1 1/2") and ranges ("1-2"); everything else is left untouched.
    Arithmetic is exact; rounding happens only when a value is formatted.

    Never raises: invalid serving counts return the text unchanged.
    """
    if from_servings == to_servings:
        return text
    if not text or from_servings <= 0 or to_servings <= 0:
        return text
    ratio = Fraction(to_servings, from_servings)
    return ",".join(scale_segment(segment, ratio) for segment in text.split(","))

"""ScaledDecimal: Lossless fixed-point arithmetic over integer mantissas.

On-chain answers are integers that routinely exceed 53 bits, so every price,
rate and token amount is carried as ``mantissa / 10**scale`` with a Python
``int`` mantissa. Nothing in this module goes through ``float``.

Operations:
    - format_scaled: render a mantissa at a scale, keeping all fractional digits
    - parse_scaled: parse a decimal string into a mantissa at a scale
    - derive_rate: cross rate of two independently scaled quantities
    - convert_unit: re-express an amount between EVM denominations

.. code-block:: python

    >>> format_scaled(-150000000, 8)
    '-1.50000000'
    >>> str(derive_rate(300000000, 8, 100000000, 8, 8))
    '3.00000000'
    >>> convert_unit("1", "ether", "gwei")
    '1000000000'
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from .errors import DivisionByZeroError, InvalidUnitError

# Power-of-ten exponents of the recognized EVM denominations.
UNIT_EXPONENTS: dict[str, int] = {
    "wei": 0,
    "kwei": 3,
    "mwei": 6,
    "gwei": 9,
    "szabo": 12,
    "finney": 15,
    "ether": 18,
}


def format_scaled(mantissa: int, scale: int) -> str:
    """Render ``mantissa / 10**scale`` as a decimal string.

    Exactly ``scale`` fractional digits are printed; trailing zeros are kept.

    :param mantissa: Signed integer mantissa.
    :param scale: Number of fractional digits (non-negative).
    :returns: Decimal string such as ``"1234.56780000"``.
    :raises ValueError: If scale is negative.

    .. code-block:: python

        >>> format_scaled(0, 8)
        '0.00000000'
        >>> format_scaled(5, 0)
        '5'
    """
    if scale < 0:
        raise ValueError(f"scale must be non-negative, got {scale}")

    sign = "-" if mantissa < 0 else ""
    digits = str(abs(mantissa))
    if scale == 0:
        return f"{sign}{digits}"

    digits = digits.rjust(scale + 1, "0")
    return f"{sign}{digits[:-scale]}.{digits[-scale:]}"


def trim_scaled(mantissa: int, scale: int) -> str:
    """Render like :func:`format_scaled` but without trailing fractional zeros.

    :param mantissa: Signed integer mantissa.
    :param scale: Number of fractional digits.
    :returns: Shortest exact decimal string (``"1.5"``, ``"1000000000"``).
    """
    text = format_scaled(mantissa, scale)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _to_mantissa(text: str, scale: int, *, floor: bool = False) -> int:
    """Parse a decimal string into an integer mantissa at ``scale``.

    Extra fractional digits are truncated toward zero, or toward negative
    infinity when ``floor`` is set.
    """
    try:
        value = Decimal(str(text).strip())
    except InvalidOperation as e:
        raise ValueError(f"Invalid decimal value: {text!r}") from e
    if not value.is_finite():
        raise ValueError(f"Invalid decimal value: {text!r}")

    sign, digit_tuple, exponent = value.as_tuple()
    coefficient = int("".join(str(d) for d in digit_tuple) or "0")
    shift = exponent + scale
    if shift >= 0:
        magnitude = coefficient * 10**shift
        exact = True
    else:
        divisor = 10**-shift
        magnitude = coefficient // divisor
        exact = coefficient % divisor == 0

    if sign:
        if floor and not exact:
            magnitude += 1
        return -magnitude
    return magnitude


def parse_scaled(text: str, scale: int) -> int:
    """Parse a decimal string into a mantissa with ``scale`` fractional digits.

    :param text: Decimal string, e.g. ``"1.25"`` or ``"-3"``.
    :param scale: Target number of fractional digits.
    :returns: Integer mantissa (extra digits truncated toward zero).
    :raises ValueError: If text is not a finite decimal number.

    .. code-block:: python

        >>> parse_scaled("1.25", 8)
        125000000
    """
    if scale < 0:
        raise ValueError(f"scale must be non-negative, got {scale}")
    return _to_mantissa(text, scale)


def derive_rate(
    mantissa_a: int,
    scale_a: int,
    mantissa_b: int,
    scale_b: int,
    result_scale: int = 8,
) -> ScaledDecimal:
    """Compute ``(A / 10**scale_a) / (B / 10**scale_b)`` at ``result_scale``.

    The division is done once on integers:
        ``mantissa_a * 10**result_scale * 10**scale_b // (mantissa_b * 10**scale_a)``
    and the quotient is truncated toward zero.

    :param mantissa_a: Numerator mantissa (e.g. ETH/USD answer).
    :param scale_a: Numerator decimals.
    :param mantissa_b: Denominator mantissa (e.g. EUR/USD answer).
    :param scale_b: Denominator decimals.
    :param result_scale: Fractional digits of the result (default: 8).
    :returns: ScaledDecimal with ``scale == result_scale``.
    :raises DivisionByZeroError: If ``mantissa_b`` is zero.
    :raises ValueError: If any scale is negative.

    .. code-block:: python

        >>> str(derive_rate(7, 0, 7, 0, 8))
        '1.00000000'
    """
    for scale in (scale_a, scale_b, result_scale):
        if scale < 0:
            raise ValueError(f"scale must be non-negative, got {scale}")
    if mantissa_b == 0:
        raise DivisionByZeroError("Cannot derive a rate against a zero denominator")

    numerator = mantissa_a * 10**result_scale * 10**scale_b
    denominator = mantissa_b * 10**scale_a
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        quotient = -quotient
    return ScaledDecimal(quotient, result_scale)


def unit_exponent(unit: str | int) -> int:
    """Resolve a unit name or exponent to its power-of-ten exponent.

    :param unit: Unit name (``"gwei"``) or exponent (``9``).
    :returns: Exponent from :data:`UNIT_EXPONENTS`.
    :raises InvalidUnitError: If the unit is not recognized.
    """
    if isinstance(unit, int) and not isinstance(unit, bool):
        if unit in UNIT_EXPONENTS.values():
            return unit
    elif isinstance(unit, str) and unit.lower() in UNIT_EXPONENTS:
        return UNIT_EXPONENTS[unit.lower()]

    raise InvalidUnitError(
        f"Invalid unit {unit!r}. Valid units: {', '.join(UNIT_EXPONENTS)}"
    )


def convert_unit(value: str, from_unit: str | int, to_unit: str | int) -> str:
    """Convert an amount between EVM denominations.

    The amount is first floored to an integer number of wei, then expressed
    in the target unit.

    :param value: Decimal string amount in ``from_unit``.
    :param from_unit: Source unit name or exponent.
    :param to_unit: Target unit name or exponent.
    :returns: Integer string for wei, otherwise the shortest exact decimal.
    :raises InvalidUnitError: If either unit is not recognized.
    :raises ValueError: If value is not a decimal number.

    .. code-block:: python

        >>> convert_unit("1", 18, 9)
        '1000000000'
        >>> convert_unit("1500000000", "wei", "gwei")
        '1.5'
    """
    from_exponent = unit_exponent(from_unit)
    to_exponent = unit_exponent(to_unit)

    wei = _to_mantissa(value, from_exponent, floor=True)
    if to_exponent == 0:
        return str(wei)
    return trim_scaled(wei, to_exponent)


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class ScaledDecimal:
    """Immutable fixed-point number ``mantissa / 10**scale``.

    Equality and ordering are numeric, so values at different scales compare
    after being brought to a common scale.

    :ivar mantissa: Signed integer mantissa.
    :ivar scale: Number of fractional digits.

    .. code-block:: python

        >>> ScaledDecimal(100, 0) == ScaledDecimal(10000, 2)
        True
        >>> str(ScaledDecimal.from_string("2.5", 4))
        '2.5000'
    """

    mantissa: int
    scale: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.mantissa, int) or isinstance(self.mantissa, bool):
            raise TypeError(f"mantissa must be int, got {type(self.mantissa).__name__}")
        if self.scale < 0:
            raise ValueError(f"scale must be non-negative, got {self.scale}")

    @classmethod
    def from_string(cls, text: str, scale: int | None = None) -> ScaledDecimal:
        """Parse a decimal string.

        :param text: Decimal string.
        :param scale: Fractional digits to keep. Defaults to the number of
            fractional digits present in ``text``.
        :returns: New ScaledDecimal.
        :raises ValueError: If text is not a finite decimal number.
        """
        if scale is None:
            try:
                exponent = Decimal(str(text).strip()).as_tuple().exponent
            except InvalidOperation as e:
                raise ValueError(f"Invalid decimal value: {text!r}") from e
            scale = -exponent if isinstance(exponent, int) and exponent < 0 else 0
        return cls(parse_scaled(text, scale), scale)

    def rescale(self, scale: int) -> ScaledDecimal:
        """Return the same value with ``scale`` fractional digits.

        Reducing the scale truncates toward zero.
        """
        if scale == self.scale:
            return self
        if scale > self.scale:
            return ScaledDecimal(self.mantissa * 10 ** (scale - self.scale), scale)
        divisor = 10 ** (self.scale - scale)
        magnitude = abs(self.mantissa) // divisor
        return ScaledDecimal(-magnitude if self.mantissa < 0 else magnitude, scale)

    def _aligned(self, other: ScaledDecimal) -> tuple[int, int, int]:
        scale = max(self.scale, other.scale)
        return self.rescale(scale).mantissa, other.rescale(scale).mantissa, scale

    @staticmethod
    def _coerce(other: object) -> ScaledDecimal | None:
        if isinstance(other, ScaledDecimal):
            return other
        if isinstance(other, int) and not isinstance(other, bool):
            return ScaledDecimal(other, 0)
        return None

    def __eq__(self, other: object) -> bool:
        coerced = self._coerce(other)
        if coerced is None:
            return NotImplemented
        a, b, _ = self._aligned(coerced)
        return a == b

    def __lt__(self, other: object) -> bool:
        coerced = self._coerce(other)
        if coerced is None:
            return NotImplemented
        a, b, _ = self._aligned(coerced)
        return a < b

    def __hash__(self) -> int:
        mantissa, scale = self.mantissa, self.scale
        while scale > 0 and mantissa % 10 == 0:
            mantissa //= 10
            scale -= 1
        return hash((mantissa, scale))

    def __sub__(self, other: object) -> ScaledDecimal:
        coerced = self._coerce(other)
        if coerced is None:
            return NotImplemented
        a, b, scale = self._aligned(coerced)
        return ScaledDecimal(a - b, scale)

    def __mul__(self, other: object) -> ScaledDecimal:
        coerced = self._coerce(other)
        if coerced is None:
            return NotImplemented
        return ScaledDecimal(self.mantissa * coerced.mantissa, self.scale + coerced.scale)

    __rmul__ = __mul__

    def __neg__(self) -> ScaledDecimal:
        return ScaledDecimal(-self.mantissa, self.scale)

    def __abs__(self) -> ScaledDecimal:
        return ScaledDecimal(abs(self.mantissa), self.scale)

    def __str__(self) -> str:
        return format_scaled(self.mantissa, self.scale)

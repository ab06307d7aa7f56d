from __future__ import annotations

from enum              import Enum
from typing_extensions import Any

from numtower.exceptions import NumericArithmeticError


class Sign(Enum):
    NEGATIVE = -1
    ZERO = 0
    POSITIVE = 1

    def negate(self) -> Sign:
        return Sign(-self.value)

    @property
    def symbol(self) -> str:
        return {-1: '-', 0: '0', 1: '+'}[self.value]

    @classmethod
    def of(cls, x) -> Sign:
        "Sign of a Python real number (int, Fraction, Decimal, float)."
        if x > 0:
            return cls.POSITIVE
        if x < 0:
            return cls.NEGATIVE
        if x == 0:
            return cls.ZERO
        raise NumericArithmeticError(f'The sign of {x!r} is undefined')

    @classmethod
    def from_comparison(cls, x: Any, zero: Any = 0) -> Sign:
        """Sign of a value that only supports ordering, found by comparing
        it against the additive identity `zero`.

        Raises NumericArithmeticError if the value cannot be ordered
        against zero.
        """
        try:
            if x < zero:
                return cls.NEGATIVE
            if x > zero:
                return cls.POSITIVE
        except TypeError as e:
            raise NumericArithmeticError(f'Cannot determine the sign of {x!r}: {e}') from e
        return cls.ZERO

    def __str__(self) -> str:
        return self.name.lower()

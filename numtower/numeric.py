# Numeric quantities: the four kinds of the numeric tower
#
# Every value is an immutable dataclass tagged with its NumKind. Operations
# between values of different kinds go through the dispatcher in
# arithmetic.py, which coerces both operands to their common kind and then
# calls the native, same-kind operation implemented here (the underscored
# methods). Python numbers are accepted wherever a quantity is expected and
# converted with as_quantity.
#
# Exactness is an explicit field. It is cleared whenever a computation had to
# round (the decimal Inexact signal) or produced an irrational result, and it
# survives widening, so an inexact Integer stays inexact as a Rational.
#
from __future__  import annotations

import math
import sys

from abc               import ABC, abstractmethod
from dataclasses       import dataclass, replace
from decimal           import Context, Decimal, InvalidOperation, ROUND_HALF_EVEN
from enum              import Enum, auto
from fractions         import Fraction
from typing            import Callable, Literal, Optional, Union, cast
from typing_extensions import TypeAlias, TypeGuard
from rich.markup       import escape

from numtower            import arithmetic, coercion
from numtower.context    import PrecisionContext, UNLIMITED, default_context
from numtower.env        import environment
from numtower.exceptions import (
    CoercionError,
    ConstructionError,
    DivisionByZeroError,
    NumericArithmeticError,
    NumericConversionError,
)
from numtower.hierarchy  import NumKind
from numtower.mathutils  import GUARD_DIGITS, atan2, cos_sin, nth_root, pi_decimal
from numtower.sign       import Sign


#
# Numeric Quantities
#

# Called from __post_init__, so it must exist before the module-level constants below
def _check_kind(q: NumericQuantity, kind: NumKind) -> None:
    if q.kind is not kind:
        raise ConstructionError(f'{type(q).__name__} must have kind {kind}; pass values by keyword')

class NumericQuantity(ABC):
    kind: NumKind

    @abstractmethod
    def is_exact(self) -> bool:
        ...

    @abstractmethod
    def precision_context(self) -> PrecisionContext:
        ...

    @abstractmethod
    def is_zero(self) -> bool:
        ...

    @abstractmethod
    def rational_parts(self) -> tuple[Fraction, Fraction]:
        "The exact (real, imaginary) value this quantity represents, as Fractions."
        ...

    @abstractmethod
    def as_text(self) -> str:
        ...

    # Native operations. The dispatcher guarantees that `other` has the same kind.

    @abstractmethod
    def _add(self, other): ...

    @abstractmethod
    def _subtract(self, other): ...

    @abstractmethod
    def _multiply(self, other): ...

    @abstractmethod
    def _divide(self, other): ...

    @abstractmethod
    def _power(self, n: int): ...

    @abstractmethod
    def _sqrt(self): ...

    @abstractmethod
    def _inverse(self): ...

    @abstractmethod
    def _negate(self): ...

    @abstractmethod
    def _magnitude(self): ...

    @abstractmethod
    def _sign(self) -> Sign: ...

    # Single steps through the hierarchy, used by the coercion resolver

    def promote(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> NumericQ:
        raise CoercionError(f'{self.kind} does not widen directly to {kind}', self.kind, kind)

    def can_promote(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> bool:
        return False

    def demote(self, kind: NumKind) -> NumericQ:
        raise CoercionError(f'{self.kind} does not narrow directly to {kind}', self.kind, kind)

    def can_demote(self, kind: NumKind) -> bool:
        return False

    #
    # The Numeric capability set
    #

    def add(self, other: ScalarQ) -> NumericQ:
        return arithmetic.add(self, as_quantity(other))

    def subtract(self, other: ScalarQ) -> NumericQ:
        return arithmetic.subtract(self, as_quantity(other))

    def multiply(self, other: ScalarQ) -> NumericQ:
        return arithmetic.multiply(self, as_quantity(other))

    def divide(self, other: ScalarQ) -> NumericQ:
        return arithmetic.divide(self, as_quantity(other))

    def pow(self, exponent) -> NumericQ:
        return arithmetic.power(self, exponent)

    def sqrt(self) -> NumericQ:
        return arithmetic.sqrt(self)

    def inverse(self) -> NumericQ:
        return arithmetic.inverse(self)

    def negate(self) -> NumericQ:
        return arithmetic.negate(self)

    def magnitude(self) -> NumericQ:
        return arithmetic.magnitude(self)

    def sign(self) -> Sign:
        return self._sign()

    def is_coercible_to(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> bool:
        return coercion.is_coercible_to(self, kind, context)

    def coerce_to(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> NumericQ:
        return coercion.coerce_to(self, kind, context)

    def is_identical(self, other) -> bool:
        "Equal in value, kind, and exactness."
        return (isinstance(other, NumericQuantity) and self.kind == other.kind
                and self.is_exact() == other.is_exact() and self == other)

    #
    # Python numeric protocol
    #

    def __add__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.add(self, y)

    def __radd__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.add(y, self)

    def __sub__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.subtract(self, y)

    def __rsub__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.subtract(y, self)

    def __mul__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.multiply(self, y)

    def __rmul__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.multiply(y, self)

    def __truediv__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.divide(self, y)

    def __rtruediv__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.divide(y, self)

    def __pow__(self, exponent):
        if not isinstance(exponent, (int, IntegerQuantity)):
            return NotImplemented
        return arithmetic.power(self, exponent)

    def __rpow__(self, base):
        y = _operand(base)
        if y is None or not isinstance(self, IntegerQuantity):
            return NotImplemented
        return arithmetic.power(y, self)

    def __neg__(self):
        return arithmetic.negate(self)

    def __pos__(self):
        return self

    def __abs__(self):
        return arithmetic.magnitude(self)

    def __bool__(self) -> bool:
        return not self.is_zero()

    def __eq__(self, other) -> bool:
        y = _operand(other)
        if y is None:
            return NotImplemented
        return self.rational_parts() == y.rational_parts()

    def __hash__(self) -> int:
        "Agrees with hash() of the equal int, Fraction, Decimal, float or complex."
        re, im = self.rational_parts()
        if im == 0:
            return hash(re)
        return _complex_hash(hash(re), hash(im))

    def __lt__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.compare(self, y) < 0

    def __le__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.compare(self, y) <= 0

    def __gt__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.compare(self, y) > 0

    def __ge__(self, other):
        y = _operand(other)
        return NotImplemented if y is None else arithmetic.compare(self, y) >= 0

    def __str__(self) -> str:
        return self.as_text()

    def __repr__(self) -> str:
        if environment.is_interactive:
            return self.as_text()
        extras = ''
        if not self.is_exact():
            extras += ', inexact'
        context = self.precision_context()
        if not context.is_unlimited:
            extras += f', {context}'
        return f'{type(self).__name__}({self.as_text()!r}{extras})'

    def __rich__(self) -> str:
        text = escape(self.as_text())
        if self.is_exact():
            return f'[numeric.value]{text}[/]'
        approx = '~' if environment.ascii_only else '≈'
        return f'[numeric.inexact]{approx}[/][numeric.value]{text}[/]'


@dataclass(frozen=True, eq=False, repr=False)
class IntegerQuantity(NumericQuantity):
    kind: Literal[NumKind.INTEGER] = NumKind.INTEGER
    value: int = 0
    exact: bool = True

    def __post_init__(self):
        _check_kind(self, NumKind.INTEGER)
        if not isinstance(self.value, int):
            raise ConstructionError(f'An Integer requires an int value, got {self.value!r}')
        if isinstance(self.value, bool):
            object.__setattr__(self, 'value', int(self.value))

    def is_exact(self) -> bool:
        return self.exact

    def precision_context(self) -> PrecisionContext:
        return UNLIMITED

    def is_zero(self) -> bool:
        return self.value == 0

    def rational_parts(self) -> tuple[Fraction, Fraction]:
        return (Fraction(self.value), Fraction(0))

    def as_text(self) -> str:
        return str(self.value)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __float__(self) -> float:
        return float(self.value)

    def _with(self, value: int, exact: bool) -> IntegerQuantity:
        return IntegerQuantity(value=value, exact=exact)

    def _add(self, other: IntegerQuantity) -> IntegerQuantity:
        return self._with(self.value + other.value, self.exact and other.exact)

    def _subtract(self, other: IntegerQuantity) -> IntegerQuantity:
        return self._with(self.value - other.value, self.exact and other.exact)

    def _multiply(self, other: IntegerQuantity) -> IntegerQuantity:
        return self._with(self.value * other.value, self.exact and other.exact)

    def _divide(self, other: IntegerQuantity) -> Union[IntegerQuantity, RationalQuantity]:
        if other.value == 0:
            raise DivisionByZeroError(f'Cannot divide {self} by zero')
        exact = self.exact and other.exact
        quotient, remainder = divmod(self.value, other.value)
        if remainder == 0:
            return self._with(quotient, exact)
        return RationalQuantity(num=self.value, den=other.value, exact=exact)

    def _power(self, n: int) -> Union[IntegerQuantity, RationalQuantity]:
        if n >= 0:
            return self._with(self.value ** n, self.exact)
        if self.value == 0:
            raise DivisionByZeroError('Zero cannot be raised to a negative power')
        return RationalQuantity(num=1, den=self.value ** -n, exact=self.exact)

    def _sqrt(self) -> Union[IntegerQuantity, ComplexQuantity]:
        "Integer square root; exact only when the value is a perfect square."
        if self.value < 0:
            return RealQuantity(value=Decimal(self.value), exact=self.exact)._sqrt()
        root = math.isqrt(self.value)
        return self._with(root, self.exact and root * root == self.value)

    def _inverse(self) -> Union[IntegerQuantity, RationalQuantity]:
        if self.value == 0:
            raise DivisionByZeroError('Zero has no multiplicative inverse')
        if self.value in (1, -1):
            return self
        return RationalQuantity(num=1, den=self.value, exact=self.exact)

    def _negate(self) -> IntegerQuantity:
        return self._with(-self.value, self.exact)

    def _magnitude(self) -> IntegerQuantity:
        return self._with(abs(self.value), self.exact)

    def _sign(self) -> Sign:
        return Sign.of(self.value)

    def promote(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> NumericQ:
        if kind is not NumKind.RATIONAL:
            return super().promote(kind, context)
        return RationalQuantity(num=self.value, den=1, exact=self.exact)

    def can_promote(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> bool:
        return kind is NumKind.RATIONAL

    # Integer specific operations

    def number_of_digits(self) -> int:
        return len(str(abs(self.value)))

    def digit_at(self, position: int) -> int:
        "Decimal digit at `position`, counting from the least significant digit at 0."
        if position < 0 or position >= self.number_of_digits():
            raise IndexError(f'Digit position {position} is out of range for {self}')
        return abs(self.value) // 10 ** position % 10

    def is_even(self) -> bool:
        return self.value % 2 == 0

    def is_odd(self) -> bool:
        return self.value % 2 == 1

    def is_perfect_square(self) -> bool:
        return self.value >= 0 and math.isqrt(self.value) ** 2 == self.value

    def modulus(self, divisor) -> IntegerQuantity:
        m = int(divisor)
        if m <= 0:
            raise NumericArithmeticError(f'Modulus must be positive, got {m}')
        return self._with(self.value % m, self.exact)

    def pow_mod(self, exponent, divisor) -> IntegerQuantity:
        m = int(divisor)
        if m <= 0:
            raise NumericArithmeticError(f'Modulus must be positive, got {m}')
        try:
            return self._with(pow(self.value, int(exponent), m), self.exact)
        except ValueError as e:   # negative exponent of a non-invertible base
            raise NumericArithmeticError(str(e)) from e

    def is_power_of_two(self) -> bool:
        return self.value > 0 and self.value & (self.value - 1) == 0

    def next(self) -> IntegerQuantity:
        return self._with(self.value + 1, self.exact)

    def previous(self) -> IntegerQuantity:
        return self._with(self.value - 1, self.exact)

    # Bitwise operations act on the two's complement form, as Python ints do

    def bitwise_and(self, other) -> IntegerQuantity:
        y = _integer_operand(other)
        return self._with(self.value & y.value, self.exact and y.exact)

    def bitwise_or(self, other) -> IntegerQuantity:
        y = _integer_operand(other)
        return self._with(self.value | y.value, self.exact and y.exact)

    def bitwise_xor(self, other) -> IntegerQuantity:
        y = _integer_operand(other)
        return self._with(self.value ^ y.value, self.exact and y.exact)

    def bitwise_not(self) -> IntegerQuantity:
        return self._with(~self.value, self.exact)

    def shift_left(self, count) -> IntegerQuantity:
        n = _shift_count(count)
        return self._with(self.value << n.value, self.exact and n.exact)

    def shift_right(self, count) -> IntegerQuantity:
        "Arithmetic shift, rounding toward negative infinity."
        n = _shift_count(count)
        return self._with(self.value >> n.value, self.exact and n.exact)

    def __and__(self, other):
        return self.bitwise_and(other) if _is_integral(other) else NotImplemented

    def __rand__(self, other):
        return self.bitwise_and(other) if _is_integral(other) else NotImplemented

    def __or__(self, other):
        return self.bitwise_or(other) if _is_integral(other) else NotImplemented

    def __ror__(self, other):
        return self.bitwise_or(other) if _is_integral(other) else NotImplemented

    def __xor__(self, other):
        return self.bitwise_xor(other) if _is_integral(other) else NotImplemented

    def __rxor__(self, other):
        return self.bitwise_xor(other) if _is_integral(other) else NotImplemented

    def __lshift__(self, count):
        return self.shift_left(count) if _is_integral(count) else NotImplemented

    def __rshift__(self, count):
        return self.shift_right(count) if _is_integral(count) else NotImplemented

    def __invert__(self):
        return self.bitwise_not()


@dataclass(frozen=True, eq=False, repr=False)
class RationalQuantity(NumericQuantity):
    kind: Literal[NumKind.RATIONAL] = NumKind.RATIONAL
    num: int = 0
    den: int = 1
    exact: bool = True

    def __post_init__(self):
        _check_kind(self, NumKind.RATIONAL)
        if not isinstance(self.num, int) or not isinstance(self.den, int):
            raise ConstructionError(f'A Rational requires int parts, got {self.num!r}/{self.den!r}')
        if self.den == 0:
            raise DivisionByZeroError(f'Rational {self.num}/0 has a zero denominator')
        divisor = math.gcd(self.num, self.den)
        if self.den < 0:
            divisor = -divisor
        object.__setattr__(self, 'num', self.num // divisor)
        object.__setattr__(self, 'den', self.den // divisor)

    @classmethod
    def from_fraction(cls, value: Fraction, exact: bool = True) -> RationalQuantity:
        return cls(num=value.numerator, den=value.denominator, exact=exact)

    @property
    def fraction(self) -> Fraction:
        return Fraction(self.num, self.den)

    def is_exact(self) -> bool:
        return self.exact

    def precision_context(self) -> PrecisionContext:
        return UNLIMITED

    def is_zero(self) -> bool:
        return self.num == 0

    def is_integral(self) -> bool:
        return self.den == 1

    def rational_parts(self) -> tuple[Fraction, Fraction]:
        return (self.fraction, Fraction(0))

    def as_text(self) -> str:
        return f'{self.num}/{self.den}'

    def __float__(self) -> float:
        return self.num / self.den

    def numerator(self) -> IntegerQuantity:
        return IntegerQuantity(value=self.num, exact=self.exact)

    def denominator(self) -> IntegerQuantity:
        return IntegerQuantity(value=self.den, exact=self.exact)

    def _add(self, other: RationalQuantity) -> RationalQuantity:
        return self.from_fraction(self.fraction + other.fraction, self.exact and other.exact)

    def _subtract(self, other: RationalQuantity) -> RationalQuantity:
        return self.from_fraction(self.fraction - other.fraction, self.exact and other.exact)

    def _multiply(self, other: RationalQuantity) -> RationalQuantity:
        return self.from_fraction(self.fraction * other.fraction, self.exact and other.exact)

    def _divide(self, other: RationalQuantity) -> RationalQuantity:
        if other.num == 0:
            raise DivisionByZeroError(f'Cannot divide {self} by zero')
        return self.from_fraction(self.fraction / other.fraction, self.exact and other.exact)

    def _power(self, n: int) -> RationalQuantity:
        if n < 0 and self.num == 0:
            raise DivisionByZeroError('Zero cannot be raised to a negative power')
        return self.from_fraction(self.fraction ** n, self.exact)

    def _sqrt(self) -> Union[RationalQuantity, RealQuantity, ComplexQuantity]:
        if self.num < 0:
            return self._as_real(default_context())._sqrt()
        num_root = math.isqrt(self.num)
        den_root = math.isqrt(self.den)
        if num_root * num_root == self.num and den_root * den_root == self.den:
            return RationalQuantity(num=num_root, den=den_root, exact=self.exact)
        # The root of a reduced non-square ratio is irrational
        target = default_context()
        guarded = target.with_guard(GUARD_DIGITS)
        root, _ = guarded.evaluate(lambda c: c.sqrt(c.divide(Decimal(self.num), Decimal(self.den))))
        value, _ = target.round(root)
        return RealQuantity(value=value, context=target, exact=False, irrational=True)

    def _inverse(self) -> Union[IntegerQuantity, RationalQuantity]:
        if self.num == 0:
            raise DivisionByZeroError('Zero has no multiplicative inverse')
        if self.num in (1, -1):
            return IntegerQuantity(value=self.num * self.den, exact=self.exact)
        return RationalQuantity(num=self.den, den=self.num, exact=self.exact)

    def _negate(self) -> RationalQuantity:
        return RationalQuantity(num=-self.num, den=self.den, exact=self.exact)

    def _magnitude(self) -> RationalQuantity:
        return RationalQuantity(num=abs(self.num), den=self.den, exact=self.exact)

    def _sign(self) -> Sign:
        return Sign.of(self.num)

    def floor(self) -> IntegerQuantity:
        return IntegerQuantity(value=self.num // self.den, exact=self.exact)

    def ceil(self) -> IntegerQuantity:
        return IntegerQuantity(value=-(-self.num // self.den), exact=self.exact)

    def divide_with_remainder(self) -> tuple[IntegerQuantity, IntegerQuantity]:
        """Splits into a whole part and remainder, truncating toward zero.

        The whole part is exact only when it represents this value exactly,
        that is when the remainder is zero.
        """
        whole = abs(self.num) // self.den
        remainder = abs(self.num) % self.den
        if self.num < 0:
            whole, remainder = -whole, -remainder
        return (IntegerQuantity(value=whole, exact=self.exact and remainder == 0),
                IntegerQuantity(value=remainder, exact=self.exact))

    def modulus(self) -> IntegerQuantity:
        return IntegerQuantity(value=self.num % self.den, exact=self.exact)

    def as_decimal_text(self, max_digits: Optional[int] = None) -> str:
        """Decimal expansion with the repeating block in parentheses, e.g. 1/6 -> 0.1(6).

        Expansions whose fractional part (prefix plus period) would exceed
        `max_digits` digits are cut off and end with '...'.
        """
        limit = max_digits if max_digits is not None else environment.default_digits
        sign = '-' if self.num < 0 else ''
        whole, remainder = divmod(abs(self.num), self.den)
        digits: list[str] = []
        seen: dict[int, int] = {}
        while remainder and remainder not in seen:
            if len(digits) >= limit:
                return f'{sign}{whole}.{"".join(digits)}...'
            seen[remainder] = len(digits)
            quotient, remainder = divmod(remainder * 10, self.den)
            digits.append(str(quotient))
        if not digits:
            return f'{sign}{whole}'
        if not remainder:
            return f'{sign}{whole}.{"".join(digits)}'
        start = seen[remainder]
        return f'{sign}{whole}.{"".join(digits[:start])}({"".join(digits[start:])})'

    def _as_real(self, context: Optional[PrecisionContext] = None) -> RealQuantity:
        scale = _terminating_scale(self.den)
        if scale is not None:
            value = Decimal(f'{self.num * (10 ** scale // self.den)}E-{scale}')
            return RealQuantity(value=value, exact=self.exact)
        if context is None or context.is_unlimited:
            raise CoercionError(f'{self} has no terminating decimal expansion; a precision context is required',
                                NumKind.RATIONAL, NumKind.REAL)
        value, _ = context.evaluate(lambda c: c.divide(Decimal(self.num), Decimal(self.den)))
        return RealQuantity(value=value, context=context, exact=False)

    def promote(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> NumericQ:
        if kind is not NumKind.REAL:
            return super().promote(kind, context)
        return self._as_real(context)

    def can_promote(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> bool:
        if kind is not NumKind.REAL:
            return False
        return (_terminating_scale(self.den) is not None
                or (context is not None and not context.is_unlimited))

    def demote(self, kind: NumKind) -> NumericQ:
        if kind is not NumKind.INTEGER:
            return super().demote(kind)
        if not self.can_demote(kind):
            raise CoercionError(f'{self} is not an exact integer', self.kind, kind)
        return IntegerQuantity(value=self.num)

    def can_demote(self, kind: NumKind) -> bool:
        return kind is NumKind.INTEGER and self.exact and self.den == 1


@dataclass(frozen=True, eq=False, repr=False)
class RealQuantity(NumericQuantity):
    kind: Literal[NumKind.REAL] = NumKind.REAL
    value: Decimal = Decimal(0)
    context: PrecisionContext = UNLIMITED
    exact: bool = True
    irrational: bool = False      # known to approximate an irrational number

    def __post_init__(self):
        _check_kind(self, NumKind.REAL)
        if isinstance(self.value, int):
            object.__setattr__(self, 'value', Decimal(self.value))
        if not isinstance(self.value, Decimal):
            raise ConstructionError(f'A Real requires a Decimal value, got {self.value!r}')
        if not self.value.is_finite():
            raise ConstructionError(f'A Real must be finite, got {self.value}')
        if not isinstance(self.context, PrecisionContext):
            raise ConstructionError(f'A Real requires a PrecisionContext, got {self.context!r}')

    def is_exact(self) -> bool:
        return self.exact

    def precision_context(self) -> PrecisionContext:
        return self.context

    def is_zero(self) -> bool:
        return self.value.is_zero()

    def is_irrational(self) -> bool:
        """True when this value is known to approximate an irrational number.

        Set for the irrational constants, for square roots of non-square
        values and for infinite continued fractions. A False result does not
        prove the value rational.
        """
        return self.irrational

    def is_integral(self) -> bool:
        return Fraction(self.value).denominator == 1

    def rational_parts(self) -> tuple[Fraction, Fraction]:
        return (Fraction(self.value), Fraction(0))

    def as_text(self) -> str:
        text = format(self.value, 'f')
        return text if '.' in text else text + '.0'

    def __float__(self) -> float:
        return float(self.value)

    def _closed(self, other: RealQuantity, operation: Callable[[Context, Decimal, Decimal], Decimal]) -> RealQuantity:
        context = self.context.combine(other.context)
        value, inexact = context.evaluate(lambda c: operation(c, self.value, other.value))
        return RealQuantity(value=value, context=context, exact=self.exact and other.exact and not inexact)

    def _add(self, other: RealQuantity) -> RealQuantity:
        return self._closed(other, Context.add)

    def _subtract(self, other: RealQuantity) -> RealQuantity:
        return self._closed(other, Context.subtract)

    def _multiply(self, other: RealQuantity) -> RealQuantity:
        return self._closed(other, Context.multiply)

    def _divide(self, other: RealQuantity) -> RealQuantity:
        if other.value.is_zero():
            raise DivisionByZeroError(f'Cannot divide {self} by zero')
        return _rounded_real(lambda c: c.divide(self.value, other.value),
                             self.context.combine(other.context), self.exact and other.exact)

    def _power(self, n: int) -> RealQuantity:
        if n < 0:
            if self.value.is_zero():
                raise DivisionByZeroError('Zero cannot be raised to a negative power')
            return self._power(-n)._inverse()
        if self.context.is_unlimited:
            return RealQuantity(value=_exact_power(self.value, n), exact=self.exact)
        value, inexact = self.context.evaluate(lambda c: c.power(self.value, n))
        return RealQuantity(value=value, context=self.context, exact=self.exact and not inexact)

    def _sqrt(self) -> Union[RealQuantity, ComplexQuantity]:
        if self.value < 0:
            if environment.negative_sqrt == 'fail':
                raise NumericArithmeticError(f'Square root of negative value {self} is not real')
            root = self._negate()._sqrt()
            zero = RealQuantity(value=Decimal(0), context=self.context, exact=True)
            return ComplexQuantity(form=ComplexForm.RECTANGULAR, first=zero, second=root)
        root = _rounded_real(lambda c: c.sqrt(self.value), self.context, self.exact)
        if self.exact and not root.exact and not _is_rational_square(Fraction(self.value)):
            return replace(root, irrational=True)
        return root

    def _inverse(self) -> RealQuantity:
        if self.value.is_zero():
            raise DivisionByZeroError('Zero has no multiplicative inverse')
        return _rounded_real(lambda c: c.divide(Decimal(1), self.value), self.context, self.exact)

    def _negate(self) -> RealQuantity:
        return replace(self, value=self.value.copy_negate())

    def _magnitude(self) -> RealQuantity:
        return replace(self, value=self.value.copy_abs())

    def _sign(self) -> Sign:
        return Sign.of(self.value)

    def floor(self) -> IntegerQuantity:
        return IntegerQuantity(value=math.floor(self.value), exact=self.exact)

    def ceil(self) -> IntegerQuantity:
        return IntegerQuantity(value=math.ceil(self.value), exact=self.exact)

    def with_context(self, context: PrecisionContext) -> RealQuantity:
        "A new value re-rounded into `context`."
        value, inexact = context.round(self.value)
        return replace(self, value=value, context=context, exact=self.exact and not inexact)

    def promote(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> NumericQ:
        if kind is not NumKind.COMPLEX:
            return super().promote(kind, context)
        zero = RealQuantity(value=Decimal(0), context=self.context, exact=True)
        return ComplexQuantity(form=ComplexForm.RECTANGULAR, first=self, second=zero)

    def can_promote(self, kind: NumKind, context: Optional[PrecisionContext] = None) -> bool:
        return kind is NumKind.COMPLEX

    def demote(self, kind: NumKind) -> NumericQ:
        if kind is not NumKind.RATIONAL:
            return super().demote(kind)
        if not self.exact:
            raise CoercionError(f'Inexact real {self} cannot be represented as a Rational', self.kind, kind)
        return RationalQuantity.from_fraction(Fraction(self.value))

    def can_demote(self, kind: NumKind) -> bool:
        return kind is NumKind.RATIONAL and self.exact

REAL_ZERO = RealQuantity(value=Decimal(0))
REAL_ONE = RealQuantity(value=Decimal(1))
REAL_TWO = RealQuantity(value=Decimal(2))


class ComplexForm(Enum):
    RECTANGULAR = auto()
    POLAR = auto()

@dataclass(frozen=True, eq=False, repr=False)
class ComplexQuantity(NumericQuantity):
    """A complex number held as two Real components.

    In RECTANGULAR form the components are the real and imaginary parts; in
    POLAR form they are the modulus and the argument in radians. Exactness
    and precision derive from the components.
    """
    kind: Literal[NumKind.COMPLEX] = NumKind.COMPLEX
    form: ComplexForm = ComplexForm.RECTANGULAR
    first: RealQuantity = REAL_ZERO
    second: RealQuantity = REAL_ZERO

    def __post_init__(self):
        _check_kind(self, NumKind.COMPLEX)
        if not isinstance(self.first, RealQuantity) or not isinstance(self.second, RealQuantity):
            raise ConstructionError('Complex components must be Real quantities')
        if self.form is ComplexForm.POLAR and self.first.value < 0:
            raise ConstructionError(f'A polar modulus must be non-negative, got {self.first}')

    @property
    def is_polar(self) -> bool:
        return self.form is ComplexForm.POLAR

    def is_exact(self) -> bool:
        return self.first.exact and self.second.exact

    def precision_context(self) -> PrecisionContext:
        return self.first.context.combine(self.second.context)

    def is_zero(self) -> bool:
        if self.is_polar:
            return self.first.is_zero()
        return self.first.is_zero() and self.second.is_zero()

    def _parts(self) -> tuple[RealQuantity, RealQuantity]:
        if not self.is_polar:
            return self.first, self.second
        modulus, angle = self.first, self.second
        zero = RealQuantity(value=Decimal(0), context=modulus.context, exact=True)
        if modulus.is_zero():
            return modulus, zero
        if angle.is_zero() and angle.exact:
            return modulus, zero
        context = self.precision_context().working()
        cos, sin = cos_sin(angle.value, context.digits)
        return (modulus._multiply(_approximate(cos, context)),
                modulus._multiply(_approximate(sin, context)))

    def real(self) -> RealQuantity:
        return self._parts()[0]

    def imaginary(self) -> RealQuantity:
        return self._parts()[1]

    def argument(self) -> RealQuantity:
        "The angle in (-pi, pi] for rectangular values; zero for the origin."
        if self.is_polar:
            return self.second
        re, im = self.first, self.second
        context = self.precision_context().working()
        if im.is_zero() and im.exact:
            if re.value >= 0:
                return RealQuantity(value=Decimal(0), context=self.precision_context(), exact=True)
            return _approximate(pi_decimal(context.digits), context)
        return _approximate(atan2(im.value, re.value, context.digits), context)

    def conjugate(self) -> ComplexQuantity:
        return ComplexQuantity(form=self.form, first=self.first, second=self.second._negate())

    def to_rectangular(self) -> ComplexQuantity:
        if not self.is_polar:
            return self
        re, im = self._parts()
        return ComplexQuantity(form=ComplexForm.RECTANGULAR, first=re, second=im)

    def to_polar(self) -> ComplexQuantity:
        if self.is_polar:
            return self
        return ComplexQuantity(form=ComplexForm.POLAR, first=self._magnitude(), second=self.argument())

    def rational_parts(self) -> tuple[Fraction, Fraction]:
        re, im = self._parts()
        return (Fraction(re.value), Fraction(im.value))

    def as_text(self) -> str:
        if self.is_polar:
            angle_mark = '@' if environment.ascii_only else '∠'
            return f'{_plain(self.first.value)}{angle_mark}{_plain(self.second.value)}'
        im = self.second.value
        op = '-' if im < 0 else '+'
        return f'{_plain(self.first.value)}{op}{_plain(im.copy_abs())}i'

    def __complex__(self) -> complex:
        re, im = self._parts()
        return complex(float(re.value), float(im.value))

    def _rect(self, re: RealQuantity, im: RealQuantity) -> ComplexQuantity:
        return ComplexQuantity(form=ComplexForm.RECTANGULAR, first=re, second=im)

    def _polar(self, modulus: RealQuantity, angle: RealQuantity) -> ComplexQuantity:
        return ComplexQuantity(form=ComplexForm.POLAR, first=modulus, second=angle)

    def _add(self, other: ComplexQuantity) -> ComplexQuantity:
        a, b = self._parts()
        c, d = other._parts()
        return self._rect(a._add(c), b._add(d))

    def _subtract(self, other: ComplexQuantity) -> ComplexQuantity:
        a, b = self._parts()
        c, d = other._parts()
        return self._rect(a._subtract(c), b._subtract(d))

    def _multiply(self, other: ComplexQuantity) -> ComplexQuantity:
        if self.is_polar and other.is_polar:
            return self._polar(self.first._multiply(other.first), self.second._add(other.second))
        a, b = self._parts()
        c, d = other._parts()
        return self._rect(a._multiply(c)._subtract(b._multiply(d)),
                          a._multiply(d)._add(b._multiply(c)))

    def _divide(self, other: ComplexQuantity) -> ComplexQuantity:
        if other.is_zero():
            raise DivisionByZeroError(f'Cannot divide {self} by zero')
        if self.is_polar and other.is_polar:
            return self._polar(self.first._divide(other.first), self.second._subtract(other.second))
        a, b = self._parts()
        c, d = other._parts()
        denominator = c._multiply(c)._add(d._multiply(d))
        return self._rect(a._multiply(c)._add(b._multiply(d))._divide(denominator),
                          b._multiply(c)._subtract(a._multiply(d))._divide(denominator))

    def _power(self, n: int) -> ComplexQuantity:
        if n < 0:
            if self.is_zero():
                raise DivisionByZeroError('Zero cannot be raised to a negative power')
            return self._power(-n)._inverse()
        if self.is_polar:
            return self._polar(self.first._power(n), self.second._multiply(RealQuantity(value=Decimal(n))))
        result = self._rect(REAL_ONE, REAL_ZERO)
        base = self
        while n:
            if n & 1:
                result = result._multiply(base)
            n >>= 1
            if n:
                base = base._multiply(base)
        return result

    def _sqrt(self) -> ComplexQuantity:
        "Principal square root."
        if self.is_zero():
            return self
        if self.is_polar:
            return self._polar(self.first._sqrt(), self.second._divide(REAL_TWO))
        re, im = self.first, self.second
        modulus = self._magnitude()
        re_root = _clamp_nonnegative(re._add(modulus)._divide(REAL_TWO))._sqrt()
        im_root = _clamp_nonnegative(modulus._subtract(re)._divide(REAL_TWO))._sqrt()
        if im.value < 0:
            im_root = im_root._negate()
        return self._rect(re_root, im_root)

    def _inverse(self) -> ComplexQuantity:
        if self.is_zero():
            raise DivisionByZeroError('Zero has no multiplicative inverse')
        if self.is_polar:
            return self._polar(self.first._inverse(), self.second._negate())
        re, im = self.first, self.second
        denominator = re._multiply(re)._add(im._multiply(im))
        return self._rect(re._divide(denominator), im._negate()._divide(denominator))

    def _negate(self) -> ComplexQuantity:
        if self.is_polar:
            # Turn by a half circle, keeping the angle in (-pi, pi]
            context = self.second.context.working()
            half_turn = _approximate(pi_decimal(context.digits), context)
            if self.second.value > 0:
                return self._polar(self.first, self.second._subtract(half_turn))
            return self._polar(self.first, self.second._add(half_turn))
        return self._rect(self.first._negate(), self.second._negate())

    def _magnitude(self) -> RealQuantity:
        if self.is_polar:
            return self.first
        re, im = self.first, self.second
        return re._multiply(re)._add(im._multiply(im))._sqrt()

    def _sign(self) -> Sign:
        raise NumericArithmeticError(f'Complex value {self} has no sign')

    def nth_roots(self, n: int) -> list[ComplexQuantity]:
        "All n distinct n-th roots, in polar form, starting from the principal root."
        if n < 1:
            raise NumericArithmeticError(f'Root index must be positive, got {n}')
        modulus = self._magnitude()
        angle = self.argument()
        context = self.precision_context().working()
        if n == 1:
            return [self._polar(modulus, angle)]
        root_modulus = _approximate(nth_root(modulus.value, n, context.digits), context)
        two_pi = _approximate(2 * pi_decimal(context.digits + GUARD_DIGITS), context)
        count = RealQuantity(value=Decimal(n))
        return [self._polar(root_modulus,
                            angle._add(two_pi._multiply(RealQuantity(value=Decimal(k))))._divide(count))
                for k in range(n)]

    def demote(self, kind: NumKind) -> NumericQ:
        if kind is not NumKind.REAL:
            return super().demote(kind)
        if not self.can_demote(kind):
            raise CoercionError(f'{self} has a non-zero imaginary part', self.kind, kind)
        return self.first

    def can_demote(self, kind: NumKind) -> bool:
        # The second component is the imaginary part or the argument; either
        # must be exactly zero
        return kind is NumKind.REAL and self.second.is_zero() and self.second.exact


#
# Numeric Types
#

NumericQ: TypeAlias = Union[IntegerQuantity, RationalQuantity, RealQuantity, ComplexQuantity]
Primitive: TypeAlias = Union[int, Fraction, Decimal, float, complex]
ScalarQ:  TypeAlias = Union[Primitive, NumericQ]

FLOAT_CONTEXT = PrecisionContext(17, ROUND_HALF_EVEN)   # enough to round-trip a binary double

def is_primitive(x) -> TypeGuard[Primitive]:
    return isinstance(x, (int, Fraction, Decimal, float, complex))  # bool is an int

def is_quantity(x) -> TypeGuard[NumericQ]:
    return isinstance(x, NumericQuantity)


#
# Numeric Conversion
#

def as_quantity(x: ScalarQ) -> NumericQ:
    "Converts a Python number to the numeric kind that represents it naturally."
    if isinstance(x, NumericQuantity):
        return x
    if isinstance(x, int):
        return IntegerQuantity(value=int(x))
    if isinstance(x, Fraction):
        return RationalQuantity.from_fraction(x)
    if isinstance(x, Decimal):
        if not x.is_finite():
            raise NumericConversionError(f'Cannot convert non-finite {x} to a numeric quantity')
        return RealQuantity(value=x)
    if isinstance(x, float):
        return _float_quantity(x)
    if isinstance(x, complex):
        return ComplexQuantity(form=ComplexForm.RECTANGULAR,
                               first=_float_quantity(x.real), second=_float_quantity(x.imag))
    raise NumericConversionError(f'Cannot convert {x!r} to a numeric quantity')

def integer(n) -> IntegerQuantity:
    try:
        return IntegerQuantity(value=int(n))
    except (TypeError, ValueError) as e:
        raise ConstructionError(f'Cannot create an Integer from {n!r}') from e

def rational(num, den=1) -> RationalQuantity:
    if isinstance(num, Fraction) or isinstance(den, Fraction):
        return RationalQuantity.from_fraction(Fraction(num) / Fraction(den))
    try:
        return RationalQuantity(num=int(num), den=int(den))
    except (TypeError, ValueError) as e:
        raise ConstructionError(f'Cannot create a Rational from {num!r}/{den!r}') from e

def real(x, context: Optional[PrecisionContext] = None, exact: Optional[bool] = None) -> RealQuantity:
    """Creates a Real from an int, Decimal, decimal string, float or numeric quantity.

    The value is kept as given and `context`, when supplied, replaces any
    context it had; use RealQuantity.with_context to round into a context.
    A quantity converted without a `context` keeps its own.
    """
    if isinstance(x, NumericQuantity):
        q = cast(RealQuantity, coercion.coerce_to(x, NumKind.REAL, (context or UNLIMITED).working()))
        return replace(q, context=context or q.context, exact=q.exact if exact is None else exact)
    context = context or UNLIMITED
    if isinstance(x, float):
        value = _float_quantity(x).value
        return RealQuantity(value=value, context=context, exact=False if exact is None else exact)
    if isinstance(x, str):
        try:
            x = Decimal(x.strip().replace('_', ''))
        except InvalidOperation as e:
            raise ConstructionError(f'Cannot create a Real from {x!r}') from e
    if isinstance(x, (int, Decimal)):
        return RealQuantity(value=Decimal(x), context=context, exact=True if exact is None else exact)
    raise ConstructionError(f'Cannot create a Real from {x!r}')

def complex_rect(re, im=0, context: Optional[PrecisionContext] = None) -> ComplexQuantity:
    return ComplexQuantity(form=ComplexForm.RECTANGULAR, first=_component(re, context), second=_component(im, context))

def complex_polar(modulus, argument, context: Optional[PrecisionContext] = None) -> ComplexQuantity:
    return ComplexQuantity(form=ComplexForm.POLAR, first=_component(modulus, context), second=_component(argument, context))


#
# Helpers
#

def _operand(x) -> Optional[NumericQ]:
    "A right-hand operand as a quantity, or None when it is not numeric."
    if isinstance(x, NumericQuantity):
        return x
    if is_primitive(x):
        return as_quantity(x)
    return None

def _is_integral(x) -> bool:
    return isinstance(x, (int, IntegerQuantity))

def _integer_operand(x) -> IntegerQuantity:
    if isinstance(x, IntegerQuantity):
        return x
    if isinstance(x, int):
        return IntegerQuantity(value=x)
    raise NumericConversionError(f'Bitwise operations require an Integer operand, got {x!r}')

def _shift_count(x) -> IntegerQuantity:
    n = _integer_operand(x)
    if n.value < 0:
        raise NumericArithmeticError(f'Shift count must be non-negative, got {n}')
    return n

def _complex_hash(re_hash: int, im_hash: int) -> int:
    # CPython's rule for complex numbers: wrap to a signed machine word, -1 is reserved
    width = sys.hash_info.width
    combined = (re_hash + sys.hash_info.imag * im_hash) % (1 << width)
    if combined >= 1 << (width - 1):
        combined -= 1 << width
    return -2 if combined == -1 else combined

def _component(x, context: Optional[PrecisionContext]) -> RealQuantity:
    if isinstance(x, RealQuantity) and context is None:
        return x
    return real(x, context)

def _float_quantity(x: float) -> RealQuantity:
    if not math.isfinite(x):
        raise NumericConversionError(f'Cannot convert non-finite {x} to a numeric quantity')
    return RealQuantity(value=Decimal(repr(x)), context=FLOAT_CONTEXT, exact=False)

def _terminating_scale(den: int) -> Optional[int]:
    "Number of decimal places in 1/den when it terminates, otherwise None."
    twos = fives = 0
    while den % 2 == 0:
        den //= 2
        twos += 1
    while den % 5 == 0:
        den //= 5
        fives += 1
    return max(twos, fives) if den == 1 else None

def _is_rational_square(x: Fraction) -> bool:
    "True if x is the square of a rational; x must be non-negative."
    return (math.isqrt(x.numerator) ** 2 == x.numerator
            and math.isqrt(x.denominator) ** 2 == x.denominator)

def _exact_power(x: Decimal, n: int) -> Decimal:
    sign, digits, exponent = x.as_tuple()
    coefficient = int(''.join(map(str, digits)))
    negative = '-' if sign and n % 2 else ''
    return Decimal(f'{negative}{coefficient ** n}E{exponent * n}')

def _rounded_real(operation: Callable[[Context], Decimal], context: PrecisionContext, exact: bool) -> RealQuantity:
    """Evaluates an operation whose exact result may not terminate.

    Under an unlimited context the working context is used, and the result
    keeps the unlimited context only if nothing was rounded.
    """
    working = context.working()
    value, inexact = working.evaluate(operation)
    return RealQuantity(value=value, context=working if inexact else context, exact=exact and not inexact)

def _approximate(x: Decimal, context: PrecisionContext) -> RealQuantity:
    value, _ = context.round(x)
    return RealQuantity(value=value, context=context, exact=False)

def _clamp_nonnegative(x: RealQuantity) -> RealQuantity:
    # Rounding can leave a tiny negative where the exact value is zero
    if x.value < 0:
        return RealQuantity(value=Decimal(0), context=x.context, exact=False)
    return x

def _plain(x: Decimal) -> str:
    return format(x, 'f')

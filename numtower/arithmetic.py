#
# The arithmetic dispatcher
#
# Binary operations find the common kind of their operands, coerce both to
# it, and delegate to that kind's native operation. Native operations
# compute exactness (exact iff every operand is exact and nothing was
# rounded) and precision (the least precise of the operands' contexts).
#
# Result kinds are at least the common kind, with these exceptions:
#   Integer / Integer and Integer ** -n are Rational unless they divide evenly
#   sqrt of a negative value is Complex (or fails, see env.negative_sqrt)
#   magnitude of a Complex is Real
#
from __future__ import annotations

import logging
import operator

from numtower.coercion   import coerce_to, find_common_type
from numtower.context    import least_precise
from numtower.exceptions import (
    DivisionByZeroError,
    NumericArithmeticError,
    NumericConversionError,
)
from numtower.hierarchy  import NumKind
from numtower.protocols  import Numeric, SupportsSign
from numtower.sign       import Sign

logger = logging.getLogger(__name__)


def unify(a, b) -> tuple:
    "Both operands coerced to their common kind."
    if not isinstance(a, Numeric) or not isinstance(b, Numeric):
        raise NumericConversionError(f'Arithmetic requires numeric quantities, got {a!r} and {b!r}')
    if a.kind is b.kind:
        return a, b
    common = find_common_type(a.kind, b.kind)
    context = least_precise(a.precision_context(), b.precision_context()).working()
    logger.debug('Promoting %s and %s to %s', a.kind, b.kind, common)
    return coerce_to(a, common, context), coerce_to(b, common, context)


#
# Binary operations
#

def add(augend, addend):
    a, b = unify(augend, addend)
    return a._add(b)

def subtract(minuend, subtrahend):
    a, b = unify(minuend, subtrahend)
    return a._subtract(b)

def multiply(multiplicand, multiplier):
    a, b = unify(multiplicand, multiplier)
    return a._multiply(b)

def divide(dividend, divisor):
    a, b = unify(dividend, divisor)
    if b.is_zero():
        raise DivisionByZeroError(f'Cannot divide {dividend} by zero')
    return a._divide(b)

def compare(a, b) -> int:
    """Three-way comparison by exact value: -1, 0 or 1.

    Complex values are unordered and raise NumericArithmeticError.
    """
    if a.kind is NumKind.COMPLEX or b.kind is NumKind.COMPLEX:
        raise NumericArithmeticError(f'Complex values have no total order: {a}, {b}')
    x, _ = a.rational_parts()
    y, _ = b.rational_parts()
    return (x > y) - (x < y)


#
# Unary operations
#

def power(base, exponent):
    "Raises `base` to an integer exponent (an int or an Integer quantity)."
    try:
        n = operator.index(exponent)
    except TypeError as e:
        raise NumericConversionError(f'Exponent must be an integer, got {exponent!r}') from e
    return base._power(n)

def sqrt(x):
    return x._sqrt()

def inverse(x):
    if x.is_zero():
        raise DivisionByZeroError('Zero has no multiplicative inverse')
    return x._inverse()

def negate(x):
    return x._negate()

def magnitude(x):
    return x._magnitude()

def sign(x) -> Sign:
    """Sign of a numeric quantity or any value that can be ordered against zero.

    Values without a sign of their own (Python numbers, user types that
    only define comparisons) are compared with the additive identity.
    """
    if isinstance(x, Numeric):
        return x.sign()
    if isinstance(x, SupportsSign):
        s = x.sign()
        return s if isinstance(s, Sign) else Sign.of(s)
    return Sign.from_comparison(x)

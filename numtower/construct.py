#
# Dynamic construction of values of a requested kind
#
# Two explicit tables map each kind tag to its constructor: one for the
# canonical textual form and one for Python primitives. Parsers, the constant
# registry and applications build values through these tables instead of
# looking constructors up at run time.
#
from __future__ import annotations

from dataclasses       import replace
from decimal           import Decimal
from fractions         import Fraction
from typing            import Callable, Optional, cast
from typing_extensions import TypeAlias

from numtower.coercion   import coerce_to
from numtower.context    import PrecisionContext, UNLIMITED
from numtower.exceptions import ConstructionError, NumericConversionError
from numtower.hierarchy  import NumKind
from numtower.numeric    import (
    IntegerQuantity,
    NumericQ,
    RationalQuantity,
    as_quantity,
    complex_rect,
    is_quantity,
    real,
)
from numtower.parsing.numeric_strings import (
    parse_complex,
    parse_integer,
    parse_numeric,
    parse_rational,
    parse_real,
)

TextConstructor: TypeAlias = Callable[[str, Optional[PrecisionContext]], NumericQ]
PrimitiveConstructor: TypeAlias = Callable[[object, Optional[PrecisionContext], Optional[bool]], NumericQ]


#
# Primitive constructors
#

def integer_of(x, context: Optional[PrecisionContext] = None, exact: Optional[bool] = None) -> NumericQ:
    if isinstance(x, float) and x.is_integer():
        x = int(x)
    q = cast(IntegerQuantity, coerce_to(as_quantity(x), NumKind.INTEGER))
    return q if exact is None else replace(q, exact=exact)

def rational_of(x, context: Optional[PrecisionContext] = None, exact: Optional[bool] = None) -> NumericQ:
    if isinstance(x, float):
        x = Fraction(repr(x))
    q = cast(RationalQuantity, coerce_to(as_quantity(x), NumKind.RATIONAL))
    return q if exact is None else replace(q, exact=exact)

def real_of(x, context: Optional[PrecisionContext] = None, exact: Optional[bool] = None) -> NumericQ:
    return real(x, context, exact)

def complex_of(x, context: Optional[PrecisionContext] = None, exact: Optional[bool] = None) -> NumericQ:
    if isinstance(x, complex):
        return complex_rect(x.real, x.imag, context)
    if is_quantity(x) and x.kind is NumKind.COMPLEX:
        return x
    return complex_rect(real(x, context, exact), 0, context)


TEXT_CONSTRUCTORS: dict[NumKind, TextConstructor] = {
    NumKind.INTEGER: parse_integer,
    NumKind.RATIONAL: parse_rational,
    NumKind.REAL: parse_real,
    NumKind.COMPLEX: parse_complex,
}

PRIMITIVE_CONSTRUCTORS: dict[NumKind, PrimitiveConstructor] = {
    NumKind.INTEGER: integer_of,
    NumKind.RATIONAL: rational_of,
    NumKind.REAL: real_of,
    NumKind.COMPLEX: complex_of,
}


#
# Front doors
#

def from_text(kind: NumKind, text: str, context: Optional[PrecisionContext] = None) -> NumericQ:
    "A value of `kind` from its canonical text; raises ParseError on malformed input."
    try:
        constructor = TEXT_CONSTRUCTORS[kind]
    except KeyError:
        raise ConstructionError(f'No text constructor is registered for {kind!r}') from None
    return constructor(text, context)

def from_primitive(kind: NumKind, x, context: Optional[PrecisionContext] = None,
                   exact: Optional[bool] = None) -> NumericQ:
    "A value of `kind` from a Python number; `exact` overrides the natural exactness."
    try:
        constructor = PRIMITIVE_CONSTRUCTORS[kind]
    except KeyError:
        raise ConstructionError(f'No primitive constructor is registered for {kind!r}') from None
    return constructor(x, context, exact)

def numeric(x, kind: Optional[NumKind] = None, context: Optional[PrecisionContext] = None) -> NumericQ:
    """Converts text, a Python number, or a quantity to a numeric quantity.

    Text is parsed into its natural kind. When `kind` is given the value is
    coerced to it, rounding into `context` (or the default context) if a
    non-terminating Rational must become a Real.
    """
    if isinstance(x, str):
        q = parse_numeric(x, context)
    elif isinstance(x, (int, float, complex, Fraction, Decimal)) or is_quantity(x):
        q = as_quantity(x)
    else:
        raise NumericConversionError(f'Cannot convert {x!r} to a numeric quantity')
    if kind is None:
        return q
    return coerce_to(q, kind, (context or UNLIMITED).working())

from __future__        import annotations

from dataclasses       import replace
from decimal           import Decimal
from fractions         import Fraction
from typing            import Optional

from parsy import (
    ParseError,
    Parser,
    regex,
    seq,
    string,
)

from numtower.context    import PrecisionContext
from numtower.continued  import ContinuedFraction
from numtower.exceptions import ConstructionError, ParseError as NumericParseError
from numtower.numeric    import (
    ComplexForm,
    ComplexQuantity,
    IntegerQuantity,
    NumericQ,
    RationalQuantity,
    RealQuantity,
)
from numtower.parsing.parsy_adjust import parse_error_message, relabel


#
# Token patterns
#

opt_sign = r'[-+]?'
integer_re = r'(?:0|[1-9][0-9]{0,2}(?:_[0-9]{3})+|[1-9][0-9]*)'  # _ separators allowed
positive_re = r'(?:[1-9][0-9]{0,2}(?:_[0-9]{3})+|[1-9][0-9]*)'
fraction_re = r'\.[0-9]*'
sci_exp = r'[eE][-+]?[0-9]+'
decimal_re = rf'{integer_re}(?:{fraction_re}(?:{sci_exp})?|{sci_exp})'
repeating_re = rf'{opt_sign}{integer_re}\.[0-9]*\([0-9]+\)'


#
# Helpers
#

def strip_separators(s: str) -> str:
    return s.replace('_', '')

def make_integer(s: str) -> IntegerQuantity:
    return IntegerQuantity(value=int(strip_separators(s)))

def make_rational(s: str) -> RationalQuantity:
    num, den = strip_separators(s).split('/')
    return RationalQuantity(num=int(num), den=int(den))

def make_repeating(s: str) -> RationalQuantity:
    "0.1(6) is 1/6: the digits in parentheses repeat forever."
    sign = -1 if s.startswith('-') else 1
    whole, rest = strip_separators(s.lstrip('+-')).split('.')
    prefix, period = rest.rstrip(')').split('(')
    shift = 10 ** len(prefix)
    value = (Fraction(int(whole))
             + Fraction(int(prefix or '0'), shift)
             + Fraction(int(period), shift * (10 ** len(period) - 1)))
    return RationalQuantity.from_fraction(sign * value)

def make_real(s: str) -> RealQuantity:
    return RealQuantity(value=Decimal(strip_separators(s)))

def make_complex(first: str, second: str, form=ComplexForm.RECTANGULAR) -> ComplexQuantity:
    return ComplexQuantity(form=form, first=make_real(first), second=make_real(second))

def make_continued_fraction(whole: int, tail) -> ContinuedFraction:
    """Terms after ';' may mark the start of the periodic block with '^',
    or end with the block in angle brackets: [3; ^1, 6] and [3; ⟨1, 6⟩] agree."""
    items, period = tail if tail is not None else ([], None)
    terms = [whole] + [term for _, term in items]
    marks = [i + 1 for i, (marked, _) in enumerate(items) if marked]
    if len(marks) + (period is not None) > 1:
        raise ConstructionError('A continued fraction has at most one periodic block')
    repeats_from = marks[0] if marks else None
    if period is not None:
        repeats_from = len(terms)
        terms.extend(period)
    return ContinuedFraction(tuple(terms), repeats_from=repeats_from)


#
# Basic Combinators
#

ows = regex(r'\s*')
sign_p = relabel('a sign', regex(r'[-+]'))
imaginary_unit = relabel('the imaginary unit i', string('i') | string('ⅈ'))
angle_mark = relabel('an angle mark', string('∠') | string('@'))

unsigned_real = regex(rf'{decimal_re}|{integer_re}')
signed_real = regex(rf'{opt_sign}(?:{decimal_re}|{integer_re})')

integer_p = relabel('an integer', regex(rf'{opt_sign}{integer_re}')).map(make_integer)
rational_p = relabel('a rational such as 3/4', regex(rf'{opt_sign}{integer_re}/{positive_re}')).map(make_rational)
repeating_p = relabel('a repeating decimal such as 0.1(6)', regex(repeating_re)).map(make_repeating)
real_p = relabel('a decimal number', regex(rf'{opt_sign}{decimal_re}')).map(make_real)

# An omitted coefficient, as in 2+i or -i, is one
def coefficient(sign: str, digits: str | None) -> str:
    return sign + (digits if digits is not None else '1')

both_parts = seq(
    signed_real,
    ows >> sign_p << ows,
    unsigned_real.optional(),
    imaginary_unit,
).combine(lambda re, op, im, _: make_complex(re, coefficient(op, im)))

pure_imaginary = seq(
    regex(r'[-+]?'),
    unsigned_real.optional(),
    imaginary_unit,
).combine(lambda sign, im, _: make_complex('0', coefficient(sign, im)))

rectangular_p = both_parts | pure_imaginary

polar_p = seq(
    unsigned_real << (ows >> angle_mark << ows),
    signed_real,
).combine(lambda modulus, angle: make_complex(modulus, angle, ComplexForm.POLAR))

complex_p = relabel('a complex number such as 2+3i or 2∠0.5', polar_p | rectangular_p)

numeric_p = relabel(
    'a number',
    complex_p | repeating_p | rational_p | real_p | integer_p
)

cf_term = regex(r'[-+]?[0-9]+').map(int)
cf_comma = ows >> string(',') << ows
cf_item = seq(string('^').optional(), ows >> cf_term).combine(lambda mark, term: (mark is not None, term))
cf_period = relabel(
    'a periodic block such as ⟨1, 6⟩',
    (string('⟨') | string('<')) >> ows >> cf_term.sep_by(cf_comma, min=1) << ows << (string('⟩') | string('>'))
)
cf_tail = seq(cf_item.sep_by(cf_comma), (cf_comma.optional() >> cf_period).optional())

continued_fraction_p = relabel('a continued fraction such as [3; 1, 6]', seq(
    string('[') >> ows >> cf_term << ows,
    (string(';') >> ows >> cf_tail).optional() << ows << string(']'),
).combine(make_continued_fraction))


#
# Main Parsers
#

def attach_context(value: NumericQ, context: Optional[PrecisionContext]) -> NumericQ:
    "Gives Real and Complex components `context` without rounding their digits."
    if context is None:
        return value
    if isinstance(value, RealQuantity):
        return replace(value, context=context)
    if isinstance(value, ComplexQuantity):
        return replace(value,
                       first=replace(value.first, context=context),
                       second=replace(value.second, context=context))
    return value

def run_parser(parser: Parser, s: str, context: Optional[PrecisionContext] = None,
               rich=False, short=False) -> NumericQ:
    try:
        value = (ows >> parser << ows).parse(s)
    except ParseError as e:
        raise NumericParseError(parse_error_message(e, rich, short)) from e
    return attach_context(value, context)

def parse_numeric(s: str, context: Optional[PrecisionContext] = None, rich=False, short=False) -> NumericQ:
    "Parses any numeric literal into its natural kind."
    return run_parser(numeric_p, s, context, rich, short)

def parse_integer(s: str, context: Optional[PrecisionContext] = None, rich=False, short=False) -> NumericQ:
    return run_parser(integer_p, s, context, rich, short)

def parse_rational(s: str, context: Optional[PrecisionContext] = None, rich=False, short=False) -> NumericQ:
    value = run_parser(repeating_p | rational_p | integer_p, s, context, rich, short)
    if isinstance(value, IntegerQuantity):
        return RationalQuantity(num=value.value, den=1)
    return value

def parse_real(s: str, context: Optional[PrecisionContext] = None, rich=False, short=False) -> NumericQ:
    return run_parser(real_p | integer_p.map(lambda q: make_real(str(q.value))), s, context, rich, short)

def parse_complex(s: str, context: Optional[PrecisionContext] = None, rich=False, short=False) -> NumericQ:
    as_complex = (real_p | integer_p.map(lambda q: make_real(str(q.value)))).map(
        lambda r: ComplexQuantity(form=ComplexForm.RECTANGULAR, first=r, second=make_real('0'))
    )
    return run_parser(complex_p | as_complex, s, context, rich, short)

def parse_continued_fraction(s: str, rich=False, short=False) -> ContinuedFraction:
    """Parses [a0; a1, ..., an], with an optional periodic block, into a ContinuedFraction.

    Malformed text raises ParseError; well-formed text with a non-positive
    term after the first raises ConstructionError.
    """
    try:
        return (ows >> continued_fraction_p << ows).parse(s)
    except ParseError as e:
        raise NumericParseError(parse_error_message(e, rich, short)) from e

#
# Simple continued fractions
#
# A continued fraction [a0; a1, a2, ...] is held as its leading terms plus
# one of two optional descriptions of the rest: a periodic block that repeats
# forever (quadratic irrationals such as square roots) or a rule giving the
# term at any later index (e, for instance). Finite continued fractions are
# exactly the rationals and convert back exactly; the others are irrational
# and are evaluated into a precision context through their convergents.
#
# Terms after the first are positive, and a finite expansion never ends in 1
# unless it has a single term, so each rational has one representation.
#
from __future__ import annotations

import logging
import math

from dataclasses       import dataclass
from decimal           import Decimal
from fractions         import Fraction
from itertools         import count, islice
from typing            import Callable, Iterator, Optional, Union

from numtower.context    import PrecisionContext, default_context
from numtower.env        import environment
from numtower.exceptions import ConstructionError, NumericConversionError
from numtower.mathutils  import GUARD_DIGITS
from numtower.numeric    import IntegerQuantity, NumericQ, RationalQuantity, RealQuantity

logger = logging.getLogger(__name__)

TermRule = Callable[[int], int]

PREVIEW_TERMS = 10   # terms shown before the ellipsis of a rule-based fraction


@dataclass(frozen=True)
class ContinuedFraction:
    terms: tuple[int, ...]
    repeats_from: Optional[int] = None    # index of the first term of the periodic block
    rule: Optional[TermRule] = None       # term at each index past the stored terms
    exact: bool = True

    def __post_init__(self):
        terms = tuple(self.terms)
        if not terms:
            raise ConstructionError('A continued fraction needs at least one term')
        if not all(isinstance(t, int) for t in terms):
            raise ConstructionError(f'Continued fraction terms must be integers, got {terms}')
        if any(t <= 0 for t in terms[1:]):
            raise ConstructionError(f'Terms after the first must be positive, got {terms}')
        if self.repeats_from is not None:
            if self.rule is not None:
                raise ConstructionError('A continued fraction cannot have both a period and a term rule')
            if not 1 <= self.repeats_from < len(terms):
                raise ConstructionError(f'The periodic block must start within terms 1..{len(terms) - 1}')
        elif self.rule is None and len(terms) > 1 and terms[-1] == 1:
            # [..., a, 1] = [..., a + 1]
            terms = terms[:-2] + (terms[-2] + 1,)
        object.__setattr__(self, 'terms', terms)

    @classmethod
    def from_rational(cls, q: Union[RationalQuantity, IntegerQuantity, Fraction, int]) -> ContinuedFraction:
        "The finite expansion, by the Euclidean algorithm."
        exact = q.is_exact() if isinstance(q, (RationalQuantity, IntegerQuantity)) else True
        if isinstance(q, RationalQuantity):
            q = q.fraction
        elif isinstance(q, IntegerQuantity):
            q = q.value
        num, den = Fraction(q).numerator, Fraction(q).denominator
        terms = []
        while den:
            whole = num // den
            terms.append(whole)
            num, den = den, num - whole * den
        return cls(tuple(terms), exact=exact)

    @classmethod
    def from_real(cls, x: RealQuantity) -> ContinuedFraction:
        """The expansion of a Real.

        Exact values expand completely. Inexact values stop once a
        convergent agrees with the value to all but the last three digits
        of its precision.
        """
        value = Fraction(x.value)
        if x.exact:
            return cls.from_rational(value)
        digits = x.context.working().digits
        tolerance = abs(value) / 10 ** max(digits - 3, 1)
        logger.debug('Expanding %s as a continued fraction to within %s', x, float(tolerance))
        terms = []
        remainder = value
        h_prev, h = 0, 1
        k_prev, k = 1, 0
        while True:
            whole = math.floor(remainder)
            terms.append(whole)
            h_prev, h = h, whole * h + h_prev
            k_prev, k = k, whole * k + k_prev
            fractional = remainder - whole
            if fractional == 0 or abs(Fraction(h, k) - value) <= tolerance:
                break
            remainder = 1 / fractional
        return cls(tuple(terms), exact=False)

    @classmethod
    def sqrt_of(cls, n: Union[int, IntegerQuantity]) -> ContinuedFraction:
        "The periodic expansion of the square root of a non-negative integer."
        n = int(n)
        if n < 0:
            raise ConstructionError(f'Cannot expand the square root of negative {n}')
        a0 = math.isqrt(n)
        if a0 * a0 == n:
            return cls((a0,))
        terms = [a0]
        m, d, a = 0, 1, a0
        while a != 2 * a0:
            m = d * a - m
            d = (n - m * m) // d
            a = (a0 + m) // d
            terms.append(a)
        return cls(tuple(terms), repeats_from=1)

    #
    # Terms
    #

    def is_finite(self) -> bool:
        return self.repeats_from is None and self.rule is None

    def is_irrational(self) -> bool:
        return not self.is_finite()

    def term_count(self) -> Optional[int]:
        "The number of terms, or None when there are infinitely many."
        return len(self.terms) if self.is_finite() else None

    def term_at(self, index: int) -> int:
        if index < 0:
            raise IndexError(f'Term index must be non-negative, got {index}')
        if index < len(self.terms):
            return self.terms[index]
        if self.repeats_from is not None:
            period = len(self.terms) - self.repeats_from
            return self.terms[self.repeats_from + (index - self.repeats_from) % period]
        if self.rule is not None:
            return self.rule(index)
        raise IndexError(f'{self} has no term at index {index}')

    def __iter__(self) -> Iterator[int]:
        if self.is_finite():
            return iter(self.terms)
        return (self.term_at(i) for i in count())

    def trim_to(self, n: int) -> ContinuedFraction:
        "The finite continued fraction of the first n terms."
        if n < 1:
            raise ConstructionError('A trimmed continued fraction keeps at least one term')
        if self.is_finite() and n > len(self.terms):
            raise ConstructionError(f'{self} has only {len(self.terms)} terms')
        return ContinuedFraction(tuple(islice(self, n)), exact=self.exact)

    def floor(self) -> IntegerQuantity:
        return IntegerQuantity(value=self.terms[0], exact=self.exact)

    def ceil(self) -> IntegerQuantity:
        whole = self.terms[0] if self.term_count() == 1 else self.terms[0] + 1
        return IntegerQuantity(value=whole, exact=self.exact)

    #
    # Values
    #

    def convergents(self) -> Iterator[RationalQuantity]:
        "The successive convergents h/k; infinite for an irrational fraction."
        for h, k in _convergents_of(iter(self)):
            yield RationalQuantity(num=h, den=k, exact=self.exact)

    def to_quantity(self, context: Optional[PrecisionContext] = None) -> NumericQ:
        """The value as a Rational when finite, otherwise as a Real in `context`.

        An unlimited or missing context evaluates irrational fractions in the
        working precision.
        """
        if self.is_finite():
            h, k = _last_convergent(self.terms)
            return RationalQuantity(num=h, den=k, exact=self.exact)
        target = (context or default_context()).working()
        h, k = self._approximant(target.digits)
        value, _ = target.evaluate(lambda c: c.divide(Decimal(h), Decimal(k)))
        return RealQuantity(value=value, context=target, exact=False, irrational=True)

    def _approximant(self, digits: int) -> tuple[int, int]:
        # |x - h/k| < 1/(k k'), so stopping once |h| k' exceeds the scale
        # bounds the relative error of h/k below 10^-(digits + guard)
        scale = 10 ** (digits + GUARD_DIGITS)
        previous = None
        for h, k in _convergents_of(iter(self)):
            if previous is not None and abs(previous[0]) * k >= scale:
                return h, k
            previous = (h, k)
        raise NumericConversionError(f'{self} ended before reaching {digits} digits')

    #
    # Text
    #

    def as_text(self) -> str:
        "[a0; a1, a2] with a periodic block in angle brackets and '…' after rule-based terms."
        ascii_only = environment.ascii_only
        if self.rule is not None:
            shown = ', '.join(str(t) for t in islice(self, 1, PREVIEW_TERMS))
            return f'[{self.terms[0]}; {shown}, {"..." if ascii_only else "…"}]'
        if len(self.terms) == 1:
            return f'[{self.terms[0]}]'
        if self.repeats_from is None:
            return f'[{self.terms[0]}; {", ".join(map(str, self.terms[1:]))}]'
        opening, closing = ('<', '>') if ascii_only else ('⟨', '⟩')
        prefix = [str(t) for t in self.terms[1:self.repeats_from]]
        period = ', '.join(map(str, self.terms[self.repeats_from:]))
        return f'[{self.terms[0]}; {", ".join(prefix + [opening + period + closing])}]'

    def __str__(self) -> str:
        return self.as_text()


#
# Standard expansions
#

def golden_ratio_fraction() -> ContinuedFraction:
    return ContinuedFraction((1, 1), repeats_from=1)

def _euler_term(index: int) -> int:
    # e = [2; 1, 2, 1, 1, 4, 1, 1, 6, ...]
    return 2 * (index + 1) // 3 if index % 3 == 2 else 1

def euler_fraction() -> ContinuedFraction:
    return ContinuedFraction((2,), rule=_euler_term)

def continued_fraction(x) -> ContinuedFraction:
    "The continued fraction of an Integer, Rational or Real quantity, or of a Python int or Fraction."
    if isinstance(x, RealQuantity):
        return ContinuedFraction.from_real(x)
    if isinstance(x, (IntegerQuantity, RationalQuantity, int, Fraction)):
        return ContinuedFraction.from_rational(x)
    raise NumericConversionError(f'Cannot expand {x!r} as a continued fraction')


#
# Helpers
#

def _convergents_of(terms: Iterator[int]) -> Iterator[tuple[int, int]]:
    h_prev, h = 0, 1
    k_prev, k = 1, 0
    for a in terms:
        h_prev, h = h, a * h + h_prev
        k_prev, k = k, a * k + k_prev
        yield h, k

def _last_convergent(terms) -> tuple[int, int]:
    h, k = 1, 0
    for h, k in _convergents_of(iter(terms)):
        pass
    return h, k

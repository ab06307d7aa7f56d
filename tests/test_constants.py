"""
Tests for the constant registry

Checks:
1. Digits of each constant at several precisions and rounding rules
2. Name normalisation, branches and precision limits
3. Lazy, thread safe population and registration
"""
import logging
import threading
import time

from decimal import (
    Context,
    Decimal,
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
)

import pytest

from numtower.constants  import (
    ConstantFactory,
    ConstantRegistry,
    constants,
    instantiate_constant,
    standard_constants,
)
from numtower.context    import UNLIMITED, PrecisionContext
from numtower.env        import environment
from numtower.exceptions import NotFoundError, UnsupportedPrecisionError
from numtower.hierarchy  import NumKind
from numtower.numeric    import complex_rect, integer, real
from numtower.sign       import Sign

PI = ('3.14159265358979323846264338327950288419716939937510'
      '58209749445923078164062862089986280348253421170679'
      '82148086513282306647093844609550582231725359408128')
E = '2.71828182845904523536028747135266249775724709369995957496696762772407663035354759'
PHI = '1.61803398874989484820458683436563811772030917980576286213544862270526046281890244'
GAMMA = '0.57721566490153286060651209008240243104215933593992359880576723488486772677766467'
SQRT2 = '1.41421356237309504880168872420969807856967187537694807317667973799073247846210703'


def expected(digits: str, precision: int, rounding=ROUND_HALF_EVEN) -> str:
    return format(Context(prec=precision, rounding=rounding).plus(Decimal(digits)), 'f')


class TestPi:
    """Tests for pi at requested precisions"""

    def test_hundred_digits(self) -> None:
        """pi to 100 significant digits matches the known expansion"""
        pi = instantiate_constant('pi', PrecisionContext(100, ROUND_HALF_UP))
        assert pi.as_text() == expected(PI, 100, ROUND_HALF_UP)
        assert pi.as_text().startswith(PI[:100])

    @pytest.mark.parametrize('rounding, text', [
        (ROUND_HALF_UP, '3.1415927'),
        (ROUND_HALF_EVEN, '3.1415927'),
        (ROUND_DOWN, '3.1415926'),
        (ROUND_FLOOR, '3.1415926'),
        (ROUND_CEILING, '3.1415927'),
    ])
    def test_eight_digits(self, rounding, text) -> None:
        """pi to 8 significant digits honours the rounding rule"""
        assert instantiate_constant('pi', PrecisionContext(8, rounding)).as_text() == text

    def test_value_properties(self) -> None:
        """Constants are inexact Reals carrying the requested context"""
        ctx = PrecisionContext(20)
        pi = instantiate_constant('pi', ctx)
        assert pi.kind is NumKind.REAL
        assert not pi.is_exact()
        assert pi.precision_context() == ctx
        assert pi.is_irrational()
        assert (-pi).is_irrational()

    def test_default_precision(self) -> None:
        """Without a context the environment's default precision is used"""
        environment.set_precision(10)
        assert instantiate_constant('pi').as_text() == '3.141592654'

    def test_many_precisions(self) -> None:
        """Every precision up to 150 digits is correctly rounded"""
        for digits in range(2, 151, 7):
            for rounding in (ROUND_HALF_EVEN, ROUND_DOWN):
                value = instantiate_constant('pi', PrecisionContext(digits, rounding))
                assert value.as_text() == expected(PI, digits, rounding)


class TestOtherConstants:
    """Tests for e, phi, gamma and sqrt2"""

    @pytest.mark.parametrize('name, digits', [
        ('e', E),
        ('phi', PHI),
        ('euler-gamma', GAMMA),
        ('sqrt2', SQRT2),
    ])
    @pytest.mark.parametrize('precision', [5, 30, 60])
    def test_digits(self, name, digits, precision) -> None:
        """Known expansions, correctly rounded"""
        ctx = PrecisionContext(precision, ROUND_HALF_EVEN)
        assert instantiate_constant(name, ctx).as_text() == expected(digits, precision)

    def test_negative_branch(self) -> None:
        """sqrt2 has a negative branch"""
        ctx = PrecisionContext(10)
        negative = instantiate_constant('sqrt2', ctx, Sign.NEGATIVE)
        assert negative.as_text() == '-1.414213562'
        assert negative == -instantiate_constant('sqrt2', ctx)

    def test_imaginary_unit(self) -> None:
        """i is an exact Complex whose square is -1"""
        i = instantiate_constant('i')
        assert i.kind is NumKind.COMPLEX
        assert i.is_exact()
        assert i == complex_rect(0, 1)
        assert i * i == -1
        assert instantiate_constant('imaginary-unit', sign=Sign.NEGATIVE) == complex_rect(0, -1)

    def test_exact_constants_ignore_precision(self) -> None:
        """Exact constants accept an unlimited context"""
        assert instantiate_constant('i', UNLIMITED) == complex_rect(0, 1)
        assert instantiate_constant('zero', UNLIMITED).is_identical(integer(0))
        assert instantiate_constant('one').is_identical(integer(1))

    def test_constants_combine_with_values(self) -> None:
        """Constants take part in ordinary arithmetic"""
        ctx = PrecisionContext(10)
        tau = instantiate_constant('pi', ctx) * 2
        assert tau.precision_context() == ctx
        assert tau == real('6.283185308')


class TestLookup:
    """Tests for names, branches and limits"""

    @pytest.mark.parametrize('name', ['pi', ' PI ', 'π', 'Pi'])
    def test_pi_names(self, name) -> None:
        """Names ignore case and surrounding space; aliases resolve"""
        assert constants.lookup(name).name == 'pi'

    @pytest.mark.parametrize('name, canonical', [
        ('Euler_Gamma', 'euler-gamma'),
        ('gamma', 'euler-gamma'),
        ('golden_ratio', 'phi'),
        ('euler', 'e'),
        ('ⅈ', 'imaginary-unit'),
    ])
    def test_aliases(self, name, canonical) -> None:
        """Aliases and separators"""
        assert constants.lookup(name).name == canonical
        assert name in constants

    def test_names(self) -> None:
        """names() lists each constant once"""
        assert constants.names() == sorted(
            ['pi', 'e', 'phi', 'euler-gamma', 'sqrt2', 'imaginary-unit', 'zero', 'one']
        )

    def test_unknown_name(self) -> None:
        """Unknown names are a lookup error"""
        with pytest.raises(NotFoundError):
            instantiate_constant('tau')
        with pytest.raises(LookupError):
            instantiate_constant('')

    def test_missing_branch(self) -> None:
        """pi has no negative branch and nothing has a zero branch"""
        with pytest.raises(NotFoundError):
            instantiate_constant('pi', PrecisionContext(10), Sign.NEGATIVE)
        with pytest.raises(NotFoundError):
            instantiate_constant('sqrt2', PrecisionContext(10), Sign.ZERO)

    def test_unlimited_precision(self) -> None:
        """An irrational constant needs a limited precision"""
        with pytest.raises(UnsupportedPrecisionError):
            instantiate_constant('pi', UNLIMITED)

    def test_precision_limits(self) -> None:
        """Precision beyond the configured or per-constant limit is refused"""
        environment.max_constant_digits = 50
        with pytest.raises(UnsupportedPrecisionError):
            instantiate_constant('e', PrecisionContext(51, ROUND_HALF_EVEN))
        assert instantiate_constant('e', PrecisionContext(50, ROUND_HALF_EVEN)).as_text() == expected(E, 50)
        environment.max_constant_digits = 100_000
        with pytest.raises(UnsupportedPrecisionError):
            instantiate_constant('euler-gamma', PrecisionContext(10_001))

    def test_memoized(self) -> None:
        """Repeated requests return the cached value"""
        ctx = PrecisionContext(40)
        assert instantiate_constant('phi', ctx) is instantiate_constant('phi', ctx)


class TestRegistry:
    """Tests for population, registration and concurrency"""

    def test_lazy_population(self) -> None:
        """The table is only built when first needed"""
        registry = ConstantRegistry(standard_constants)
        assert not registry.is_populated
        assert 'e' in registry
        assert registry.is_populated

    def test_population_is_logged(self, caplog) -> None:
        """Population is logged at INFO"""
        registry = ConstantRegistry(standard_constants)
        with caplog.at_level(logging.INFO, logger='numtower.constants'):
            registry.names()
        assert 'populated' in caplog.text

    def test_concurrent_first_access(self) -> None:
        """Many threads racing on first use populate the table once"""
        calls = []

        def populate():
            calls.append(threading.get_ident())
            time.sleep(0.05)
            return standard_constants()

        registry = ConstantRegistry(populate)
        barrier = threading.Barrier(8)
        results = []
        errors = []

        def worker():
            try:
                barrier.wait()
                results.append(registry.instantiate('pi', PrecisionContext(30)).as_text())
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(calls) == 1
        assert results == [expected(PI, 30)] * 8

    def test_register(self) -> None:
        """New constants can be registered after population"""
        registry = ConstantRegistry(standard_constants)

        def tau(context, sign):
            pi = registry.instantiate('pi', context.with_guard(5))
            return pi.multiply(integer(2)).with_context(context)

        registry.register(ConstantFactory('tau', 'τ', tau, 'Twice pi', aliases=('τ',)))
        assert 'tau' in registry.names()
        assert registry.instantiate('τ', PrecisionContext(6)).as_text() == '6.28319'
        assert 'pi' in registry

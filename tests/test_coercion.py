"""
Tests for the coercion resolver

Checks:
1. Widening steps and the precision they need
2. Narrowing soundness
3. Idempotence, identity and agreement with is_coercible_to
4. Common type resolution and its logging
"""
import logging

from decimal import Decimal
from itertools import product

import pytest

import numtower.hierarchy as hierarchy

from numtower.coercion   import coerce_to, common_kind_of, find_common_type, is_coercible_to
from numtower.context    import DECIMAL32
from numtower.exceptions import CoercionError
from numtower.hierarchy  import NumKind, common_supertype
from numtower.numeric    import as_quantity, complex_rect, integer, rational, real

SAMPLES = [
    integer(5),
    integer(-3),
    rational(3, 4),
    rational(1, 3),
    real('2.5'),
    as_quantity(0.1),
    complex_rect(1, 2),
    complex_rect(7, 0),
]

ORDERED_KINDS = [NumKind.INTEGER, NumKind.RATIONAL, NumKind.REAL, NumKind.COMPLEX]


class TestWidening:
    """Tests for promotion up the tower"""

    def test_integer_to_real(self) -> None:
        """Integers become exact unlimited Reals"""
        x = integer(3).coerce_to(NumKind.REAL)
        assert x.kind is NumKind.REAL
        assert x.value == Decimal(3)
        assert x.is_exact()

    def test_terminating_rational_to_real(self) -> None:
        """1/8 is exactly 0.125"""
        x = rational(1, 8).coerce_to(NumKind.REAL)
        assert x.value == Decimal('0.125')
        assert x.is_exact()

    def test_non_terminating_rational_needs_context(self) -> None:
        """1/3 cannot become a Real without a precision"""
        with pytest.raises(CoercionError) as info:
            rational(1, 3).coerce_to(NumKind.REAL)
        assert info.value.source is NumKind.RATIONAL
        assert info.value.target is NumKind.REAL
        assert not rational(1, 3).is_coercible_to(NumKind.REAL)

    def test_non_terminating_rational_with_context(self) -> None:
        """With a context, 1/3 rounds and is marked inexact"""
        x = coerce_to(rational(1, 3), NumKind.REAL, DECIMAL32)
        assert x.value == Decimal('0.3333333')
        assert not x.is_exact()
        assert x.precision_context() == DECIMAL32
        assert is_coercible_to(rational(1, 3), NumKind.REAL, DECIMAL32)

    @pytest.mark.parametrize('start', [integer(5), rational(3, 4), real('2.5')])
    def test_promotion_keeps_value_and_exactness(self, start) -> None:
        """Widening never changes the value or its exactness"""
        value = start
        for kind in ORDERED_KINDS[ORDERED_KINDS.index(start.kind) + 1:]:
            widened = coerce_to(value, kind)
            assert widened.kind is kind
            assert widened == value
            assert widened.is_exact() == value.is_exact()
            value = widened

    def test_inexact_integer_stays_inexact(self) -> None:
        """An inexact Integer is still inexact at the top of the tower"""
        approx = integer(8).sqrt()
        assert not approx.coerce_to(NumKind.COMPLEX).is_exact()


class TestNarrowing:
    """Tests for demotion down the tower"""

    def test_exact_real_to_rational(self) -> None:
        """An exact Real narrows to a Rational"""
        assert real('0.2').coerce_to(NumKind.RATIONAL) == rational(1, 5)

    def test_inexact_real_to_rational(self) -> None:
        """An inexact Real refuses to narrow"""
        assert not as_quantity(0.5).is_coercible_to(NumKind.RATIONAL)
        with pytest.raises(CoercionError):
            as_quantity(0.5).coerce_to(NumKind.RATIONAL)

    def test_rational_to_integer(self) -> None:
        """Only integral Rationals narrow to Integers"""
        assert rational(6, 3).coerce_to(NumKind.INTEGER).is_identical(integer(2))
        with pytest.raises(CoercionError):
            rational(1, 2).coerce_to(NumKind.INTEGER)

    def test_real_to_integer(self) -> None:
        """Narrowing walks several steps"""
        assert real('4.0').coerce_to(NumKind.INTEGER) == 4
        assert not real('4.5').is_coercible_to(NumKind.INTEGER)


class TestProperties:
    """Tests for properties that hold for every kind"""

    @pytest.mark.parametrize('value', SAMPLES, ids=str)
    def test_identity_coercion(self, value) -> None:
        """Coercing to a value's own kind returns it unchanged"""
        assert coerce_to(value, value.kind) is value

    @pytest.mark.parametrize('value', SAMPLES, ids=str)
    def test_idempotence(self, value) -> None:
        """Coercing twice to a common supertype is the same as once"""
        for kind in NumKind:
            common = common_supertype(value.kind, kind)
            if common is None or not is_coercible_to(value, common, DECIMAL32):
                continue
            once = coerce_to(value, common, DECIMAL32)
            twice = coerce_to(once, common, DECIMAL32)
            assert twice.is_identical(once)

    @pytest.mark.parametrize('value', SAMPLES, ids=str)
    def test_predicate_agrees_with_conversion(self, value) -> None:
        """is_coercible_to is True exactly when coerce_to succeeds"""
        for kind in NumKind:
            try:
                coerce_to(value, kind)
                succeeded = True
            except CoercionError:
                succeeded = False
            assert is_coercible_to(value, kind) == succeeded

    def test_predicate_without_steps(self) -> None:
        """A value that cannot take hierarchy steps is not coercible"""
        class KindOnly:
            kind = NumKind.INTEGER

        assert not is_coercible_to(KindOnly(), NumKind.REAL)
        assert is_coercible_to(KindOnly(), NumKind.INTEGER)


class TestCommonType:
    """Tests for find_common_type and common_kind_of"""

    def test_common_type(self) -> None:
        """The common type is the least upper bound"""
        assert find_common_type(NumKind.INTEGER, NumKind.REAL) is NumKind.REAL
        for a, b in product(NumKind, repeat=2):
            assert find_common_type(a, b) is find_common_type(b, a)

    def test_common_kind_of_values(self) -> None:
        """The common kind of several values"""
        assert common_kind_of(integer(1), rational(1, 2), real('1.5')) is NumKind.REAL
        assert common_kind_of(integer(1)) is NumKind.INTEGER
        with pytest.raises(CoercionError):
            common_kind_of()

    def test_missing_common_type_is_logged(self, monkeypatch, caplog) -> None:
        """A missing common type is logged and raised"""
        table = dict(hierarchy.DIRECT_SUPERTYPES)
        table[NumKind.RATIONAL] = frozenset()
        monkeypatch.setattr(hierarchy, 'DIRECT_SUPERTYPES', table)
        with caplog.at_level(logging.INFO, logger='numtower.coercion'):
            with pytest.raises(CoercionError):
                find_common_type(NumKind.INTEGER, NumKind.REAL)
        assert 'No common type' in caplog.text

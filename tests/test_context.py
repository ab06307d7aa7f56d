"""
Tests for precision contexts

Checks:
1. Validation and presets
2. The combining policy (least precise wins)
3. Evaluation with the inexact signal, and rounding
"""
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN, ROUND_HALF_UP

import pytest

from numtower.context    import (
    DECIMAL32,
    DECIMAL64,
    DECIMAL128,
    UNLIMITED,
    PrecisionContext,
    default_context,
    least_precise,
)
from numtower.env        import environment
from numtower.exceptions import ConstructionError


class TestConstruction:
    """Tests for creating contexts"""

    def test_presets(self) -> None:
        """The IEEE decimal presets have the usual digit counts"""
        assert (DECIMAL32.digits, DECIMAL64.digits, DECIMAL128.digits) == (7, 16, 34)
        assert DECIMAL64.rounding == ROUND_HALF_EVEN
        assert UNLIMITED.is_unlimited

    def test_negative_digits_rejected(self) -> None:
        """A negative digit count is a construction error"""
        with pytest.raises(ConstructionError):
            PrecisionContext(-1)

    def test_unknown_rounding_rejected(self) -> None:
        """Only decimal rounding rules are accepted"""
        with pytest.raises(ConstructionError):
            PrecisionContext(10, 'ROUND_SIDEWAYS')

    def test_contexts_are_values(self) -> None:
        """Equal contexts compare and hash equal"""
        assert PrecisionContext(16, ROUND_HALF_EVEN) == DECIMAL64
        assert len({PrecisionContext(7, ROUND_HALF_EVEN), DECIMAL32}) == 1

    def test_text(self) -> None:
        """Contexts describe themselves"""
        assert str(UNLIMITED) == 'unlimited'
        assert str(PrecisionContext(8, ROUND_DOWN)) == '8 digits, ROUND_DOWN'


class TestCombine:
    """Tests for the combining policy"""

    def test_fewer_digits_win(self) -> None:
        """The least precise context is the result"""
        low, high = PrecisionContext(32), PrecisionContext(128)
        assert low.combine(high) == low
        assert high.combine(low) == low

    def test_unlimited_imposes_nothing(self) -> None:
        """An unlimited context never constrains the other"""
        assert UNLIMITED.combine(DECIMAL32) == DECIMAL32
        assert DECIMAL32.combine(UNLIMITED) == DECIMAL32
        assert UNLIMITED.combine(UNLIMITED).is_unlimited

    def test_tie_keeps_left_rounding(self) -> None:
        """With equal digits the receiver's rounding rule is kept"""
        left = PrecisionContext(10, ROUND_DOWN)
        right = PrecisionContext(10, ROUND_HALF_UP)
        assert left.combine(right).rounding == ROUND_DOWN
        assert right.combine(left).rounding == ROUND_HALF_UP

    def test_least_precise(self) -> None:
        """least_precise folds the policy over many contexts"""
        assert least_precise(DECIMAL128, UNLIMITED, DECIMAL32, DECIMAL64) == DECIMAL32
        assert least_precise().is_unlimited


class TestEvaluation:
    """Tests for evaluate, round and working"""

    def test_exact_division_is_not_inexact(self) -> None:
        """Evaluating 1/4 raises no inexact signal"""
        value, inexact = DECIMAL32.evaluate(lambda c: c.divide(Decimal(1), Decimal(4)))
        assert value == Decimal('0.25')
        assert not inexact

    def test_rounded_division_is_inexact(self) -> None:
        """Evaluating 1/3 rounds and reports it"""
        value, inexact = DECIMAL32.evaluate(lambda c: c.divide(Decimal(1), Decimal(3)))
        assert value == Decimal('0.3333333')
        assert inexact

    def test_round_respects_rule(self) -> None:
        """Rounding uses the context's rounding rule"""
        assert PrecisionContext(3, ROUND_HALF_UP).round(Decimal('2.345'))[0] == Decimal('2.35')
        assert PrecisionContext(3, ROUND_DOWN).round(Decimal('2.349'))[0] == Decimal('2.34')

    def test_unlimited_round_is_identity(self) -> None:
        """An unlimited context never rounds"""
        x = Decimal('3.14159265358979323846264338327950288419716939937510')
        assert UNLIMITED.round(x) == (x, False)

    def test_unlimited_addition_is_exact(self) -> None:
        """Unlimited contexts add without rounding"""
        a = Decimal('1E+60')
        b = Decimal('1E-60')
        value, inexact = UNLIMITED.evaluate(lambda c: c.add(a, b))
        assert not inexact
        assert value - a == b

    def test_working_falls_back_to_default(self) -> None:
        """An unlimited context works at the environment's default precision"""
        environment.set_precision(12, ROUND_DOWN)
        assert UNLIMITED.working() == PrecisionContext(12, ROUND_DOWN)
        assert default_context() == PrecisionContext(12, ROUND_DOWN)
        assert DECIMAL32.working() == DECIMAL32

    def test_with_guard(self) -> None:
        """Guard digits are added to the working precision"""
        assert DECIMAL32.with_guard(10) == PrecisionContext(17, ROUND_HALF_EVEN)
        assert DECIMAL32.with_digits(3) == PrecisionContext(3, ROUND_HALF_EVEN)

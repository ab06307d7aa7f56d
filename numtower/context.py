#
# Precision contexts: significant digits plus a rounding rule
#
# A context is part of every Real value and is never mutated. Changing the
# precision of a value means re-rounding it into a new value.
#
# Policy for combining contexts: a computation is only as precise as its
# least precise input, so the result of a binary operation carries the
# context with the fewest significant digits. An unlimited context (digits
# == 0) imposes no constraint. When both contexts have the same digits, the
# rounding rule of the left operand is kept.
#
from __future__ import annotations

import decimal

from collections.abc   import Callable
from dataclasses       import dataclass
from decimal           import (
    Context,
    Decimal,
    Inexact,
    ROUND_05UP,
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
)
from functools         import reduce

from numtower.env        import environment
from numtower.exceptions import ConstructionError

ROUNDING_MODES = frozenset([
    ROUND_05UP, ROUND_CEILING, ROUND_DOWN, ROUND_FLOOR,
    ROUND_HALF_DOWN, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_UP,
])

TRAPS = [decimal.InvalidOperation, decimal.DivisionByZero, decimal.Overflow]


@dataclass(frozen=True)
class PrecisionContext:
    digits: int = 0
    rounding: str = ROUND_HALF_UP

    def __post_init__(self):
        if not isinstance(self.digits, int) or self.digits < 0:
            raise ConstructionError(f'A precision context needs a non-negative digit count, got {self.digits!r}')
        if self.rounding not in ROUNDING_MODES:
            raise ConstructionError(f'Unknown rounding rule {self.rounding!r}')

    @property
    def is_unlimited(self) -> bool:
        return self.digits == 0

    def decimal_context(self) -> Context:
        """A fresh decimal context for this precision.

        Unlimited contexts use the exact-arithmetic settings; only operations
        whose exact result is finite (add, subtract, multiply, non-negative
        integer powers) may be evaluated under them.
        """
        if self.is_unlimited:
            return Context(prec=decimal.MAX_PREC, rounding=self.rounding,
                           Emax=decimal.MAX_EMAX, Emin=decimal.MIN_EMIN, traps=TRAPS)
        return Context(prec=self.digits, rounding=self.rounding,
                       Emax=decimal.MAX_EMAX, Emin=decimal.MIN_EMIN, traps=TRAPS)

    def working(self) -> PrecisionContext:
        "This context if limited, otherwise the environment's default context."
        if self.is_unlimited:
            return default_context()
        return self

    def combine(self, other: PrecisionContext) -> PrecisionContext:
        if other.is_unlimited:
            return self
        if self.is_unlimited or other.digits < self.digits:
            return other
        return self

    def evaluate(self, operation: Callable[[Context], Decimal]) -> tuple[Decimal, bool]:
        "Runs `operation` under this context, returning the result and whether it was rounded."
        ctx = self.decimal_context()
        value = operation(ctx)
        return value, bool(ctx.flags[Inexact])

    def round(self, value: Decimal) -> tuple[Decimal, bool]:
        if self.is_unlimited:
            return value, False
        return self.evaluate(lambda ctx: ctx.plus(value))

    def with_digits(self, digits: int) -> PrecisionContext:
        return PrecisionContext(digits, self.rounding)

    def with_guard(self, guard: int) -> PrecisionContext:
        "A working context carrying `guard` extra digits."
        base = self.working()
        return PrecisionContext(base.digits + guard, base.rounding)

    def __str__(self) -> str:
        if self.is_unlimited:
            return 'unlimited'
        return f'{self.digits} digits, {self.rounding}'

UNLIMITED = PrecisionContext()
DECIMAL32 = PrecisionContext(7, ROUND_HALF_EVEN)
DECIMAL64 = PrecisionContext(16, ROUND_HALF_EVEN)
DECIMAL128 = PrecisionContext(34, ROUND_HALF_EVEN)


def default_context() -> PrecisionContext:
    return PrecisionContext(environment.default_digits, environment.default_rounding)

def least_precise(*contexts: PrecisionContext) -> PrecisionContext:
    return reduce(PrecisionContext.combine, contexts, UNLIMITED)

#
# The constant registry
#
# Maps constant names to factories that produce the constant at any
# requested precision. The table is built once, on first use, under a lock
# (double-checked so later lookups never block), and is read-only after that
# apart from explicit registration, which swaps in a new table.
#
# Instances are memoized per (name, context, sign) in a small LRU, which is
# safe because values are immutable.
#
from __future__ import annotations

import logging
import threading

from collections       import OrderedDict
from collections.abc   import Iterable
from dataclasses       import dataclass, replace
from decimal           import Decimal
from typing            import Callable, Optional
from typing_extensions import TypeAlias

from numtower.construct  import from_primitive
from numtower.context    import PrecisionContext, default_context
from numtower.env        import environment
from numtower.exceptions import NotFoundError, UnsupportedPrecisionError
from numtower.hierarchy  import NumKind
from numtower.mathutils  import euler_e, euler_gamma, golden_ratio, machin_pi, sqrt_fixed
from numtower.numeric    import ComplexForm, ComplexQuantity, IntegerQuantity, NumericQ, RealQuantity
from numtower.sign       import Sign

logger = logging.getLogger(__name__)

ConstantProducer: TypeAlias = Callable[[PrecisionContext, Sign], NumericQ]


@dataclass(frozen=True)
class ConstantFactory:
    name: str
    symbol: str
    produce: ConstantProducer
    description: str = ''
    aliases: tuple[str, ...] = ()
    branches: bool = False        # True when the negative sign names a distinct value
    max_digits: Optional[int] = None
    exact: bool = False           # Exact constants ignore the requested precision


def irrational(series: Callable[[int], Decimal]) -> ConstantProducer:
    "A producer that evaluates `series` with guard digits and rounds once into the context."
    def produce(context: PrecisionContext, sign: Sign) -> NumericQ:
        value = series(context.digits)
        if sign is Sign.NEGATIVE:
            value = value.copy_negate()
        rounded, _ = context.round(value)
        return replace(from_primitive(NumKind.REAL, rounded, context, exact=False), irrational=True)
    return produce

def imaginary_unit(context: PrecisionContext, sign: Sign) -> NumericQ:
    one = RealQuantity(value=Decimal(sign.value))
    return ComplexQuantity(form=ComplexForm.RECTANGULAR, first=RealQuantity(value=Decimal(0)), second=one)

def integer_constant(n: int) -> ConstantProducer:
    def produce(context: PrecisionContext, sign: Sign) -> NumericQ:
        return IntegerQuantity(value=n)
    return produce

def standard_constants() -> list[ConstantFactory]:
    return [
        ConstantFactory('pi', 'π', irrational(machin_pi),
                        'Ratio of a circle\'s circumference to its diameter', aliases=('π',)),
        ConstantFactory('e', 'e', irrational(euler_e),
                        'Base of the natural logarithm', aliases=('euler',)),
        ConstantFactory('phi', 'φ', irrational(golden_ratio),
                        'The golden ratio (1 + √5)/2', aliases=('φ', 'golden-ratio')),
        ConstantFactory('euler-gamma', 'γ', irrational(euler_gamma),
                        'The Euler-Mascheroni constant', aliases=('γ', 'gamma'), max_digits=10_000),
        ConstantFactory('sqrt2', '√2', irrational(lambda digits: sqrt_fixed(2, digits)),
                        'The square roots of two', aliases=('√2',), branches=True),
        ConstantFactory('imaginary-unit', 'i', imaginary_unit,
                        'The square roots of minus one', aliases=('i', 'ⅈ'), branches=True, exact=True),
        ConstantFactory('zero', '0', integer_constant(0), 'The additive identity', exact=True),
        ConstantFactory('one', '1', integer_constant(1), 'The multiplicative identity', exact=True),
    ]


def normalize_name(name: str) -> str:
    return name.strip().lower().replace('_', '-')

class ConstantRegistry:
    """Process-wide name -> factory table, populated lazily exactly once.

    Lookups are safe from any thread; population happens under a lock the
    first time any thread needs the table.
    """
    def __init__(self, populate: Callable[[], Iterable[ConstantFactory]], cache_size: int = 64):
        self._populate = populate
        self._table: Optional[dict[str, ConstantFactory]] = None
        self._lock = threading.Lock()
        self._cache: OrderedDict[tuple, NumericQ] = OrderedDict()
        self._cache_size = cache_size

    def _build(self, factories: Iterable[ConstantFactory]) -> dict[str, ConstantFactory]:
        table: dict[str, ConstantFactory] = {}
        for factory in factories:
            for key in (factory.name, *factory.aliases):
                table[normalize_name(key)] = factory
        return table

    def table(self) -> dict[str, ConstantFactory]:
        table = self._table
        if table is None:
            with self._lock:
                if self._table is None:
                    self._table = self._build(self._populate())
                    logger.info('Constant registry populated with %d names', len(self._table))
                table = self._table
        return table

    @property
    def is_populated(self) -> bool:
        return self._table is not None

    def register(self, factory: ConstantFactory) -> None:
        "Adds or replaces a constant; the new table is published atomically."
        current = self.table()
        with self._lock:
            updated = dict(current)
            updated.update(self._build([factory]))
            self._table = updated
            self._cache.clear()

    def names(self) -> list[str]:
        return sorted({factory.name for factory in self.table().values()})

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self.table()

    def lookup(self, name: str) -> ConstantFactory:
        try:
            return self.table()[normalize_name(name)]
        except KeyError:
            raise NotFoundError(f'No constant is registered under the name {name!r}') from None

    def instantiate(self, name: str, context: Optional[PrecisionContext] = None,
                    sign: Sign = Sign.POSITIVE) -> NumericQ:
        """The constant `name` rounded into `context`, on the branch given by `sign`.

        Raises NotFoundError for unknown names or branches, and
        UnsupportedPrecisionError when the precision is unlimited or beyond
        the constant's limit.
        """
        factory = self.lookup(name)
        if sign is Sign.ZERO or (sign is Sign.NEGATIVE and not factory.branches):
            raise NotFoundError(f'Constant {factory.name} has no {sign} branch')
        if context is None:
            context = default_context()
        if not factory.exact:
            self._check_precision(factory, context)

        key = (factory.name, None if factory.exact else context, sign)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        logger.debug('Computing %s to %s', factory.name, context)
        value = factory.produce(context, sign)

        with self._lock:
            self._cache[key] = value
            self._cache.move_to_end(key)
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
        return value

    def _check_precision(self, factory: ConstantFactory, context: PrecisionContext) -> None:
        if context.is_unlimited:
            raise UnsupportedPrecisionError(f'Constant {factory.name} is irrational and needs a limited precision')
        limit = environment.max_constant_digits
        if factory.max_digits is not None:
            limit = min(limit, factory.max_digits)
        if context.digits > limit:
            raise UnsupportedPrecisionError(
                f'Constant {factory.name} is available to at most {limit} digits, {context.digits} requested'
            )

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

constants = ConstantRegistry(standard_constants)

def instantiate_constant(name: str, context: Optional[PrecisionContext] = None,
                         sign: Sign = Sign.POSITIVE) -> NumericQ:
    return constants.instantiate(name, context, sign)

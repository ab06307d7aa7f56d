#
# The coercion resolver
#
# Conversions walk the hierarchy one direct step at a time. Widening steps
# (promote) always succeed, except that a Rational with a non-terminating
# decimal expansion needs a limited precision context to become a Real.
# Narrowing steps (demote) succeed only when no information would be lost.
#
from __future__ import annotations

import logging

from typing            import Optional

from numtower.context    import PrecisionContext
from numtower.exceptions import CoercionError
from numtower.hierarchy  import NumKind, common_supertype, widening_path
from numtower.protocols  import Promotable

logger = logging.getLogger(__name__)


def _path(source: NumKind, target: NumKind) -> tuple[list[NumKind], bool]:
    "Kinds to step through after `source`, and whether the steps widen."
    up = widening_path(source, target)
    if up is not None:
        return up[1:], True
    down = widening_path(target, source)
    if down is not None:
        return down[-2::-1], False
    raise CoercionError(f'No coercion path from {source} to {target}', source, target)

def coerce_to(value, target: NumKind, context: Optional[PrecisionContext] = None):
    """Converts `value` to an equal value of kind `target`.

    `context` is only consulted when a Rational without a terminating
    decimal expansion is widened to Real; the result is then rounded to it
    and marked inexact. Raises CoercionError when the conversion does not
    exist or would lose information.
    """
    if value.kind is target:
        return value
    steps, widening = _path(value.kind, target)
    for kind in steps:
        try:
            value = value.promote(kind, context) if widening else value.demote(kind)
        except CoercionError:
            logger.debug('Coercion of %s to %s failed at step %s', value, target, kind)
            raise
    return value

def is_coercible_to(value, target: NumKind, context: Optional[PrecisionContext] = None) -> bool:
    "True if coerce_to(value, target, context) would succeed. Never raises for a missing path."
    if value.kind is target:
        return True
    try:
        steps, widening = _path(value.kind, target)
    except CoercionError:
        return False
    if not isinstance(value, Promotable):
        return False
    for index, kind in enumerate(steps):
        allowed = value.can_promote(kind, context) if widening else value.can_demote(kind)
        if not allowed:
            return False
        if index < len(steps) - 1:
            value = value.promote(kind, context) if widening else value.demote(kind)
    return True

def find_common_type(a: NumKind, b: NumKind) -> NumKind:
    common = common_supertype(a, b)
    if common is None:
        logger.info('No common type found for %s and %s', a, b)
        raise CoercionError(f'{a} and {b} have no common supertype', a, b)
    logger.debug('Common type of %s and %s is %s', a, b, common)
    return common

def common_kind_of(*values) -> NumKind:
    "The common kind of one or more values."
    if not values:
        raise CoercionError('common_kind_of requires at least one value')
    kind = values[0].kind
    for v in values[1:]:
        kind = find_common_type(kind, v.kind)
    return kind

#
# The numeric hierarchy: a lattice of kinds ordered by subtyping
#
# The lattice is linear today (Integer < Rational < Real < Complex) but the
# algorithms below only consult the table of direct supertypes, so adding a
# kind with several supertypes is a matter of extending DIRECT_SUPERTYPES.
#
from __future__ import annotations

from collections       import deque
from enum              import Enum
from functools         import total_ordering
from typing            import Optional

from numtower.exceptions import CoercionError


@total_ordering
class NumKind(Enum):
    INTEGER = 1
    RATIONAL = 2
    REAL = 3
    COMPLEX = 4

    def __lt__(self, other):
        if isinstance(other, NumKind):
            return self.value < other.value
        return NotImplemented

    def __str__(self) -> str:
        return self.name.capitalize()

DIRECT_SUPERTYPES: dict[NumKind, frozenset[NumKind]] = {
    NumKind.INTEGER: frozenset([NumKind.RATIONAL]),
    NumKind.RATIONAL: frozenset([NumKind.REAL]),
    NumKind.REAL: frozenset([NumKind.COMPLEX]),
    NumKind.COMPLEX: frozenset(),
}


#
# Queries
#

def supertypes(kind: NumKind) -> frozenset[NumKind]:
    "All kinds that `kind` widens into, including `kind` itself."
    seen = {kind}
    pending = list(DIRECT_SUPERTYPES[kind])
    while pending:
        k = pending.pop()
        if k not in seen:
            seen.add(k)
            pending.extend(DIRECT_SUPERTYPES[k])
    return frozenset(seen)

def is_subtype_of(a: NumKind, b: NumKind) -> bool:
    return b in supertypes(a)

def common_supertype(a: NumKind, b: NumKind) -> Optional[NumKind]:
    """Returns the least general kind that both `a` and `b` widen into.

    The candidates are the intersection of the two supertype closures; the
    answer is the candidate that every other candidate is a supertype of.
    Returns None when the kinds share no supertype.
    """
    shared = supertypes(a) & supertypes(b)
    for candidate in shared:
        if shared <= supertypes(candidate):
            return candidate
    return None

def most_general(*kinds: NumKind) -> NumKind:
    if not kinds:
        raise CoercionError('most_general requires at least one kind')
    return max(kinds)

def widening_path(source: NumKind, target: NumKind) -> Optional[list[NumKind]]:
    "Shortest chain of direct widenings from source to target, inclusive, or None."
    previous: dict[NumKind, Optional[NumKind]] = {source: None}
    queue = deque([source])
    while queue:
        k = queue.popleft()
        if k == target:
            path = [k]
            while previous[path[-1]] is not None:
                path.append(previous[path[-1]])  # type: ignore
            return path[::-1]
        for s in sorted(DIRECT_SUPERTYPES[k]):
            if s not in previous:
                previous[s] = k
                queue.append(s)
    return None

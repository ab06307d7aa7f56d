from __future__ import annotations

from typing            import (
    Protocol,
    runtime_checkable
)


@runtime_checkable
class Numeric(Protocol):
    "The capability set every value of the numeric tower provides."

    def add(self, other): ...
    def subtract(self, other): ...
    def multiply(self, other): ...
    def divide(self, other): ...
    def pow(self, exponent): ...
    def sqrt(self): ...
    def inverse(self): ...
    def negate(self): ...
    def magnitude(self): ...
    def sign(self): ...
    def is_exact(self) -> bool: ...
    def precision_context(self): ...
    def is_coercible_to(self, kind, context=None) -> bool: ...
    def coerce_to(self, kind, context=None): ...

@runtime_checkable
class SupportsSign(Protocol):
    def sign(self):
        ...

@runtime_checkable
class Promotable(Protocol):
    "Values that can take single steps through the numeric hierarchy."
    def promote(self, kind, context=None): ...
    def can_promote(self, kind, context=None) -> bool: ...
    def demote(self, kind): ...
    def can_demote(self, kind) -> bool: ...

@runtime_checkable
class Renderable(Protocol):
    def __rich__(self):
        ...

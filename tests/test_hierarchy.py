"""
Tests for the numeric hierarchy

Checks:
1. Supertype closures and the subtype relation
2. Common supertypes, including symmetry
3. Widening paths
"""
from itertools import product

import pytest

import numtower.hierarchy as hierarchy

from numtower.exceptions import CoercionError
from numtower.hierarchy  import (
    NumKind,
    common_supertype,
    is_subtype_of,
    most_general,
    supertypes,
    widening_path,
)

ALL_KINDS = list(NumKind)


class TestSupertypes:
    """Tests for supertypes and is_subtype_of"""

    def test_closure_is_reflexive(self) -> None:
        """Every kind is among its own supertypes"""
        for kind in ALL_KINDS:
            assert kind in supertypes(kind)

    def test_integer_widens_into_everything(self) -> None:
        """Integer is a subtype of every kind"""
        assert supertypes(NumKind.INTEGER) == frozenset(ALL_KINDS)

    def test_complex_is_the_top(self) -> None:
        """Complex has no proper supertype"""
        assert supertypes(NumKind.COMPLEX) == frozenset([NumKind.COMPLEX])

    def test_subtype_relation(self) -> None:
        """The subtype relation follows the tower"""
        assert is_subtype_of(NumKind.RATIONAL, NumKind.REAL)
        assert is_subtype_of(NumKind.REAL, NumKind.REAL)
        assert not is_subtype_of(NumKind.REAL, NumKind.RATIONAL)
        assert not is_subtype_of(NumKind.COMPLEX, NumKind.INTEGER)

    def test_kinds_are_ordered_by_generality(self) -> None:
        """NumKind ordering agrees with the subtype relation"""
        for a, b in product(ALL_KINDS, repeat=2):
            assert (a <= b) == is_subtype_of(a, b)

    def test_kind_text(self) -> None:
        """Kinds render capitalized"""
        assert str(NumKind.RATIONAL) == 'Rational'


class TestCommonSupertype:
    """Tests for common_supertype and most_general"""

    @pytest.mark.parametrize('a, b, expected', [
        (NumKind.INTEGER, NumKind.INTEGER, NumKind.INTEGER),
        (NumKind.INTEGER, NumKind.RATIONAL, NumKind.RATIONAL),
        (NumKind.INTEGER, NumKind.REAL, NumKind.REAL),
        (NumKind.RATIONAL, NumKind.COMPLEX, NumKind.COMPLEX),
        (NumKind.REAL, NumKind.COMPLEX, NumKind.COMPLEX),
    ])
    def test_least_upper_bound(self, a, b, expected) -> None:
        """The common supertype is the least kind both widen into"""
        assert common_supertype(a, b) is expected

    def test_symmetry(self) -> None:
        """common_supertype(a, b) == common_supertype(b, a) for all kinds"""
        for a, b in product(ALL_KINDS, repeat=2):
            assert common_supertype(a, b) is common_supertype(b, a)

    def test_disjoint_lattice_has_no_common_supertype(self, monkeypatch) -> None:
        """Kinds in separate branches of the table have no common supertype"""
        table = {
            NumKind.INTEGER: frozenset([NumKind.RATIONAL]),
            NumKind.RATIONAL: frozenset(),
            NumKind.REAL: frozenset([NumKind.COMPLEX]),
            NumKind.COMPLEX: frozenset(),
        }
        monkeypatch.setattr(hierarchy, 'DIRECT_SUPERTYPES', table)
        assert common_supertype(NumKind.INTEGER, NumKind.REAL) is None
        assert widening_path(NumKind.INTEGER, NumKind.COMPLEX) is None

    def test_most_general(self) -> None:
        """most_general picks the widest kind"""
        assert most_general(NumKind.RATIONAL, NumKind.INTEGER, NumKind.REAL) is NumKind.REAL

    def test_most_general_requires_a_kind(self) -> None:
        """most_general of nothing is an error"""
        with pytest.raises(CoercionError):
            most_general()


class TestWideningPath:
    """Tests for widening_path"""

    def test_full_path(self) -> None:
        """The path from Integer to Complex visits every kind"""
        assert widening_path(NumKind.INTEGER, NumKind.COMPLEX) == ALL_KINDS

    def test_trivial_path(self) -> None:
        """A kind reaches itself in zero steps"""
        assert widening_path(NumKind.REAL, NumKind.REAL) == [NumKind.REAL]

    def test_no_downward_path(self) -> None:
        """Widening never narrows"""
        assert widening_path(NumKind.COMPLEX, NumKind.INTEGER) is None

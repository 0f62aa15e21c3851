"""Tests for internal ordering of pedigree members."""

import itertools
import logging

import pytest
from pedkit.models.pedigree import Pedigree
from pedkit.exceptions import InvalidArgumentError


@pytest.fixture
def trio():
    """Father, mother and daughter, in sorted order."""
    return Pedigree(ids=["fa", "mo", "child"], fid=[None, None, "fa"], mid=[None, None, "mo"], sex=[1, 2, 2])


@pytest.fixture
def reversed_trio():
    """Trio stored child first, with the mother at position 1 and the father at 2."""
    return Pedigree(
        ids=["child", "mo", "fa"],
        fid=["fa", None, None],
        mid=["mo", None, None],
        sex=[2, 2, 1],
        reorder=False,
    )


# Three generations: grandparents, their two children with spouses, one grandchild each
FAMILY = {
    'ids': ["gf", "gm", "s1", "w1", "d2", "h2", "c1", "c2"],
    'fid': [None, None, "gf", None, "gf", None, "s1", "h2"],
    'mid': [None, None, "gm", None, "gm", None, "w1", "d2"],
    'sex': [1, 2, 1, 2, 2, 1, 0, 0],
}


def build_family(order, reorder=False):
    """Build FAMILY with members stored in the given order."""
    return Pedigree(
        ids=[FAMILY['ids'][i] for i in order],
        fid=[FAMILY['fid'][i] for i in order],
        mid=[FAMILY['mid'][i] for i in order],
        sex=[FAMILY['sex'][i] for i in order],
        reorder=reorder,
    )


def parent_map(ped):
    return {lab: ped.parents(lab) for lab in ped.labels}


def test_has_parents_before_children(trio, reversed_trio):
    """Test the quick order check."""
    assert trio.has_parents_before_children()
    assert not reversed_trio.has_parents_before_children()


def test_reversed_trio_sorted(reversed_trio):
    """Test that parents_before_children moves the child below its parents."""
    ped = reversed_trio.parents_before_children()
    assert ped.has_parents_before_children()
    assert ped.labels == ("mo", "fa", "child")
    assert ped.parents("child") == ("fa", "mo")
    # Input untouched
    assert reversed_trio.labels == ("child", "mo", "fa")


def test_constructor_sorts_by_default():
    """Test that construction reorders unless asked not to."""
    ped = Pedigree(ids=["child", "mo", "fa"], fid=["fa", None, None], mid=["mo", None, None], sex=[2, 2, 1])
    assert ped.has_parents_before_children()
    assert ped.labels == ("mo", "fa", "child")


def test_parents_before_children_noop(trio):
    """Test that already sorted pedigrees and singletons are returned as is."""
    assert trio.parents_before_children() is trio
    single = Pedigree(ids=["x"])
    assert single.parents_before_children() is single


def test_parents_before_children_idempotent(reversed_trio):
    """Test that sorting twice gives the same result as sorting once."""
    once = reversed_trio.parents_before_children()
    twice = once.parents_before_children()
    assert twice == once


def test_parents_before_children_all_orders():
    """Test the ordering postcondition over many storage orders of a 3-generation family."""
    n = len(FAMILY['ids'])
    expected = parent_map(build_family(range(n)))
    # A sample of permutations keeps the test fast
    for perm in itertools.islice(itertools.permutations(range(n)), 0, None, 97):
        ped = build_family(perm)
        sorted_ped = ped.parents_before_children()
        assert sorted_ped.has_parents_before_children()
        assert parent_map(sorted_ped) == expected
        assert sorted_ped.parents_before_children() == sorted_ped


def test_reorder_by_positions(trio):
    """Test reordering with a permutation of positions."""
    ped = trio.reorder([2, 0, 1])
    assert ped.labels == ("child", "fa", "mo")
    assert ped.father == (1, None, None)
    assert ped.mother == (2, None, None)
    assert not ped.has_parents_before_children()


def test_reorder_by_labels(trio):
    """Test reordering with a permutation of labels."""
    ped = trio.reorder(["mo", "child", "fa"])
    assert ped.labels == ("mo", "child", "fa")
    assert ped.parents("child") == ("fa", "mo")


def test_reorder_permutation_closure(trio):
    """Test that every permutation keeps the members and their parents."""
    expected = parent_map(trio)
    for perm in itertools.permutations(range(3)):
        ped = trio.reorder(list(perm))
        assert sorted(ped.labels) == sorted(trio.labels)
        assert parent_map(ped) == expected
        assert ped.reorder([0, 1, 2]).has_parents_before_children() == ped.has_parents_before_children()


def test_reorder_default_sorts_by_label(reversed_trio):
    """Test that reorder without an order sorts members by ID label."""
    ped = reversed_trio.reorder()
    assert ped.labels == ("child", "fa", "mo")
    assert ped.parents("child") == ("fa", "mo")

    sorted_ped = Pedigree(ids=["b", "c", "a"], reorder=False)
    assert sorted_ped.reorder().labels == ("a", "b", "c")
    assert sorted_ped.reorder().reorder() == sorted_ped.reorder()


def test_reorder_identity_returns_same_object(trio):
    """Test that the identity permutation doesn't copy."""
    assert trio.reorder([0, 1, 2]) is trio
    assert trio.reorder(["fa", "mo", "child"]) is trio


def test_reorder_singleton():
    """Test that singletons are returned without validating the order."""
    single = Pedigree(ids=["x"])
    assert single.reorder([5, 6]) is single


def test_reorder_rejects_non_permutations(trio):
    """Test that duplicates, omissions and foreign entries are rejected."""
    bad_orders = [
        [0, 0, 1],
        [0, 1],
        [0, 1, 2, 2],
        [1, 2, 3],
        ["fa", "mo", "fa"],
        ["fa", "mo", "xx"],
        ["fa", 1, 2],
    ]
    for order in bad_orders:
        with pytest.raises(InvalidArgumentError):
            trio.reorder(order)


def test_reorder_error_reports_sequence(trio):
    """Test that the offending sequence is quoted."""
    with pytest.raises(InvalidArgumentError) as excinfo:
        trio.reorder([0, 0, 1])
    assert "[0, 0, 1]" in str(excinfo.value)


def test_reorder_remaps_loop_breakers():
    """Test that loop breaker pairs follow their members."""
    ped = Pedigree(
        ids=["kid", "fa", "mo", "fa_dup"],
        fid=["fa_dup", None, None, None],
        mid=["mo", None, None, None],
        sex=[0, 1, 2, 1],
        loop_breakers=[(3, 1)],
        reorder=False,
    )
    sorted_ped = ped.parents_before_children()
    assert sorted_ped.labels == ("fa", "mo", "fa_dup", "kid")
    assert sorted_ped.loop_breakers == ((2, 0),)
    pairs = [(sorted_ped.labels[a], sorted_ped.labels[b]) for a, b in sorted_ped.loop_breakers]
    assert pairs == [("fa_dup", "fa")]
    assert all(0 <= i < sorted_ped.pedsize for pair in sorted_ped.loop_breakers for i in pair)


def test_reorder_logs_debug(trio, caplog):
    """Test that reordering is logged at debug level."""
    with caplog.at_level(logging.DEBUG, logger="pedkit.models.pedigree"):
        trio.reorder([2, 1, 0])
    assert any("Reordering" in r.getMessage() for r in caplog.records)

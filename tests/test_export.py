"""Tests for table export and renderer input."""

import pytest
from pedkit.config import PedkitConfig
from pedkit.export import render_input, to_table
from pedkit.models.marker import create_marker
from pedkit.models.markerset import set_markers
from pedkit.models.pedigree import Pedigree
from pedkit.exceptions import CountMismatchError, InvalidArgumentError, UnknownMemberError


@pytest.fixture
def trio():
    """Father, mother and daughter."""
    return Pedigree(ids=["fa", "mo", "child"], fid=[None, None, "fa"], mid=[None, None, "mo"], sex=[1, 2, 2])


@pytest.fixture
def typed_trio(trio):
    """Trio with a named marker and an unnamed one."""
    snp = create_marker(trio, {"fa": "A", "mo": "A/B"}, name="snp")
    unnamed = create_marker(trio, {"child": (1, None)})
    return set_markers(trio, [snp, unnamed])


def test_to_table_without_markers(trio):
    """Test the structural columns."""
    table = to_table(trio)
    assert table.columns == ["id", "father", "mother", "sex"]
    assert table.rows == [
        ["fa", "0", "0", "1"],
        ["mo", "0", "0", "2"],
        ["child", "fa", "mo", "2"],
    ]


def test_to_table_with_markers(typed_trio):
    """Test genotype columns, including the header of an unnamed marker."""
    table = to_table(typed_trio)
    assert table.columns == ["id", "father", "mother", "sex", "snp", "2"]
    assert table.rows == [
        ["fa", "0", "0", "1", "A/A", "-/-"],
        ["mo", "0", "0", "2", "A/B", "-/-"],
        ["child", "fa", "mo", "2", "-/-", "1/-"],
    ]


def test_to_table_display_options(typed_trio):
    """Test custom separator and missing symbol."""
    table = to_table(typed_trio, sep="|", missing="?")
    assert table.rows[1][4] == "A|B"
    assert table.rows[2][5] == "1|?"

    config = PedkitConfig(genotype_sep=" ", missing_symbol="0")
    table = to_table(typed_trio, config=config)
    assert table.rows[0][4] == "A A"
    assert table.rows[0][5] == "0 0"


def test_to_text(trio):
    """Test delimited text output."""
    text = to_table(trio).to_text()
    assert text == "id\tfather\tmother\tsex\nfa\t0\t0\t1\nmo\t0\t0\t2\nchild\tfa\tmo\t2\n"
    assert to_table(trio).to_text(",").splitlines()[0] == "id,father,mother,sex"


def test_render_input_structure(trio):
    """Test structure arrays and defaults."""
    r = render_input(trio)
    assert r.labels == ["fa", "mo", "child"]
    assert r.father == ["0", "0", "fa"]
    assert r.mother == ["0", "0", "mo"]
    assert r.sex == [1, 2, 2]
    assert r.status == [0, 0, 0]
    assert r.colors == [1, 1, 1]


def test_render_input_id_labels(trio):
    """Test the id_labels options."""
    assert render_input(trio, id_labels="num").labels == ["1", "2", "3"]
    assert render_input(trio, id_labels=None).labels == ["", "", ""]
    assert render_input(trio, id_labels=["F", None, "C"]).labels == ["F", "", "C"]
    with pytest.raises(CountMismatchError):
        render_input(trio, id_labels=["F"])
    with pytest.raises(InvalidArgumentError):
        render_input(trio, id_labels="names")


def test_render_input_genotypes(typed_trio):
    """Test that genotypes are written below the labels."""
    r = render_input(typed_trio, markers=["snp"])
    assert r.labels == ["fa\nA/A", "mo\nA/B", "child\n-/-"]

    r = render_input(typed_trio, markers=[0, 1], id_labels=None)
    assert r.labels == ["A/A\n-/-", "A/B\n-/-", "-/-\n1/-"]


def test_render_input_skip_empty(typed_trio):
    """Test that untyped members can be left without genotype text."""
    r = render_input(typed_trio, markers="snp", skip_empty_genotypes=True)
    assert r.labels == ["fa\nA/A", "mo\nA/B", "child\n"]


def test_render_input_marker_object(trio):
    """Test passing an unattached marker."""
    m = create_marker(trio, {"child": "1/2"})
    r = render_input(trio, markers=m, id_labels="")
    assert r.labels == ["-/-", "-/-", "1/2"]


def test_render_input_marks(trio):
    """Test stars, deceased status and colours."""
    r = render_input(trio, starred=["child"], deceased=["fa"], col=["red", "blue"])
    assert r.labels == ["fa", "mo", "child*"]
    assert r.status == [1, 0, 0]
    assert r.colors == ["red", "blue", "red"]

    with pytest.raises(UnknownMemberError):
        render_input(trio, starred=["uncle"])

import pytest

from printshop.models.paper import PaperStock
from printshop.services.errors import NotFound
from printshop.services.paper_matcher import PaperMatcher, PaperSpec, coerce_number, within_tolerance


def _stock(**overrides):
    fields = dict(id="s", qr_code="Q", name="Roll", type="Art Paper", gsm=100, width=100, length=0,
                  remaining_length=0, approved=True)
    fields.update(overrides)
    return PaperStock(**fields)


def _spec(**overrides):
    fields = dict(paper_type="Art Paper", gsm=100, width=100, length=50)
    fields.update(overrides)
    return PaperSpec(**fields)


@pytest.fixture
def matcher(session):
    return PaperMatcher(session)


def test_within_five_percent_passes(matcher):
    result = matcher.match(_stock(gsm=100), _spec(gsm=104))
    assert result.gsm_matches
    assert result.valid


def test_outside_five_percent_fails(matcher):
    result = matcher.match(_stock(gsm=100), _spec(gsm=120))
    assert not result.gsm_matches
    assert result.errors == ["GSM mismatch: Requested 120, found 100"]


def test_tolerance_is_relative_to_stock_value():
    assert within_tolerance(105, 100)
    assert not within_tolerance(105.5, 100)


def test_untracked_length_always_passes(matcher):
    assert matcher.match(_stock(length=0), _spec(length=5000)).length_matches
    assert matcher.match(_stock(length=None), _spec(length=5000)).length_matches


def test_longer_stock_satisfies_length(matcher):
    assert matcher.match(_stock(length=300), _spec(length=100)).length_matches


def test_short_stock_fails_length(matcher):
    result = matcher.match(_stock(length=100), _spec(length=120))
    assert result.errors == ["Length mismatch: Requested 120cm, found 100cm"]


def test_type_compare_ignores_case(matcher):
    assert matcher.match(_stock(type="ART PAPER"), _spec(paper_type="art paper")).type_matches


def test_every_failure_gets_its_own_message(matcher):
    stock = _stock(type="Sublim", gsm=90, width=160, length=50, approved=False)
    result = matcher.match(stock, _spec(paper_type="Art Paper", gsm=150, width=65, length=100))
    assert result.errors == [
        "Paper type mismatch: Requested Art Paper, found Sublim",
        "GSM mismatch: Requested 150, found 90",
        "Width mismatch: Requested 65cm, found 160cm",
        "Length mismatch: Requested 100cm, found 50cm",
        "Paper stock not available: Status Not Approved",
    ]


def test_fractional_values_keep_decimals(matcher):
    result = matcher.match(_stock(width=100), _spec(width=61.5))
    assert result.errors == ["Width mismatch: Requested 61.5cm, found 100cm"]


def test_verdict_payloads(matcher):
    ok = matcher.match(_stock(remaining_length=None), _spec()).to_dict()
    assert ok["valid"] is True
    assert ok["message"] == "Barcode validated successfully. Paper stock matches request specifications."
    assert ok["stock"]["remainingLength"] == 0

    bad = matcher.match(_stock(approved=False), _spec()).to_dict()
    assert bad["valid"] is False
    assert bad["errors"] == ["Paper stock not available: Status Not Approved"]
    assert "message" not in bad


@pytest.mark.parametrize("raw,expected", [
    ("150", 150.0),
    (" 65.5 ", 65.5),
    (200, 200.0),
    ("abc", 0.0),
    (None, 0.0),
    ("nan", 0.0),
])
def test_coerce_number(raw, expected):
    assert coerce_number(raw, "GSM") == expected


def test_validate_looks_up_by_qr_code(matcher, art_paper):
    result = matcher.validate("X1", "Art Paper", "150", "65", "100")
    assert result.valid
    assert result.stock.id == art_paper.id


def test_unknown_barcode(matcher):
    with pytest.raises(NotFound) as exc:
        matcher.validate("NOPE", "Art Paper", 150, 65, 100)
    assert exc.value.error == "Barcode not found in inventory"
    assert exc.value.details == "No paper stock found with barcode: NOPE"

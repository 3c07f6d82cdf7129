import random

import pytest

from portfolio_core.infrastructure.market_data.synthetic import SyntheticQuoteGenerator, company_name


def test_base_price_is_deterministic_per_symbol():
    gen = SyntheticQuoteGenerator()
    # R(82) + E(69) + L(76) + I(73) + A(65) + N(78) + C(67) + E(69) = 579
    assert gen.base_price("RELIANCE") == 579 % 1000 + 50
    assert gen.base_price("reliance") == gen.base_price("RELIANCE")


def test_repeated_fallbacks_share_base_price_but_not_change():
    gen = SyntheticQuoteGenerator(rng=random.Random(1))
    first = gen.generate("AAA")
    second = gen.generate("AAA")

    base = gen.base_price("AAA")
    assert first.price - first.change == pytest.approx(base)
    assert second.price - second.change == pytest.approx(base)
    assert first.change_percent != second.change_percent


def test_change_stays_inside_band():
    gen = SyntheticQuoteGenerator(change_band_pct=5.0, rng=random.Random(3))
    for _ in range(200):
        quote = gen.generate("MSFT")
        assert -5.0 <= quote.change_percent <= 5.0
        assert quote.price > 0
        assert quote.is_synthetic


def test_base_price_folds_into_bounded_range():
    gen = SyntheticQuoteGenerator(modulus=100, offset=10)
    for symbol in ("A", "ZZZZZZZZZZ", "HDFCBANK", "X1"):
        assert 10 <= gen.base_price(symbol) < 110


def test_generated_quote_carries_company_name():
    quote = SyntheticQuoteGenerator().generate("tcs")
    assert quote.symbol == "TCS"
    assert quote.name == "Tata Consultancy Services Ltd."
    assert company_name("NOPE") == "NOPE Stock"


@pytest.mark.parametrize("kwargs", [{"modulus": 0}, {"offset": 0}, {"change_band_pct": 100}])
def test_rejects_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        SyntheticQuoteGenerator(**kwargs)

# nosec B101


from decimal import Decimal

import pytest

from domain.aggregation import (
    calculate_confidence,
    calculate_spread,
    filter_outliers,
    median,
    weighted_average,
)
from domain.models.rate import ProviderQuote


def quotes(**rates):
    return [ProviderQuote(provider=name, rate=Decimal(str(rate))) for name, rate in rates.items()]


# ============================================================================
# TEST: median()
# ============================================================================

def test_median_odd_length():
    assert median([Decimal('3'), Decimal('1'), Decimal('2')]) == Decimal('2')


def test_median_even_length_averages_middle_values():
    assert median([Decimal('100'), Decimal('101'), Decimal('150'), Decimal('99')]) == Decimal('100.5')


def test_median_empty_raises():
    with pytest.raises(ValueError):
        median([])


# ============================================================================
# TEST: filter_outliers()
# ============================================================================

def test_filter_outliers_keeps_two_quotes_unfiltered():
    result = filter_outliers(quotes(coinbase=100, binance=200))
    assert [q.provider for q in result] == ['coinbase', 'binance']


def test_filter_outliers_keeps_agreeing_quotes():
    data = quotes(coinbase=50000, binance=50010, coingecko=49990)
    assert filter_outliers(data) == data


def test_filter_outliers_drops_quote_beyond_five_percent(caplog):
    result = filter_outliers(quotes(coinbase=100, binance=101, coingecko=150))

    assert [q.provider for q in result] == ['coinbase', 'binance']
    assert 'Outlier: coingecko rate 150' in caplog.text


def test_filter_outliers_deviation_of_exactly_five_percent_is_kept():
    result = filter_outliers(quotes(a=100, b=100, c=105))
    assert len(result) == 3


def test_filter_outliers_custom_threshold():
    result = filter_outliers(quotes(a=100, b=100, c=102), threshold=Decimal('0.01'))
    assert [q.provider for q in result] == ['a', 'b']


# ============================================================================
# TEST: calculate_spread()
# ============================================================================

def test_spread_zero_with_single_quote():
    assert calculate_spread(quotes(coinbase=100)) == 0


def test_spread_zero_with_no_quotes():
    assert calculate_spread([]) == 0


def test_spread_relative_to_lowest_quote():
    assert calculate_spread(quotes(coinbase=100, binance=101)) == Decimal('1')


def test_spread_zero_minimum_does_not_divide():
    assert calculate_spread(quotes(a=0, b=10)) == 0


# ============================================================================
# TEST: weighted_average()
# ============================================================================

def test_weighted_average_with_configured_weights(weights):
    data = quotes(coinbase=50000, binance=50010, coingecko=49990)
    assert weighted_average(data, weights) == Decimal('50002')


def test_weighted_average_renormalises_after_exclusion(weights):
    data = quotes(coinbase=100, binance=101)
    assert weighted_average(data, weights) == Decimal('100.5')


def test_weighted_average_unknown_provider_uses_default_weight(weights):
    data = quotes(coinbase=100, kraken=200)
    # (100 * 0.4 + 200 * 0.1) / 0.5
    assert weighted_average(data, weights) == Decimal('120')


def test_weighted_average_zero_total_weight_returns_zero():
    data = quotes(coinbase=100)
    assert weighted_average(data, {'coinbase': Decimal(0)}) == 0


def test_weighted_average_bounded_by_min_and_max(weights):
    data = quotes(coinbase=98, binance=103, coingecko=100, kraken=101)
    result = weighted_average(data, weights)
    assert Decimal('98') <= result <= Decimal('103')


# ============================================================================
# TEST: calculate_confidence()
# ============================================================================

def test_confidence_full_agreement():
    assert calculate_confidence(3, 3, Decimal('0.04')) == Decimal(1)


def test_confidence_spread_of_exactly_one_percent_is_not_penalised():
    assert round(calculate_confidence(2, 3, Decimal('1.0')), 3) == Decimal('0.667')


def test_confidence_moderate_spread_penalty():
    assert calculate_confidence(3, 3, Decimal('2')) == Decimal('0.8')


def test_confidence_high_spread_penalty():
    assert calculate_confidence(2, 2, Decimal('6')) == Decimal('0.5')


def test_confidence_counts_failed_providers_against_score():
    assert calculate_confidence(1, 4, Decimal(0)) == Decimal('0.25')


def test_confidence_without_registered_providers_is_zero():
    assert calculate_confidence(0, 0, Decimal(0)) == 0


@pytest.mark.parametrize('valid,total,spread', [(5, 3, Decimal(0)), (0, 3, Decimal(50)), (3, 3, Decimal(100))])
def test_confidence_always_within_unit_interval(valid, total, spread):
    score = calculate_confidence(valid, total, spread)
    assert Decimal(0) <= score <= Decimal(1)

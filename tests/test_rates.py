"""Tests for rates.py"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from rates import (
    RateParseError,
    derive_silver_per_kg,
    format_inr,
    parse_gold_prices,
    parse_rates,
)

NA = "₹ N/A"


class TestFormatInr:
    @pytest.mark.parametrize("amount, expected", [
        (0, "₹ 0"),
        (999, "₹ 999"),
        (72450, "₹ 72,450"),
        (100000, "₹ 1,00,000"),
        (1234567, "₹ 12,34,567"),
        (91000, "₹ 91,000"),
    ])
    def test_indian_grouping(self, amount, expected):
        assert format_inr(amount) == expected


class TestSilverDerivation:
    @pytest.mark.parametrize("gold_per_gram, expected", [
        (1, 0),
        (79, 1000),
        (5000, 63000),
        (9876, 124000),
        (12345, 156000),
    ])
    def test_formula(self, gold_per_gram, expected):
        assert derive_silver_per_kg(gold_per_gram) == expected

    @pytest.mark.parametrize("gold_per_gram, expected", [
        (2500, 32000),
        (7500, 95000),
        (12500, 158000),
    ])
    def test_exact_halves_round_up(self, gold_per_gram, expected):
        # 7500 * 0.0126 = 94.5
        assert derive_silver_per_kg(gold_per_gram) == expected

    def test_known_value(self):
        # 7245 * 0.0126 = 91.287
        assert derive_silver_per_kg(7245) == 91000


class TestParsing:
    def test_extracts_per_gram_prices(self, rates_response):
        assert parse_gold_prices(rates_response.text) == (7245, 6890)

    def test_headline_values(self, rates_response):
        rates = parse_rates(rates_response.text)
        assert rates.gold_24k == "₹ 72,450"
        assert rates.gold_22k == "₹ 68,900"
        assert rates.silver == "₹ 91,000"

    def test_missing_22k_is_failure(self):
        html = "<ul><li>Fine Gold (999) ₹ 7,245</li></ul>"
        with pytest.raises(RateParseError):
            parse_gold_prices(html)

    def test_marker_without_price_is_failure(self):
        html = "<ul><li>Fine Gold (999) ₹ --</li><li>22 KT ₹ 6,890</li></ul>"
        with pytest.raises(RateParseError):
            parse_gold_prices(html)

    def test_ignores_text_outside_list_items(self):
        html = "<p>Fine Gold (999) ₹ 1,111</p><ul><li>22 KT ₹ 6,890</li></ul>"
        with pytest.raises(RateParseError):
            parse_gold_prices(html)


class TestRateFetcherCache:
    def test_first_call_fetches(self, rate_fetcher, rates_response):
        with patch.object(rate_fetcher.session, "get", return_value=rates_response) as get:
            rates = rate_fetcher.get_rates()
        assert get.call_count == 1
        assert get.call_args[0][0] == "https://rates.test/"
        assert rates.gold_24k == "₹ 72,450"

    def test_second_call_within_interval_is_cached(self, rate_fetcher, rates_response, clock):
        with patch.object(rate_fetcher.session, "get", return_value=rates_response) as get:
            first = rate_fetcher.get_rates()
            clock.advance(3599)
            second = rate_fetcher.get_rates()
        assert get.call_count == 1
        assert second.model_dump_json(by_alias=True) == first.model_dump_json(by_alias=True)

    def test_refetches_after_interval(self, rate_fetcher, rates_response, clock):
        updated = MagicMock()
        updated.text = rates_response.text.replace("7,245", "7,300")
        with patch.object(rate_fetcher.session, "get", side_effect=[rates_response, updated]) as get:
            rate_fetcher.get_rates()
            clock.advance(3600)
            rates = rate_fetcher.get_rates()
        assert get.call_count == 2
        assert rates.gold_24k == "₹ 73,000"

    def test_stale_value_on_failure(self, rate_fetcher, rates_response, clock):
        with patch.object(rate_fetcher.session, "get",
                          side_effect=[rates_response, requests.exceptions.ConnectionError]):
            first = rate_fetcher.get_rates()
            clock.advance(7200)
            stale = rate_fetcher.get_rates()
        assert stale == first

    def test_stale_value_on_unparseable_page(self, rate_fetcher, rates_response, clock):
        broken = MagicMock()
        broken.text = "<html><body>maintenance</body></html>"
        with patch.object(rate_fetcher.session, "get", side_effect=[rates_response, broken]):
            first = rate_fetcher.get_rates()
            clock.advance(7200)
            assert rate_fetcher.get_rates() == first

    def test_sentinel_without_prior_value(self, rate_fetcher):
        with patch.object(rate_fetcher.session, "get", side_effect=requests.exceptions.Timeout):
            rates = rate_fetcher.get_rates()
        assert (rates.gold_24k, rates.gold_22k, rates.silver) == (NA, NA, NA)

    def test_sentinel_is_not_cached(self, rate_fetcher, rates_response):
        with patch.object(rate_fetcher.session, "get",
                          side_effect=[requests.exceptions.Timeout, rates_response]) as get:
            assert rate_fetcher.get_rates().gold_24k == NA
            rates = rate_fetcher.get_rates()
        assert get.call_count == 2
        assert rates.gold_24k == "₹ 72,450"

    def test_http_error_status(self, rate_fetcher):
        error = MagicMock()
        error.raise_for_status.side_effect = requests.exceptions.HTTPError("503")
        with patch.object(rate_fetcher.session, "get", return_value=error):
            assert rate_fetcher.get_rates().silver == NA

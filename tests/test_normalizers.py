# WORKFLOW: Unit tests for field normalization rules.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. trim_or_null null tokens and trimming
# 2. to_number / to_int totality on noisy input
# 3. Date parsing (generic dates, "MMM YY" deal dates, lead times)
# 4. Alias table lookups with pass-through for unmapped values
# 5. Process / material classification and name cleanup

import math
from datetime import date, datetime

import pytest

from etl.normalizers import (
    canonical_count_type,
    canonical_country,
    canonical_segment,
    clean_company_name,
    clean_header,
    enum_canonicalize,
    normalize_material_class,
    normalize_process,
    parse_lead_time,
    parse_month_year,
    to_date,
    to_int,
    to_number,
    trim_or_null,
)


class TestTrimOrNull:

    @pytest.mark.parametrize("value", ["", "-", "N/A", "n/a", "   ", None, float("nan")])
    def test_null_tokens(self, value):
        assert trim_or_null(value) is None

    def test_trims_whitespace(self):
        assert trim_or_null("  Acme  ") == "Acme"

    def test_non_string_values_become_text(self):
        assert trim_or_null(42) == "42"


class TestToNumber:

    @pytest.mark.parametrize("value,expected", [
        ("$1,250.00", 1250.0),
        ("86.34", 86.34),
        ("12 kg", 12.0),
        ("-3.5", -3.5),
        (42, 42.0),
        (2.5, 2.5),
    ])
    def test_parses_noisy_numbers(self, value, expected):
        assert to_number(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [
        None, "", "-", "--", "abc", "1.2.3", "n/a", True, float("nan"), float("inf"), object(), [],
    ])
    def test_total_on_garbage(self, value):
        result = to_number(value)
        assert result is None or math.isfinite(result)

    @pytest.mark.parametrize("value", ["", "abc", "--", True, float("inf")])
    def test_unparseable_is_null(self, value):
        assert to_number(value) is None

    def test_to_int_truncates(self):
        assert to_int("3.7") == 3
        assert to_int("12 units") == 12
        assert to_int("none") is None


class TestDates:

    def test_iso_string(self):
        assert to_date("2024-03-15") == date(2024, 3, 15)

    def test_native_values(self):
        assert to_date(datetime(2024, 3, 15, 10, 30)) == date(2024, 3, 15)
        assert to_date(date(2023, 1, 2)) == date(2023, 1, 2)

    @pytest.mark.parametrize("value", [None, "", "-", "not a date"])
    def test_unparseable_dates(self, value):
        assert to_date(value) is None

    def test_month_year_deal_dates(self):
        assert parse_month_year("Feb 24") == date(2024, 2, 1)
        assert parse_month_year("Sep 99") == date(1999, 9, 1)
        assert parse_month_year("March 2021") == date(2021, 3, 1)

    @pytest.mark.parametrize("value", ["Feb 0000", "Feb 99999"])
    def test_month_year_out_of_range_is_null(self, value):
        assert parse_month_year(value) is None

    def test_month_year_falls_back_to_generic_dates(self):
        assert parse_month_year("2022-06-30") == date(2022, 6, 30)
        assert parse_month_year("") is None

    def test_lead_time_takes_first_integer(self):
        assert parse_lead_time("5-7 days") == 5
        assert parse_lead_time(3.0) == 3
        assert parse_lead_time("TBD") is None
        assert parse_lead_time(None) is None


class TestAliases:

    def test_country_aliases(self):
        assert canonical_country("USA") == "United States"
        assert canonical_country(" u.k. ") == "United Kingdom"
        assert canonical_country("Korea, Rep.") == "South Korea"

    def test_unmapped_values_pass_through_trimmed(self):
        assert canonical_country("  Narnia ") == "Narnia"
        assert enum_canonicalize("Something", {}) == "Something"

    def test_blank_is_null(self):
        assert canonical_country("") is None

    def test_count_type_and_segment(self):
        assert canonical_count_type("estimate") == "Estimated"
        assert canonical_count_type("MIN") == "Minimum"
        assert canonical_segment("Material provider") == "Materials"


class TestClassification:

    @pytest.mark.parametrize("value,expected", [
        ("FDM", "Material Extrusion"),
        ("SLS", "PBF-LB (Polymer)"),
        ("SLA", "Vat Photopolymerization"),
        ("PBF-LB/M", "PBF-LB (Metal)"),
        ("PBF-EB", "PBF-EB (Metal)"),
        ("DED - Laser", "DED (Laser)"),
        ("DED - Wire arc", "DED (Arc/Wire)"),
        ("Binder jetting", "Binder Jetting"),
        ("Widget", "Unknown"),
    ])
    def test_normalize_process(self, value, expected):
        assert normalize_process(value) == expected

    def test_normalize_process_blank(self):
        assert normalize_process("") is None

    @pytest.mark.parametrize("value,expected", [
        ("Metal powder", "Metal"),
        ("resin", "Polymer"),
        ("Carbon fiber", "Composite"),
        ("Ceramics", "Ceramic"),
        ("Glass", "Other"),
    ])
    def test_normalize_material_class(self, value, expected):
        assert normalize_material_class(value) == expected


class TestNames:

    def test_clean_company_name(self):
        assert clean_company_name("Align Technology (NAS: ALGN)") == "Align Technology"
        assert clean_company_name("Acme, Inc.") == "Acme"
        assert clean_company_name('"Quoted"   Co') == "Quoted Co"
        assert clean_company_name("  ") is None

    def test_clean_header(self):
        assert clean_header("\ufeffCompany\u00a0name ") == "Company name"
        assert clean_header("State /\u200b province") == "State / province"

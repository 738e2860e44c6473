# WORKFLOW: Tests for supporting pieces of the import jobs.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. Company name matching (exact, containment, fuzzy, no match)
# 2. Approximate coordinates by state / country
# 3. Row schemas (header aliases, website filter, undisclosed deal size)
# 4. Settings read from AM_ environment variables

from datetime import date

import pytest
from pydantic import ValidationError

from core.config import Settings
from core.errors import ConfigurationError
from db.models import Company
from db.session import check_db_connection, create_db_engine
from etl.company_matching import CompanyMatcher
from etl.geo import CANADA_DEFAULT, US_CENTER, approximate_coordinates
from etl.jobs import get_job
from etl.schemas import DetailedCompanyRow, MergerRow, ServicePricingRow
from etl.sink import UpsertSink


class TestCompanyMatcher:

    def setup_method(self):
        self.matcher = CompanyMatcher(
            [(1, "Align Technology"), (2, "Stratasys Ltd."), (3, "Materialise")],
            threshold=85.0,
        )

    def test_exact_match_ignores_case_and_ticker(self):
        assert self.matcher.match("align technology (NAS: ALGN)") == 1

    def test_containment_match(self):
        assert self.matcher.match("Stratasys") == 2

    def test_fuzzy_match(self):
        assert self.matcher.match("Materialize") == 3

    def test_no_match(self):
        assert self.matcher.match("Bigco Holdings") is None
        assert self.matcher.match(None) is None

    def test_empty_matcher(self):
        assert CompanyMatcher([]).match("Align Technology") is None

    def test_from_engine(self, engine):
        UpsertSink(engine).upsert(Company, [{"name": "Desktop Metal"}], ("name",), batch_size=10)
        matcher = CompanyMatcher.from_engine(engine)
        assert matcher.match("Desktop Metal, Inc.") is not None

    def test_from_engine_without_tables(self):
        engine = create_db_engine("sqlite://")
        assert CompanyMatcher.from_engine(engine).match("Desktop Metal") is None
        engine.dispose()


class TestGeo:

    def test_state_coordinates(self):
        assert approximate_coordinates("ca", "United States") == (34.0522, -118.2437)

    def test_country_defaults(self):
        assert approximate_coordinates(None, "Canada") == CANADA_DEFAULT
        assert approximate_coordinates("ZZ", None) == US_CENTER


class TestSchemas:

    def test_pricing_sheet_headers(self):
        row = ServicePricingRow.model_validate({
            "CompanyName": " Acme ",
            "Material_type": "Metal",
            "Mfg": "$1,250.00",
            "Shipping": "n/a",
            "Lead time": "5-7 days",
            "Day ordered": "2024-01-15",
        })

        assert row.company_name == "Acme"
        assert row.material_type == "Metal"
        assert row.manufacturing_cost == 1250.0
        assert row.shipping_cost is None
        assert row.lead_time_days == 5
        assert row.day_ordered == date(2024, 1, 15)

    def test_unknown_columns_ignored(self):
        row = DetailedCompanyRow.model_validate({"Company": "Acme", "Unexpected": "x"})
        assert row.company == "Acme"
        assert not row.has_printer

    def test_website_must_be_a_link(self):
        assert DetailedCompanyRow.model_validate({"Website": "see LinkedIn"}).website is None
        assert DetailedCompanyRow.model_validate({"Website": "https://acme.example"}).website == "https://acme.example"

    def test_zero_deal_size_is_undisclosed(self):
        row = MergerRow.model_validate({"Deal date": "Jan 22", "Deal size ($M)": "0"})
        assert row.deal_size_millions is None
        assert row.deal_date == date(2022, 1, 1)

    def test_unusable_deal_date_keeps_the_row(self):
        row = MergerRow.model_validate({"Deal date": "Feb 0000", "Acquired company": "A", "Acquiring company": "B"})
        assert row.deal_date is None
        assert row.acquired_company == "A"

    def test_rows_are_immutable(self):
        row = DetailedCompanyRow.model_validate({"Company": "Acme"})
        with pytest.raises(ValidationError):
            row.company = "Beta"


class TestSettingsAndJobs:

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("AM_BATCH_SIZE", "25")
        monkeypatch.setenv("AM_DATA_SOURCE", "wohlers_2024")

        config = Settings()

        assert config.batch_size == 25
        assert config.data_source == "wohlers_2024"

    def test_unknown_job(self):
        with pytest.raises(ConfigurationError):
            get_job("suppliers")

    def test_check_db_connection(self, engine):
        assert check_db_connection(engine)

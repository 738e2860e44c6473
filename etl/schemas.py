# WORKFLOW: Pydantic row schemas for every supported source sheet/file.
# Used by: import jobs (etl/jobs.py), pipeline driver normalization stage
# Schemas include:
# 1. DetailedCompanyRow - "Detailed companies" CSV (one row per company/printer)
# 2. ServicePricingRow - Print service pricing quotes (CSV or "SP Pricing" sheet)
# 3. MarketSizeRow - Total AM market size by year and segment
# 4. CountryRevenueRow - AM market revenue by country and segment
# 5. MergerRow - Mergers & acquisitions deals
#
# Validation flow: RawRow -> alias lookup by column header -> normalizer rule per field -> NormalizedRow
# Column headers are the contract between a source file and its schema.

from datetime import date
from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from etl.normalizers import (
    canonical_count_type,
    canonical_country,
    canonical_segment,
    parse_lead_time,
    parse_month_year,
    to_date,
    to_int,
    to_number,
    trim_or_null,
)

CleanStr = Annotated[Optional[str], BeforeValidator(trim_or_null)]
Number = Annotated[Optional[float], BeforeValidator(to_number)]
Integer = Annotated[Optional[int], BeforeValidator(to_int)]
Day = Annotated[Optional[date], BeforeValidator(to_date)]
Country = Annotated[Optional[str], BeforeValidator(canonical_country)]
Segment = Annotated[Optional[str], BeforeValidator(canonical_segment)]


class SourceRow(BaseModel):
    """Base schema: immutable, ignores unknown columns, accepts field names or headers."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class DetailedCompanyRow(SourceRow):
    """One row of the detailed companies export (company x printer model)."""
    company: CleanStr = Field(None, alias="Company")
    website: CleanStr = Field(None, alias="Website")
    country: Country = Field(None, alias="Country")
    state: CleanStr = Field(None, alias="State / province")
    printer_manufacturer: CleanStr = Field(None, alias="Printer manufacturer")
    printer_model: CleanStr = Field(None, alias="Printer model")
    number_of_printers: Integer = Field(None, alias="Number of printers")
    count_type: Annotated[Optional[str], BeforeValidator(canonical_count_type)] = Field(None, alias="Count type")
    process: CleanStr = Field(None, alias="Process")
    material: CleanStr = Field(None, alias="Material")

    @field_validator('website')
    @classmethod
    def keep_http_websites(cls, v):
        # Cells such as "see LinkedIn" are not usable links
        if v and not v.lower().startswith('http'):
            return None
        return v

    @property
    def has_printer(self) -> bool:
        return bool(self.printer_manufacturer or self.printer_model or self.number_of_printers)


class ServicePricingRow(SourceRow):
    """A print service quote, from the pricing CSV or the "SP Pricing" sheet."""
    company_id: CleanStr = Field(None, validation_alias=AliasChoices("company_id", "CompanyID"))
    company_name: CleanStr = Field(None, validation_alias=AliasChoices("company_name", "Company name", "CompanyName"))
    process: CleanStr = Field(None, validation_alias=AliasChoices("process", "Process"))
    material_type: CleanStr = Field(None, validation_alias=AliasChoices("material_type", "Material type", "Material_type"))
    material: CleanStr = Field(None, validation_alias=AliasChoices("material", "Material"))
    quantity: Integer = Field(None, validation_alias=AliasChoices("quantity", "Quantity"))
    volume_cm3: Number = Field(None, validation_alias=AliasChoices("volume_cm3", "Volume (cm3)"))
    manufacturing_cost: Number = Field(None, validation_alias=AliasChoices("manufacturing_cost", "Manufacturing cost", "Mfg"))
    shipping_cost: Number = Field(None, validation_alias=AliasChoices("shipping_cost", "Shipping cost", "Shipping"))
    lead_time_days: Annotated[Optional[int], BeforeValidator(parse_lead_time)] = Field(
        None, validation_alias=AliasChoices("lead_time_days", "Lead time")
    )
    day_ordered: Day = Field(None, validation_alias=AliasChoices("day_ordered", "Day ordered"))
    delivery_date: Day = Field(None, validation_alias=AliasChoices("delivery_date", "Delivery date"))
    country: Country = Field(None, validation_alias=AliasChoices("country", "Country"))
    comments: CleanStr = Field(None, validation_alias=AliasChoices("comments", "Comments"))


class MarketSizeRow(SourceRow):
    year: Integer = Field(None, alias="Year")
    type: CleanStr = Field(None, alias="Type")
    segment: Segment = Field(None, alias="Segment")
    past_revenue_usd: Number = Field(None, alias="Past revenue (USD)")


class CountryRevenueRow(SourceRow):
    country: Country = Field(None, alias="Country")
    segment: Segment = Field(None, alias="Segment")
    revenue_usd: Number = Field(None, alias="Revenue (USD)")


class MergerRow(SourceRow):
    """One M&A deal. Deal dates are "MMM YY" month precision."""
    deal_date: Annotated[Optional[date], BeforeValidator(parse_month_year)] = Field(None, alias="Deal date")
    acquired_company: CleanStr = Field(None, alias="Acquired company")
    acquiring_company: CleanStr = Field(None, alias="Acquiring company")
    deal_size_millions: Number = Field(None, alias="Deal size ($M)")
    country: Country = Field(None, alias="Country")

    @field_validator('deal_size_millions')
    @classmethod
    def zero_size_is_unknown(cls, v):
        # Undisclosed deals are recorded as 0 in the source
        return None if v == 0 else v

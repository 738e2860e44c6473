# WORKFLOW: Import job definitions for the AM Explorer datasets.
# Used by: scripts/run_import.py, pipeline tests
# Jobs:
# 1. companies - Detailed companies export -> companies + company_equipment
# 2. service_pricing - Print service quotes -> service_pricing
# 3. market_size - Total AM market size by year/segment -> market_data
# 4. country_revenue - AM revenue by country/segment -> market_data
# 5. mergers_acquisitions - M&A deals -> mergers_acquisitions (linked to companies)
#
# Each job names its row schema, how rows fold into entities (natural key +
# fold function), which rows are kept, and the table rows it upserts.

"""
Import job definitions for the AM Explorer datasets.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from core.errors import ConfigurationError
from db.models import Company, CompanyEquipment, MarketData, MergerAcquisition, ServicePricing
from etl.aggregator import append_unique, merge_scalars
from etl.company_matching import CompanyMatcher
from etl.geo import approximate_coordinates
from etl.normalizers import normalize_material_class, normalize_process
from etl.pipeline import ImportContext, ImportJob, NumberedRow, SinkTarget
from etl.schemas import CountryRevenueRow, DetailedCompanyRow, MarketSizeRow, MergerRow, ServicePricingRow

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
GLOBAL_COUNTRY = "Global"
ALL_INDUSTRIES = "All"
TOTAL_SEGMENT = "Total"
DEFAULT_REVENUE_YEAR = 2024


# --- companies ---------------------------------------------------------------

def fold_company(entity: Optional[Dict[str, Any]], row: DetailedCompanyRow) -> Dict[str, Any]:
    """
    Fold one detailed-companies row into its company entity.

    Scalars keep the first non-null value. Every row with printer data adds a
    printer record; processes and materials are kept once each, in order.
    """
    if entity is None:
        entity = {"name": row.company, "printers": [], "technologies": [], "materials": []}

    merge_scalars(entity, {"website": row.website, "country": row.country, "state": row.state})

    if row.has_printer:
        entity["printers"].append({
            "manufacturer": row.printer_manufacturer,
            "model": row.printer_model,
            "count": row.number_of_printers or 1,
            "count_type": row.count_type or "Minimum",
            "process": row.process,
            "material": row.material,
        })

    append_unique(entity["technologies"], row.process)
    append_unique(entity["materials"], row.material)
    return entity


def build_company_rows(entities: List[Dict[str, Any]], context: ImportContext) -> List[Dict[str, Any]]:
    rows = []
    for company in entities:
        printers = company["printers"]
        primary = printers[0] if printers else {}
        latitude, longitude = approximate_coordinates(company.get("state"), company.get("country"))

        if company["technologies"]:
            description = f"AM service provider with {', '.join(company['technologies'])} capabilities"
        else:
            description = "Additive manufacturing service provider"

        rows.append({
            "name": company["name"],
            "website": company.get("website"),
            "country": company.get("country"),
            "state": company.get("state"),
            "latitude": latitude,
            "longitude": longitude,
            "company_type": "service" if printers else "other",
            "company_role": "provider",
            "segment": "professional",
            "primary_market": "services",
            "printer_manufacturer": primary.get("manufacturer"),
            "printer_model": primary.get("model"),
            "number_of_printers": sum(p["count"] for p in printers) or None,
            "count_type": primary.get("count_type"),
            "technologies": list(company["technologies"]),
            "materials": list(company["materials"]),
            "description": description,
            "is_active": True,
            "data_source": context.data_source,
        })
    return rows


def build_equipment_rows(entities: List[Dict[str, Any]], context: ImportContext) -> List[Dict[str, Any]]:
    """
    Flatten company printers into equipment rows.

    Printers sharing manufacturer/model/process/material within a company are
    merged with their counts summed, since they upsert onto the same row.
    """
    rows: List[Dict[str, Any]] = []
    for company in entities:
        by_identity: Dict[Tuple[str, str, str, str], Dict[str, Any]] = {}
        for printer in company["printers"]:
            identity = (
                printer["manufacturer"] or UNKNOWN,
                printer["model"] or UNKNOWN,
                printer["process"] or UNKNOWN,
                printer["material"] or UNKNOWN,
            )
            if identity in by_identity:
                by_identity[identity]["count"] += printer["count"]
                continue

            manufacturer, model, process, material = identity
            by_identity[identity] = {
                "company_name": company["name"],
                "manufacturer": manufacturer,
                "model": model,
                "process": process,
                "material": material,
                "process_family": normalize_process(printer["process"]),
                "count": printer["count"],
                "count_type": printer["count_type"],
                "is_primary": not by_identity,
                "data_source": context.data_source,
            }
        rows.extend(by_identity.values())
    return rows


# --- service pricing ---------------------------------------------------------

def accept_pricing(row: ServicePricingRow) -> bool:
    return bool(row.company_name or row.process or row.manufacturing_cost is not None)


def build_pricing_rows(entities: List[NumberedRow], context: ImportContext) -> List[Dict[str, Any]]:
    matcher = CompanyMatcher.from_engine(context.engine, context.fuzzy_match_threshold) if context.engine else None

    rows = []
    for row_number, row in entities:
        notes = row.comments
        if notes is None and row.shipping_cost is not None:
            notes = f"Shipping cost: ${row.shipping_cost:,.2f}"

        rows.append({
            "data_source": context.data_source,
            "source_row": row_number,
            "company_name": row.company_name,
            "company_id": matcher.match(row.company_name) if matcher else None,
            "process": row.process or UNKNOWN,
            "process_family": normalize_process(row.process),
            "material_category": row.material_type or UNKNOWN,
            "material_class": normalize_material_class(row.material_type or row.material),
            "specific_material": row.material or row.material_type or UNKNOWN,
            "quantity": row.quantity or 1,
            "volume_cm3": row.volume_cm3,
            "price_usd": row.manufacturing_cost,
            "shipping_usd": row.shipping_cost,
            "lead_time_days": row.lead_time_days,
            "day_ordered": row.day_ordered,
            "delivery_date": row.delivery_date,
            "country": row.country,
            "notes": notes,
        })
    return rows


# --- market data -------------------------------------------------------------

def market_size_key(row: MarketSizeRow) -> Tuple[str, int, str]:
    data_type = "revenue" if row.type.lower() == "past revenue" else "forecast"
    return (data_type, row.year, row.segment)


def fold_market_size(entity: Optional[Dict[str, Any]], row: MarketSizeRow) -> Dict[str, Any]:
    data_type, year, segment = market_size_key(row)
    return merge_scalars(entity or {}, {
        "data_type": data_type,
        "year": year,
        "segment": segment,
        "country": GLOBAL_COUNTRY,
        "industry": ALL_INDUSTRIES,
        "value_usd": row.past_revenue_usd,
    })


def country_revenue_key(row: CountryRevenueRow) -> Tuple[str, str]:
    return (row.country, row.segment or TOTAL_SEGMENT)


def fold_country_revenue(entity: Optional[Dict[str, Any]], row: CountryRevenueRow) -> Dict[str, Any]:
    country, segment = country_revenue_key(row)
    return merge_scalars(entity or {}, {
        "data_type": "revenue",
        "year": DEFAULT_REVENUE_YEAR,
        "segment": segment,
        "country": country,
        "industry": ALL_INDUSTRIES,
        "value_usd": row.revenue_usd,
    })


def build_market_rows(entities: List[Dict[str, Any]], context: ImportContext) -> List[Dict[str, Any]]:
    return [dict(entity, data_source=context.data_source) for entity in entities]


# --- mergers & acquisitions --------------------------------------------------

def fold_deal(entity: Optional[Dict[str, Any]], row: MergerRow) -> Dict[str, Any]:
    return merge_scalars(entity or {}, {
        "acquired_company_name": row.acquired_company,
        "acquiring_company_name": row.acquiring_company,
        "announcement_date": row.deal_date,
        "deal_size_millions": row.deal_size_millions,
        "country": row.country,
    })


def build_deal_rows(entities: List[Dict[str, Any]], context: ImportContext) -> List[Dict[str, Any]]:
    matcher = CompanyMatcher.from_engine(context.engine, context.fuzzy_match_threshold) if context.engine else None

    rows = []
    linked = 0
    for deal in entities:
        acquired_id = matcher.match(deal["acquired_company_name"]) if matcher else None
        acquiring_id = matcher.match(deal["acquiring_company_name"]) if matcher else None
        linked += (acquired_id is not None) + (acquiring_id is not None)

        rows.append({
            "acquired_company_name": deal["acquired_company_name"],
            "acquiring_company_name": deal["acquiring_company_name"],
            "acquired_company_id": acquired_id,
            "acquiring_company_id": acquiring_id,
            "announcement_date": deal.get("announcement_date"),
            "deal_size_millions": deal.get("deal_size_millions"),
            "deal_status": "completed",
            "country": deal.get("country"),
            "data_source": context.data_source,
        })

    logger.info(f"Linked {linked} of {2 * len(rows)} deal parties to known companies")
    return rows


JOBS: Dict[str, ImportJob] = {
    "companies": ImportJob(
        name="companies",
        description="Detailed companies export (one row per company and printer)",
        schema=DetailedCompanyRow,
        key_fn=lambda row: row.company,
        fold_fn=fold_company,
        delimiter=";",
        targets=[
            SinkTarget(Company, ("name",), build_company_rows),
            SinkTarget(
                CompanyEquipment,
                ("company_name", "manufacturer", "model", "process", "material"),
                build_equipment_rows,
            ),
        ],
    ),
    "service_pricing": ImportJob(
        name="service_pricing",
        description="Print service pricing quotes",
        schema=ServicePricingRow,
        accept=accept_pricing,
        sheet="SP Pricing",
        targets=[SinkTarget(ServicePricing, ("data_source", "source_row"), build_pricing_rows)],
    ),
    "market_size": ImportJob(
        name="market_size",
        description="Total AM market size by year and segment",
        schema=MarketSizeRow,
        accept=lambda row: bool(row.year and row.type and row.segment and row.past_revenue_usd),
        key_fn=market_size_key,
        fold_fn=fold_market_size,
        sheet="Total AM market size",
        targets=[SinkTarget(
            MarketData,
            ("data_type", "year", "segment", "country", "industry", "data_source"),
            build_market_rows,
        )],
    ),
    "country_revenue": ImportJob(
        name="country_revenue",
        description=f"AM market revenue by country and segment ({DEFAULT_REVENUE_YEAR})",
        schema=CountryRevenueRow,
        accept=lambda row: bool(row.country and row.revenue_usd),
        key_fn=country_revenue_key,
        fold_fn=fold_country_revenue,
        sheet=f"AM market revenue {DEFAULT_REVENUE_YEAR}",
        targets=[SinkTarget(
            MarketData,
            ("data_type", "year", "segment", "country", "industry", "data_source"),
            build_market_rows,
        )],
    ),
    "mergers_acquisitions": ImportJob(
        name="mergers_acquisitions",
        description="Mergers & acquisitions deals",
        schema=MergerRow,
        accept=lambda row: bool(row.acquired_company and row.acquiring_company),
        key_fn=lambda row: (row.acquired_company, row.acquiring_company),
        fold_fn=fold_deal,
        targets=[SinkTarget(
            MergerAcquisition,
            ("acquired_company_name", "acquiring_company_name"),
            build_deal_rows,
        )],
    ),
}


def get_job(name: str) -> ImportJob:
    """Look up an import job by name."""
    try:
        return JOBS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown import job '{name}'. Available: {', '.join(sorted(JOBS))}") from None

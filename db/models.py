# WORKFLOW: Database models for the AM Explorer market data tables.
# Used by: upsert sink targets (etl/jobs.py), company matching, CLI init
# Models represent:
# 1. companies - One row per company, with primary printer and capability tags
# 2. company_equipment - Printer fleet per company (one row per manufacturer/model/process/material)
# 3. service_pricing - Print service quotes
# 4. market_data - Market size and revenue estimates by year/segment/country/industry
# 5. mergers_acquisitions - M&A deals linked to companies where a match exists
#
# Every table carries a unique constraint matching the conflict key its import
# job upserts on. Conflict key columns are NOT NULL: PostgreSQL never treats
# NULLs as conflicting, so importers fill them with a placeholder instead.
#
# Data flow: CSV/XLSX -> ETL -> Upsert on conflict key -> Tables served to the dashboard

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    website = Column(String(500), nullable=True)
    country = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    company_type = Column(String(50), nullable=True)  # service, other, ...
    company_role = Column(String(50), nullable=True)
    segment = Column(String(50), nullable=True)
    primary_market = Column(String(50), nullable=True)
    printer_manufacturer = Column(String(255), nullable=True)
    printer_model = Column(String(255), nullable=True)
    number_of_printers = Column(Integer, nullable=True)
    count_type = Column(String(20), nullable=True)
    technologies = Column(JSON, nullable=True)  # ordered list, first is primary
    materials = Column(JSON, nullable=True)  # ordered list, first is primary
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    data_source = Column(String(100), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('name', name='uq_companies_name'),
        Index('idx_companies_country', 'country'),
    )


class CompanyEquipment(Base):
    __tablename__ = "company_equipment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_name = Column(String(255), ForeignKey("companies.name"), nullable=False)
    manufacturer = Column(String(255), nullable=False)
    model = Column(String(255), nullable=False)
    process = Column(String(100), nullable=False)
    material = Column(String(100), nullable=False)
    process_family = Column(String(100), nullable=True)
    count = Column(Integer, nullable=False, default=1)
    count_type = Column(String(20), nullable=True)
    is_primary = Column(Boolean, default=False)
    data_source = Column(String(100), nullable=True)

    __table_args__ = (
        UniqueConstraint('company_name', 'manufacturer', 'model', 'process', 'material', name='uq_equipment_identity'),
    )


class ServicePricing(Base):
    __tablename__ = "service_pricing"

    id = Column(Integer, primary_key=True, autoincrement=True)
    data_source = Column(String(100), nullable=False)
    source_row = Column(Integer, nullable=False)  # row position in the source file
    company_name = Column(String(255), nullable=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    process = Column(String(100), nullable=False)
    process_family = Column(String(100), nullable=True)
    material_category = Column(String(100), nullable=False)
    material_class = Column(String(50), nullable=True)  # Metal, Polymer, Ceramic, ...
    specific_material = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    volume_cm3 = Column(Float, nullable=True)
    price_usd = Column(Float, nullable=True)
    shipping_usd = Column(Float, nullable=True)
    lead_time_days = Column(Integer, nullable=True)
    day_ordered = Column(Date, nullable=True)
    delivery_date = Column(Date, nullable=True)
    country = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('data_source', 'source_row', name='uq_pricing_source_row'),
        Index('idx_pricing_process_material', 'process', 'material_category'),
    )


class MarketData(Base):
    __tablename__ = "market_data"

    id = Column(Integer, primary_key=True, autoincrement=True)
    data_type = Column(String(20), nullable=False)  # revenue, forecast
    year = Column(Integer, nullable=False)
    segment = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)
    industry = Column(String(100), nullable=False)
    value_usd = Column(Float, nullable=False)
    data_source = Column(String(100), nullable=False)

    __table_args__ = (
        UniqueConstraint('data_type', 'year', 'segment', 'country', 'industry', 'data_source', name='uq_market_data_point'),
        Index('idx_market_year_segment', 'year', 'segment'),
    )


class MergerAcquisition(Base):
    __tablename__ = "mergers_acquisitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    acquired_company_name = Column(String(255), nullable=False)
    acquiring_company_name = Column(String(255), nullable=False)
    acquired_company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    acquiring_company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    announcement_date = Column(Date, nullable=True)
    deal_size_millions = Column(Float, nullable=True)
    deal_status = Column(String(20), nullable=False, default="completed")
    country = Column(String(100), nullable=True)
    data_source = Column(String(100), nullable=True)

    __table_args__ = (
        UniqueConstraint('acquired_company_name', 'acquiring_company_name', name='uq_deal_parties'),
        Index('idx_deals_announcement', 'announcement_date'),
    )

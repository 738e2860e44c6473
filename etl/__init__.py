# WORKFLOW: ETL (Extract, Transform, Load) package for AM Explorer market data imports.
# Used by: scripts/run_import.py, scripts/extract_workbook.py
# Modules include:
# 1. source_reader.py - Read RawRows from CSV files and XLSX sheets
# 2. normalizers.py - Total per-field coercion rules and alias tables
# 3. schemas.py - Declared row schema per source sheet/file
# 4. aggregator.py - Fold rows into one entity per natural key
# 5. sink.py - Batched upserts with per-batch failure isolation
# 6. pipeline.py - Run state machine and RunResult
# 7. jobs.py - Dataset definitions (companies, pricing, market data, M&A)
# 8. company_matching.py / geo.py - Company linking and approximate coordinates
#
# ETL flow: CSV/XLSX -> Read -> Normalize -> Aggregate -> Upsert -> RunResult
# One run processes one file sequentially; the database is the only durable store.

"""
ETL package for AM Explorer market data imports.
"""

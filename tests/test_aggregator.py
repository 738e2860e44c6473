# WORKFLOW: Tests for row aggregation by natural key.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. First-seen scalar wins when rows disagree
# 2. Aggregation is idempotent over the same rows
# 3. Rows with blank keys are dropped
# 4. Company rows fold into one entity with ordered distinct technologies

from etl.aggregator import aggregate, append_unique, merge_scalars
from etl.jobs import fold_company
from etl.schemas import DetailedCompanyRow


def fold_site(entity, row):
    entity = merge_scalars(entity or {"name": row["name"], "tags": []}, {"website": row.get("website")})
    append_unique(entity["tags"], row.get("tag"))
    return entity


def by_name(row):
    return row.get("name")


class TestAggregate:

    def test_first_value_wins(self):
        rows = [
            {"name": "Acme", "website": "a.com"},
            {"name": "Acme", "website": "b.com"},
        ]

        entities = aggregate(rows, by_name, fold_site)

        assert len(entities) == 1
        assert entities[0]["website"] == "a.com"

    def test_later_rows_fill_missing_scalars(self):
        rows = [
            {"name": "Acme", "website": None},
            {"name": "Acme", "website": "b.com"},
        ]

        entities = aggregate(rows, by_name, fold_site)

        assert entities[0]["website"] == "b.com"

    def test_idempotent(self):
        rows = [
            {"name": "Acme", "website": "a.com", "tag": "FDM"},
            {"name": "Beta", "tag": "SLA"},
            {"name": "Acme", "website": "b.com", "tag": "SLA"},
        ]

        first = aggregate(rows, by_name, fold_site)
        second = aggregate(rows, by_name, fold_site)

        assert first == second
        assert [len(e["tags"]) for e in first] == [len(e["tags"]) for e in second]

    def test_blank_keys_dropped(self):
        rows = [{"name": None}, {"name": "   "}, {"name": "Acme"}]

        entities = aggregate(rows, by_name, fold_site)

        assert [e["name"] for e in entities] == ["Acme"]

    def test_first_seen_order(self):
        rows = [{"name": "Beta"}, {"name": "Acme"}, {"name": "Beta"}]
        assert [e["name"] for e in aggregate(rows, by_name, fold_site)] == ["Beta", "Acme"]


def test_append_unique():
    items = ["FDM"]
    append_unique(items, "FDM")
    append_unique(items, None)
    append_unique(items, "SLA")
    assert items == ["FDM", "SLA"]


def test_company_rows_fold_into_entities():
    rows = [
        DetailedCompanyRow.model_validate({"Company": "Acme", "Process": "FDM"}),
        DetailedCompanyRow.model_validate({"Company": "Acme", "Process": "SLA"}),
        DetailedCompanyRow.model_validate({"Company": "Beta", "Process": "FDM"}),
    ]

    entities = aggregate(rows, lambda row: row.company, fold_company)

    assert [(e["name"], e["technologies"]) for e in entities] == [
        ("Acme", ["FDM", "SLA"]),
        ("Beta", ["FDM"]),
    ]
    assert all(e["printers"] == [] for e in entities)


def test_company_printers_are_kept_per_row():
    rows = [
        DetailedCompanyRow.model_validate({
            "Company": "Acme", "Printer manufacturer": "Stratasys", "Printer model": "F370",
            "Number of printers": "2", "Count type": "estimate", "Process": "FDM",
        }),
        DetailedCompanyRow.model_validate({"Company": "Acme", "Printer model": "Form 3", "Process": "SLA"}),
    ]

    entities = aggregate(rows, lambda row: row.company, fold_company)

    printers = entities[0]["printers"]
    assert [p["model"] for p in printers] == ["F370", "Form 3"]
    assert printers[0]["count"] == 2
    assert printers[0]["count_type"] == "Estimated"
    assert printers[1]["count"] == 1
    assert printers[1]["count_type"] == "Minimum"

# WORKFLOW: Tests for the command-line scripts.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. run_import exit codes (done, aborted, strict with failed batches)
# 2. Argument validation for batch size
# 3. extract_workbook writes CSV and JSON per sheet

import json

import pandas as pd
import pytest

import scripts.extract_workbook as extract_workbook
import scripts.run_import as run_import
from etl.pipeline import RunResult, Stage


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


class TestRunImport:

    def test_successful_import(self, write_csv, database_url):
        path = write_csv("companies.csv", "Company;Process\nAcme;FDM\nBeta;SLA\n")

        code = run_import.main(["companies", str(path), "--database-url", database_url, "--init-db"])

        assert code == run_import.EXIT_OK

    def test_missing_source_exits_aborted(self, tmp_path, database_url):
        code = run_import.main(["companies", str(tmp_path / "missing.csv"), "--database-url", database_url, "--init-db"])
        assert code == run_import.EXIT_ABORTED

    def test_unreachable_database_exits_aborted(self, write_csv, tmp_path):
        path = write_csv("companies.csv", "Company;Process\nAcme;FDM\n")
        database_url = f"sqlite:///{tmp_path / 'no_such_dir' / 'cli.db'}"

        code = run_import.main(["companies", str(path), "--database-url", database_url])

        assert code == run_import.EXIT_ABORTED

    def test_workbook_without_sheet_exits_aborted(self, tmp_path, database_url):
        path = tmp_path / "companies.xlsx"
        pd.DataFrame({"Company": ["Acme"]}).to_excel(path, index=False)

        code = run_import.main(["companies", str(path), "--database-url", database_url, "--init-db"])

        assert code == run_import.EXIT_ABORTED

    def test_strict_mode_fails_on_failed_batches(self, monkeypatch, write_csv, database_url):
        path = write_csv("companies.csv", "Company;Process\nAcme;FDM\n")

        class FailingPipeline:
            def __init__(self, job, sink, settings):
                self.job = job

            def run(self, path, sheet=None, delimiter=None, batch_size=None):
                return RunResult(job=self.job.name, source=str(path), ok=True, stage=Stage.DONE, failed=3)

        monkeypatch.setattr(run_import, "ImportPipeline", FailingPipeline)
        argv = ["companies", str(path), "--database-url", database_url]

        assert run_import.main(argv) == run_import.EXIT_OK
        assert run_import.main(argv + ["--strict"]) == run_import.EXIT_FAILED_BATCHES

    @pytest.mark.parametrize("batch_size", ["0", "501"])
    def test_batch_size_out_of_range(self, batch_size):
        with pytest.raises(SystemExit):
            run_import.parse_args(["companies", "data.csv", "--batch-size", batch_size])

    def test_unknown_job_rejected(self):
        with pytest.raises(SystemExit):
            run_import.parse_args(["suppliers", "data.csv"])


class TestExtractWorkbook:

    def test_writes_every_sheet(self, tmp_path):
        workbook = tmp_path / "wohlers.xlsx"
        with pd.ExcelWriter(workbook) as writer:
            pd.DataFrame({"Year": [2023, 2024]}).to_excel(writer, sheet_name="Total AM market size", index=False)
            pd.DataFrame({"Company name": ["Acme"]}).to_excel(writer, sheet_name="SP Pricing", index=False)
        output_dir = tmp_path / "extracted"

        counts = extract_workbook.extract_workbook(workbook, output_dir)

        assert counts == {"Total AM market size": 2, "SP Pricing": 1}
        assert (output_dir / "Total_AM_market_size.csv").exists()
        records = json.loads((output_dir / "SP_Pricing.json").read_text())
        assert records == [{"Company name": "Acme"}]

    def test_missing_workbook(self, tmp_path):
        code = extract_workbook.main([str(tmp_path / "missing.xlsx"), "--output-dir", str(tmp_path / "out")])
        assert code == 1

    def test_safe_sheet_name(self):
        assert extract_workbook.safe_sheet_name("AM market revenue 2024") == "AM_market_revenue_2024"

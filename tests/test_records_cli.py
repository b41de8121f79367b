from typer.testing import CliRunner

from scripts.records_cli import app

runner = CliRunner()


def test_import_then_stats(tmp_path, store, database_url):
    source = tmp_path / "companies.csv"
    source.write_text("name,city\nAcme Corp,Reno\nBeta LLC,Provo\n", encoding="utf-8")

    result = runner.invoke(app, ["import", str(source), "--database-url", database_url])
    assert result.exit_code == 0, result.output
    assert "2 records inserted successfully" in result.output

    result = runner.invoke(app, ["stats", "--database-url", database_url])
    assert result.exit_code == 0
    assert "records: 2" in result.output
    assert "name, city" in result.output


def test_import_rejects_non_csv(tmp_path, store, database_url):
    source = tmp_path / "companies.txt"
    source.write_text("name\nAcme\n", encoding="utf-8")

    result = runner.invoke(app, ["import", str(source), "--database-url", database_url])
    assert result.exit_code == 1


def test_reindex_all(store, sample_records, database_url):
    result = runner.invoke(app, ["reindex", "--all", "--database-url", database_url])
    assert result.exit_code == 0
    assert "0 records reindexed" in result.output

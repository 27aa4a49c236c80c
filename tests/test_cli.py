from typer.testing import CliRunner

from rae.cli import main as cli


runner = CliRunner()


def test_roads_reports_unreachable_api_with_nothing_loaded(monkeypatch, engine, reporting):
    reporting.offline = True
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.setattr(cli.RoadAggregationEngine, "from_settings", lambda settings: engine)

    result = runner.invoke(cli.app, ["roads"])

    assert result.exit_code == 0
    assert "Reporting API unreachable: no data loaded." in result.output
    assert "offline data" not in result.output
    assert "No active reports." in result.output

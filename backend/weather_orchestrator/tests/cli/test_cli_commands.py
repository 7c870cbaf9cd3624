import json

import pytest
from typer.testing import CliRunner

from weather_orchestrator.cli.main import app
from weather_orchestrator.config import PROVIDER_NAMES


@pytest.fixture(autouse=True)
def offline_env(monkeypatch):
    for name in ("REDIS_URL", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    for name in PROVIDER_NAMES:
        monkeypatch.delenv(f"{name.upper()}_API_KEY", raising=False)


def test_status_lists_every_provider():
    runner = CliRunner()
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "meteoblue\tFalse\t200/200" in result.stdout
    assert "meteored\tFalse\t300/300" in result.stdout


def test_status_honours_rate_limit_env(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_WINDY", "10")
    result = CliRunner().invoke(app, ["status"])
    assert result.exit_code == 0
    assert "windy\tFalse\t10/10" in result.stdout


def test_point_without_keys_exits_with_error():
    result = CliRunner().invoke(app, ["point", "--lat", "40.4168", "--lon", "-3.7038"])
    assert result.exit_code == 1


def test_route_reports_missing_data_per_waypoint(tmp_path):
    route_file = tmp_path / "route.json"
    route_file.write_text(
        json.dumps({"waypoints": [{"lat": 40.4168, "lon": -3.7038, "estimatedTimeFromStart_minutes": 0}]})
    )
    result = CliRunner().invoke(app, ["route", "--file", str(route_file), "--start", "2026-10-19T08:00:00+00:00"])
    assert result.exit_code == 0
    assert "No weather data available" in result.stdout
    assert "No valid weather data could be retrieved for this route" in result.stdout


def test_route_with_empty_file_exits_2(tmp_path):
    route_file = tmp_path / "route.json"
    route_file.write_text("[]")
    result = CliRunner().invoke(app, ["route", "--file", str(route_file)])
    assert result.exit_code == 2


def test_init_db_creates_usage_table(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'usage.db'}"
    result = CliRunner().invoke(app, ["init-db", "--database-url", db_url])
    assert result.exit_code == 0
    assert "provider_usage table ready" in result.stdout


def test_init_db_without_url_fails():
    result = CliRunner().invoke(app, ["init-db"])
    assert result.exit_code == 1

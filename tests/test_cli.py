import pytest

from norlys_core import __main__ as cli
from norlys_core.arrival import ArrivalEstimate
from norlys_core.client import FetchError
from norlys_core.feeds import SolarWindTile
from norlys_core.index_summary import IndexSummary, LatitudeZone, ValueTrend
from norlys_core.map_matrix_pb import GeoSample
from norlys_core.nearest import NearestSampleResult
from norlys_core.wire_format import Truncated


@pytest.fixture(autouse=True)
def quiet_env(monkeypatch):
    monkeypatch.setenv("NORLYS_LOG_LEVEL", "WARNING")


def test_usage_without_command(capsys):
    assert cli.main([]) == 2
    assert "usage" in capsys.readouterr().out


def test_unknown_command(capsys):
    assert cli.main(["radar"]) == 2


def test_lys(monkeypatch, capsys):
    seen = {}

    def fake_read(settings, zone):
        seen["zone"] = zone
        return IndexSummary(current_value=412, trend=-3.5, station_count=14, points=((None, 412.0),))

    monkeypatch.setattr(cli, "read_index_tile", fake_read)
    assert cli.main(["lys", "mid"]) == 0
    assert seen["zone"] is LatitudeZone.MID
    out = capsys.readouterr().out
    assert "412" in out
    assert "-3.5" in out


def test_lys_without_data(monkeypatch, capsys):
    monkeypatch.setattr(cli, "read_index_tile", lambda settings, zone: None)
    assert cli.main(["lys"]) == 0
    assert "No Lys index data" in capsys.readouterr().out


def test_position_with_coordinates(monkeypatch, capsys):
    seen = {}

    def fake_read(settings, observer):
        seen["observer"] = observer
        return NearestSampleResult(GeoSample(69.6, 18.9, 73.0, 410.0), 4.2)

    monkeypatch.setattr(cli, "read_position_tile", fake_read)
    assert cli.main(["position", "69.65", "18.96"]) == 0
    assert (seen["observer"].lat, seen["observer"].lon) == (69.65, 18.96)
    assert "score=73.0" in capsys.readouterr().out


def test_position_bad_arguments(capsys):
    assert cli.main(["position", "69.65"]) == 1


def _tile(arrival):
    return SolarWindTile(
        bt=ValueTrend(6.2, 1.1),
        bz=ValueTrend(-4.8, -2.0),
        speed=ValueTrend(500.0, 12.0),
        density=None,
        arrival=arrival,
        mag_points=((0, 6.2, -4.8),) * 120,
    )


def test_arrival(monkeypatch, capsys):
    monkeypatch.setattr(
        cli, "read_solar_wind_tile", lambda settings: _tile(ArrivalEstimate(50.0, 69, None))
    )
    assert cli.main(["arrival"]) == 0
    out = capsys.readouterr().out
    assert "~50 min" in out
    assert "Bz: -4.8 nT (-2.0)" in out
    assert "Density: no data" in out
    assert "69 of 120" in out


def test_arrival_without_speed(monkeypatch, capsys):
    monkeypatch.setattr(cli, "read_solar_wind_tile", lambda settings: _tile(None))
    assert cli.main(["arrival"]) == 0
    assert "No solar wind speed available" in capsys.readouterr().out


def test_fetch_error_exit_status(monkeypatch, capsys):
    def boom(settings):
        raise FetchError("Cannot reach https://services.swpc.noaa.gov: timed out")

    monkeypatch.setattr(cli, "read_solar_wind_tile", boom)
    assert cli.main(["arrival"]) == 1
    assert "FETCH ERROR" in capsys.readouterr().out


def test_unknown_log_level_still_runs(monkeypatch, capsys):
    monkeypatch.setenv("NORLYS_LOG_LEVEL", "verbose")
    monkeypatch.setattr(cli, "read_index_tile", lambda settings, zone: None)
    assert cli.main(["lys"]) == 0



def test_decode_error_exit_status(monkeypatch, capsys):
    def boom(settings, zone):
        raise Truncated("field 1 needs 20 bytes at offset 2, only 3 left")

    monkeypatch.setattr(cli, "read_index_tile", boom)
    assert cli.main(["lys"]) == 1
    assert "Truncated" in capsys.readouterr().out

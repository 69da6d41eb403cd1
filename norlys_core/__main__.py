"""
Fetch a feed once, decode it, and print what a tile would show.
Run this to confirm the feeds are reachable and decode cleanly.

Usage:
    python3 -m norlys_core lys                 # high-latitude Lys index
    python3 -m norlys_core lys mid             # mid-latitude Lys index
    python3 -m norlys_core position            # observer from NORLYS_OBSERVER_LAT/LON
    python3 -m norlys_core position 69.65 18.96
    python3 -m norlys_core arrival             # Bt/Bz, speed/density and arrival estimate
"""

import logging
import sys

from norlys_core.arrival import EstimationError
from norlys_core.client import FetchError
from norlys_core.config import Settings
from norlys_core.feeds import read_index_tile, read_position_tile, read_solar_wind_tile
from norlys_core.index_summary import LatitudeZone
from norlys_core.nearest import Coordinate
from norlys_core.solar_wind import SolarWindError
from norlys_core.wire_format import DecodeError

USAGE = "usage: python3 -m norlys_core {lys [high|mid] | position [LAT LON] | arrival}"


def _run_lys(settings, args):
    zone = LatitudeZone(args[0]) if args else LatitudeZone.HIGH
    summary = read_index_tile(settings, zone)
    if summary is None:
        print(f"No Lys index data in the last {settings.window_hours:g} hours")
        return
    print(f"Lys ({zone.value}): {summary.current_value:.0f}  trend {summary.trend:+.1f}")
    print(f"  stations: {summary.station_count}, points: {len(summary.points)}")


def _run_position(settings, args):
    observer = None
    if len(args) == 2:
        observer = Coordinate(float(args[0]), float(args[1]))
    elif args:
        raise ValueError("position takes either no arguments or LAT LON")
    result = read_position_tile(settings, observer)
    if result is None:
        print("No map data available")
        return
    s = result.sample
    print(f"Nearest point: ({s.lat:.2f}, {s.lon:.2f})  {result.distance_km:.0f} km away")
    print(f"  score={s.score:.1f} speed={s.speed:.1f}")


def _fmt_trend(label, vt, unit):
    if vt is None:
        return f"{label}: no data"
    return f"{label}: {vt.current_value:.1f} {unit} ({vt.trend:+.1f})"


def _run_arrival(settings, args):
    tile = read_solar_wind_tile(settings)
    print(_fmt_trend("Bt", tile.bt, "nT") + "   " + _fmt_trend("Bz", tile.bz, "nT"))
    print(
        _fmt_trend("Speed", tile.speed, "km/s")
        + "   "
        + _fmt_trend("Density", tile.density, "p/cm3")
    )
    estimate = tile.arrival
    if estimate is None:
        print("No solar wind speed available")
        return
    print(f"Travel time: {estimate.travel_minutes:.1f} min (~{estimate.rounded_minutes} min)")
    print(f"  arrival timestamp: {estimate.arrival_timestamp}")
    print(f"  aligned mag index: {estimate.aligned_index} of {len(tile.mag_points)}")


COMMANDS = {
    "lys": _run_lys,
    "position": _run_position,
    "arrival": _run_arrival,
}


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in COMMANDS:
        print(USAGE)
        return 2

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        COMMANDS[argv[0]](settings, argv[1:])
    except FetchError as e:
        print(f"FETCH ERROR: {e}")
        return 1
    except DecodeError as e:
        print(f"DECODE ERROR ({type(e).__name__}): {e}")
        return 1
    except (EstimationError, SolarWindError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""Script to verify OSRM connectivity and show what the routing service returns."""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from fleetrouting.config import settings
from fleetrouting.services.routing.errors import RemoteRoutingError
from fleetrouting.services.routing.osrm_client import OSRMClient, check_health

# Lima city centre, San Isidro and Miraflores
TEST_COORDS = [
    (-12.0464, -77.0428),
    (-12.0532, -77.0514),
    (-12.1191, -77.0375),
]


def main():
    print("=" * 60)
    print("OSRM Connection Test")
    print("=" * 60)
    print(f"   OSRM Base URL: {settings.osrm_base_url}")
    print(f"   OSRM Profile: {settings.osrm_profile}")
    print()

    print("1. Testing OSRM health check...")
    if not check_health():
        print("   [ERROR] OSRM service is not responding")
        return 1
    print("   [OK] OSRM service is healthy and accessible!")
    print()

    client = OSRMClient()
    try:
        print("2. Testing OSRM route request...")
        route = client.route(TEST_COORDS)
        print(f"   [OK] {len(route.polyline)} polyline points, {route.total_distance_km} km, "
              f"{route.total_duration_min} min, {len(route.segments)} legs")

        print("3. Testing OSRM trip request...")
        trip = client.trip(TEST_COORDS)
        print(f"   [OK] visiting order {list(trip.waypoint_order)}, {trip.total_distance_km} km")

        print("4. Testing OSRM table request...")
        matrix = client.table(TEST_COORDS)
        print(f"   [OK] {matrix.size}x{matrix.size} matrix, 0->1 = {matrix.distances_km[0][1]} km")
    except RemoteRoutingError as e:
        print(f"   [ERROR] {e}")
        return 1

    print()
    print("=" * 60)
    print("[SUCCESS] OSRM is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())

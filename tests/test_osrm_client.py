import httpx
import pytest

from fleetrouting.models.domain import ResultSource
from fleetrouting.services.routing.errors import CancellationToken, RemoteRoutingError, RoutingCancelled
from fleetrouting.services.routing.osrm_client import OSRMClient

BASE_URL = "http://osrm.test"


def _route_payload(coords, distance=15000.0, duration=1200.0):
    lon_lat = [[lon, lat] for lat, lon in coords]
    legs = [
        {
            "distance": distance / (len(coords) - 1),
            "duration": duration / (len(coords) - 1),
            "steps": [{"geometry": {"coordinates": [lon_lat[i], lon_lat[i + 1]]}}],
        }
        for i in range(len(coords) - 1)
    ]
    return {
        "distance": distance,
        "duration": duration,
        "geometry": {"type": "LineString", "coordinates": lon_lat},
        "legs": legs,
    }


def _table_payload(n):
    return {
        "code": "Ok",
        "distances": [[0 if i == j else 5000 + i * 100 + j * 200 for j in range(n)] for i in range(n)],
        "durations": [[0 if i == j else 600 + i * 30 + j * 10 for j in range(n)] for i in range(n)],
    }


def _client(handler, **kwargs) -> OSRMClient:
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return OSRMClient(base_url=BASE_URL, profile="driving", timeout=2.0, http_client=http_client, **kwargs)


def _json_handler(payload, status_code=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)

    return handler


def test_route_builds_lon_lat_url_and_params(lima_coords):
    seen = []
    client = _client(_json_handler({"code": "Ok", "routes": [_route_payload(lima_coords)]}, seen=seen))

    client.route(lima_coords)

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == (
        "/route/v1/driving/-77.0428,-12.0464;-77.0514,-12.0532;-77.0375,-12.1191"
    )
    assert request.url.params["overview"] == "full"
    assert request.url.params["geometries"] == "geojson"
    assert request.url.params["steps"] == "true"


def test_route_parses_geometry_metrics_and_legs(lima_coords):
    client = _client(_json_handler({"code": "Ok", "routes": [_route_payload(lima_coords)]}))

    result = client.route(lima_coords)

    assert result.source is ResultSource.REMOTE
    assert not result.degraded
    assert result.polyline == tuple(lima_coords)
    assert result.total_distance_km == 15.0
    assert result.total_duration_min == 20
    assert len(result.segments) == len(lima_coords) - 1
    first_leg = result.segments[0]
    assert first_leg.coordinates == (lima_coords[0], lima_coords[1])
    assert first_leg.distance_m == 7500.0
    assert first_leg.duration_s == 600.0


def test_route_rounds_distance_to_one_decimal(lima_coords):
    client = _client(_json_handler({"code": "Ok", "routes": [_route_payload(lima_coords, 12345.0, 754.0)]}))

    result = client.route(lima_coords)

    assert result.total_distance_km == 12.3
    assert result.total_duration_min == 13


@pytest.mark.parametrize(
    "status_code, payload",
    [
        (500, {"code": "Error"}),
        (400, {"code": "InvalidQuery", "message": "bad"}),
        (200, {"code": "NoRoute", "message": "Impossible route"}),
        (200, {"code": "Ok", "routes": []}),
        (200, {"code": "Ok"}),
        (200, {"routes": []}),
        (200, {"code": "Ok", "routes": [{"distance": 1, "duration": 1}]}),
        (200, {"code": "Ok", "routes": [{"distance": 1, "duration": 1, "geometry": {"coordinates": []}, "legs": []}]}),
    ],
)
def test_route_failures_raise_remote_error(lima_coords, status_code, payload):
    client = _client(_json_handler(payload, status_code=status_code))

    with pytest.raises(RemoteRoutingError):
        client.route(lima_coords)


def test_route_leg_count_mismatch_is_remote_error(lima_coords):
    payload = _route_payload(lima_coords)
    payload["legs"] = payload["legs"][:1]
    client = _client(_json_handler({"code": "Ok", "routes": [payload]}))

    with pytest.raises(RemoteRoutingError, match="legs"):
        client.route(lima_coords)


def test_non_json_body_is_remote_error(lima_coords):
    client = _client(lambda request: httpx.Response(200, text="<html>busy</html>"))

    with pytest.raises(RemoteRoutingError, match="JSON"):
        client.route(lima_coords)


def test_network_error_is_remote_error(lima_coords):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteRoutingError):
        _client(handler).route(lima_coords)


def test_timeout_is_remote_error(lima_coords):
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(RemoteRoutingError, match="timed out"):
        _client(handler).route(lima_coords)


def test_too_many_coordinates_fails_without_request():
    seen = []
    client = _client(_json_handler({"code": "Ok"}, seen=seen), max_coordinates_per_request=3)

    with pytest.raises(RemoteRoutingError, match="limit"):
        client.table([(0.0, float(i)) for i in range(4)])
    assert seen == []


def test_cancelled_before_send_makes_no_request(lima_coords):
    seen = []
    client = _client(_json_handler({"code": "Ok", "routes": [_route_payload(lima_coords)]}, seen=seen))
    token = CancellationToken()
    token.cancel()

    with pytest.raises(RoutingCancelled):
        client.route(lima_coords, cancel=token)
    assert seen == []


def test_cancelled_while_in_flight_discards_reply(lima_coords):
    token = CancellationToken()

    def handler(request):
        token.cancel()
        return httpx.Response(200, json={"code": "Ok", "routes": [_route_payload(lima_coords)]})

    with pytest.raises(RoutingCancelled):
        _client(handler).route(lima_coords, cancel=token)


def test_trip_request_pins_first_point_without_roundtrip(lima_coords):
    seen = []
    payload = {
        "code": "Ok",
        "trips": [_route_payload(lima_coords, 18000.0, 1500.0)],
        "waypoints": [{"waypoint_index": i, "trips_index": 0} for i in range(3)],
    }
    client = _client(_json_handler(payload, seen=seen))

    result = client.trip(lima_coords)

    params = seen[0].url.params
    assert seen[0].url.path.startswith("/trip/v1/driving/")
    assert params["source"] == "first"
    assert params["roundtrip"] == "false"
    assert params["geometries"] == "geojson"
    assert result.waypoint_order == (0, 1, 2)
    assert result.total_distance_km == 18.0
    assert result.total_duration_min == 25


def test_trip_converts_waypoint_positions_to_visiting_order():
    coords = [(0.0, 0.0), (0.0, 3.0), (0.0, 1.0), (0.0, 2.0)]
    visiting = [coords[0], coords[2], coords[3], coords[1]]
    payload = {
        "code": "Ok",
        "trips": [_route_payload(visiting)],
        # input i is visited at position waypoint_index
        "waypoints": [{"waypoint_index": p} for p in (0, 3, 1, 2)],
    }

    result = _client(_json_handler(payload)).trip(coords)

    assert result.waypoint_order == (0, 2, 3, 1)
    assert result.polyline[0] == coords[0]


@pytest.mark.parametrize(
    "waypoints",
    [
        [{"waypoint_index": 0}, {"waypoint_index": 1}],
        [{"waypoint_index": 0}, {"waypoint_index": 1}, {"waypoint_index": 1}],
        [{"waypoint_index": 1}, {"waypoint_index": 0}, {"waypoint_index": 2}],
    ],
)
def test_trip_with_bad_waypoints_is_remote_error(lima_coords, waypoints):
    payload = {"code": "Ok", "trips": [_route_payload(lima_coords)], "waypoints": waypoints}

    with pytest.raises(RemoteRoutingError):
        _client(_json_handler(payload)).trip(lima_coords)


def test_trip_without_trips_is_remote_error(lima_coords):
    payload = {"code": "Ok", "trips": [], "waypoints": []}
    with pytest.raises(RemoteRoutingError):
        _client(_json_handler(payload)).trip(lima_coords)


def test_table_converts_units(lima_coords):
    seen = []
    client = _client(_json_handler(_table_payload(3), seen=seen))

    matrix = client.table(lima_coords)

    assert seen[0].url.path.startswith("/table/v1/driving/")
    assert seen[0].url.params["annotations"] == "distance,duration"
    assert matrix.size == 3
    assert matrix.distances_km[0][0] == 0
    assert matrix.distances_km[0][1] == 5.2  # 5200 m
    assert matrix.distances_km[1][0] == 5.1  # 5100 m, not symmetric
    assert matrix.durations_min[0][1] == 10.2  # 610 s
    assert matrix.source is ResultSource.REMOTE


def test_table_keeps_unreachable_pairs_as_none():
    payload = {"code": "Ok", "distances": [[0, None], [1000, 0]], "durations": [[0, None], [60, 0]]}

    matrix = _client(_json_handler(payload)).table([(0.0, 0.0), (0.0, 1.0)])

    assert matrix.distances_km[0][1] is None
    assert matrix.durations_min[1][0] == 1.0


def test_table_that_is_not_square_is_remote_error(lima_coords):
    payload = _table_payload(2)
    with pytest.raises(RemoteRoutingError, match="3x3"):
        _client(_json_handler(payload)).table(lima_coords)


def test_fewer_than_two_coordinates_is_rejected():
    with pytest.raises(ValueError):
        _client(_json_handler({"code": "Ok"})).route([(0.0, 0.0)])


def test_base_url_trailing_slash_is_dropped():
    client = OSRMClient(base_url="http://osrm.test/", profile="driving")
    assert client.base_url == "http://osrm.test"

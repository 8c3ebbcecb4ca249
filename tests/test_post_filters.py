import pytest

from conftest import direct_fare, one_stop_fare, raw_fare, raw_leg, raw_response, raw_segment
from providers.starling import normalize_fares
from schemas.search import FilterState, TravelRequest
from services.filter_pipeline import apply_filters
from services.post_filters import apply_request_filters


def _request(**flights):
    return TravelRequest.model_validate({"flights": flights})


def _two_stop_fare(fare_id, total):
    segs = [
        raw_segment("CM", dep=("SCL", "2025-03-01", "08:00"), arr=("LIM", "2025-03-01", "10:00")),
        raw_segment("CM", dep=("LIM", "2025-03-01", "11:00"), arr=("PTY", "2025-03-01", "15:00"), number="2"),
        raw_segment("CM", dep=("PTY", "2025-03-01", "16:00"), arr=("MIA", "2025-03-01", "19:00"), number="3"),
    ]
    back = [
        raw_segment("CM", dep=("MIA", "2025-03-10", "08:00"), arr=("PTY", "2025-03-10", "10:00")),
        raw_segment("CM", dep=("PTY", "2025-03-10", "11:00"), arr=("LIM", "2025-03-10", "15:00"), number="2"),
        raw_segment("CM", dep=("LIM", "2025-03-10", "16:00"), arr=("SCL", "2025-03-10", "20:00"), number="3"),
    ]
    return raw_fare(fare_id, [raw_leg(1, segs), raw_leg(2, back)], total=total)


def _mixed_fare(fare_id, total):
    """Direct outbound, two stops back: same total as one-each-way."""
    out = [raw_segment("AM", dep=("SCL", "2025-03-01", "09:00"), arr=("MEX", "2025-03-01", "17:00"))]
    back = [
        raw_segment("AM", dep=("MEX", "2025-03-10", "08:00"), arr=("PTY", "2025-03-10", "10:00")),
        raw_segment("AM", dep=("PTY", "2025-03-10", "11:00"), arr=("LIM", "2025-03-10", "15:00"), number="2"),
        raw_segment("AM", dep=("LIM", "2025-03-10", "16:00"), arr=("SCL", "2025-03-10", "20:00"), number="3"),
    ]
    return raw_fare(fare_id, [raw_leg(1, out), raw_leg(2, back)], total=total)


@pytest.fixture
def flights(resolver):
    resp = raw_response(
        direct_fare("D1", 400, airline="LA", dep_time="07:00"),
        direct_fare("D2", 250, airline="IB", dep_time="13:00", baggage="0PC"),
        one_stop_fare("S1", 300),
        one_stop_fare("S2", 150, second_dep=("BOG", "2025-03-01", "23:00")),  # 11h layover
        _two_stop_fare("T1", 200),
        _mixed_fare("M1", 100),
    )
    return normalize_fares(resp, resolver=resolver)


def _ids(result):
    return [f.id for f in result.flights]


def test_no_request_only_ranks_and_truncates(flights):
    result = apply_request_filters(flights, None, limit=5)
    assert _ids(result) == ["M1", "S2", "T1", "D2", "S1"]
    assert result.totalAfterFilters == 6


def test_limit_none_keeps_full_ranked_set(flights):
    assert len(apply_request_filters(flights, None, limit=None).flights) == 6


def test_direct_policy(flights):
    result = apply_request_filters(flights, _request(stops="direct"))
    assert _ids(result) == ["D2", "D1"]
    assert result.excludedByStops == 4


def test_one_stop_is_per_leg(flights):
    result = apply_request_filters(flights, _request(stops="one_stop"))
    assert _ids(result) == ["S2", "S1"]


def test_two_stops_is_per_leg(flights):
    result = apply_request_filters(flights, _request(stops="two_stops"))
    assert _ids(result) == ["T1"]


def test_with_stops_and_layover_cutoff(flights):
    result = apply_request_filters(flights, _request(stops="with_stops", maxLayoverHours=3))
    assert "S2" not in _ids(result)
    assert set(_ids(result)) == {"M1", "T1", "S1"}
    assert result.excludedByLayover == 1


def test_layover_cutoff_never_drops_direct(flights):
    result = apply_request_filters(flights, _request(maxLayoverHours=0.5), limit=None)
    assert {"D1", "D2"} <= set(_ids(result))


def test_unknown_layover_fails_open(resolver):
    segs = [
        raw_segment("AV", arr=("BOG", "", "")),
        raw_segment("AV", dep=("BOG", "", ""), number="2"),
    ]
    [f] = normalize_fares(raw_response(raw_fare("U1", [raw_leg(1, segs)])), resolver=resolver)
    result = apply_request_filters([f], _request(maxLayoverHours=1))
    assert _ids(result) == ["U1"]


def test_departure_time_preference(flights):
    result = apply_request_filters(flights, _request(departureTimePreference="afternoon"))
    assert _ids(result) == ["D2"]


def test_luggage_runs_after_stops(flights):
    # D2 reads 0PC with no carry-on on IB: a standard carry-on fare
    result = apply_request_filters(flights, _request(stops="direct", luggage="checked"))
    assert _ids(result) == ["D1"]
    assert result.excludedByStops == 4
    assert result.excludedByLuggage == 1

    result = apply_request_filters(flights, _request(stops="direct", luggage="carry_on"))
    assert _ids(result) == ["D2"]


def test_layover_cutoff_checks_every_option(resolver):
    # Cheapest option is direct, the alternative waits 10h in BOG
    leg = raw_leg(
        1,
        [raw_segment("AV", arr=("MIA", "2025-03-01", "14:00"))],
        [
            raw_segment("AV", arr=("BOG", "2025-03-01", "10:00")),
            raw_segment("AV", dep=("BOG", "2025-03-01", "20:00"), arr=("MIA", "2025-03-02", "01:00"), number="2"),
        ],
    )
    [f] = normalize_fares(raw_response(raw_fare("X", [leg])), resolver=resolver)
    assert f.stops.direct is True

    result = apply_request_filters([f], _request(maxLayoverHours=3))
    assert _ids(result) == []
    assert result.excludedByLayover == 1
    assert apply_filters([f], FilterState(maxLayoverHours=3)) == []


def test_carry_on_drops_light_fare_carriers(resolver):
    carry_on = {"Quantity": "1"}
    resp = raw_response(
        direct_fare("LA1", 200, airline="LA", baggage="0PC", carry_on=carry_on),
        direct_fare("IB1", 300, airline="IB", baggage="0PC", carry_on=carry_on),
    )
    flights = normalize_fares(resp, resolver=resolver)

    result = apply_request_filters(flights, _request(luggage="carry_on"))
    assert _ids(result) == ["IB1"]
    assert result.excludedByLightFare == 1
    assert result.excludedByLuggage == 0

    result = apply_request_filters(flights, _request(luggage="carry_on"), light_fare_airlines=[])
    assert _ids(result) == ["LA1", "IB1"]
    assert result.excludedByLightFare == 0


def test_light_fare_stage_only_for_carry_on(resolver):
    [f] = normalize_fares(raw_response(direct_fare("LA1", 200, airline="LA")), resolver=resolver)
    result = apply_request_filters([f], _request(luggage="checked"))
    assert _ids(result) == ["LA1"]
    assert result.excludedByLightFare == 0


def test_fare_without_legs_uses_summary_baggage(resolver):
    [f] = normalize_fares(raw_response(raw_fare("E", [])), resolver=resolver)
    assert f.baggageAnalysis == []
    assert f.baggage.included is False

    assert _ids(apply_request_filters([f], _request(luggage="checked"))) == []
    assert _ids(apply_request_filters([f], _request(luggage="none"))) == ["E"]


def test_fare_without_legs_reads_direct_everywhere(resolver):
    [f] = normalize_fares(raw_response(raw_fare("E", [])), resolver=resolver)
    assert f.stops.direct is True
    assert _ids(apply_request_filters([f], _request(stops="direct"))) == ["E"]
    assert apply_filters([f], FilterState(maxStops=0)) == [f]

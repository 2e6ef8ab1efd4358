import math

import pytest

from railsim.airtank import STDATM, AirPipe, AirTank
from railsim.brakevalve import (
    BrakeValve,
    BrakeValveError,
    choke_area,
    choke_area_inches,
    get_valve,
    radius_to_area,
)


def make_tanks(valve):
    return [
        AirTank(spec.volume) if spec.volume > 0 else AirPipe(spec.pipe_length, 0.032)
        for spec in valve.tanks
    ]


def set_psig(valve, tanks, **pressures):
    for name, psig in pressures.items():
        tanks[valve.tank_index(name)].psig = psig


def test_radius_to_area_unit_circle():
    assert radius_to_area(1) == pytest.approx(math.pi)


def test_choke_area_is_circle_of_half_diameter():
    assert choke_area(0.004, 1) == pytest.approx(radius_to_area(0.002))
    assert choke_area(0.004, 0.5) == pytest.approx(0.5 * radius_to_area(0.002))


def test_choke_area_inches_converts_diameter():
    assert choke_area_inches(0.5, 0.7) == pytest.approx(choke_area(0.0127, 0.7))


def test_get_valve_is_cached_and_defaults_to_k():
    k = get_valve("K")
    assert get_valve("K") is k
    assert get_valve("no-such-valve") is k
    assert k.name == "K"


def test_k_valve_tank_indices():
    k = get_valve("K")
    assert [k.tank_index(n) for n in ("BP", "AR", "BC")] == [0, 1, 2]
    assert k.tank_index("ER") == -1
    assert k.tanks[0].pipe_length > 0 and k.tanks[0].volume == 0


def test_retainer_settings():
    ab = get_valve("AB")
    assert [r.name for r in ab.retainer_settings] == ["EX", "HP", "LP", "SD"]
    assert ab.retainer_settings[0].pressure == pytest.approx(STDATM)
    assert get_valve("H6").retainer_settings == []


def test_piston_counts():
    assert len(get_valve("K").pistons) == 1
    assert len(get_valve("AB").pistons) == 2
    assert len(get_valve("H6").pistons) == 2
    assert get_valve("AMM").tank_index("CP") == 1


def test_states_resolved_by_match():
    k = get_valve("K")
    lap = k.state_map["LAP"]
    assert lap.next_up is k.state_map["SERV"]
    assert lap.next_down is k.state_map["REL"]


def test_equal_pressures_keep_state():
    for name in ("K", "AB", "H6", "L", "AMM"):
        valve = get_valve(name)
        tanks = make_tanks(valve)
        assert valve.update_state(0, tanks) == 0


def test_pipe_reduction_applies_service():
    k = get_valve("K")
    tanks = make_tanks(k)
    set_psig(k, tanks, BP=60, AR=70)
    assert k.update_state(0, tanks) == k.state_map["SERV"].index


def test_pipe_increase_releases():
    k = get_valve("K")
    tanks = make_tanks(k)
    set_psig(k, tanks, BP=70, AR=60)
    rel = k.update_state(0, tanks)
    assert rel == k.state_map["REL"].index
    assert k.update_state(rel, tanks) == k.state_map["RR"].index


def test_second_piston_uses_upper_bits():
    ab = get_valve("AB")
    tanks = make_tanks(ab)
    set_psig(ab, tanks, BP=60, AR=60, QAC=70)
    assert ab.update_state(0, tanks) == ab.state_map["QA2"].index << 4


def test_release_charges_aux_and_vents_cylinder():
    k = get_valve("K")
    tanks = make_tanks(k)
    set_psig(k, tanks, BP=70, AR=60, BC=20)
    k.update_pressures(k.state_map["REL"].index, 0.1, tanks, 0)
    assert tanks[1].psig > 60
    assert tanks[0].psig < 70
    assert tanks[2].psig < 20


def test_service_fills_cylinder_from_aux():
    k = get_valve("K")
    tanks = make_tanks(k)
    set_psig(k, tanks, BP=60, AR=70, BC=0)
    k.update_pressures(k.state_map["SERV"].index, 0.1, tanks, 0)
    assert tanks[2].psig > 0
    assert tanks[1].psig < 70


def test_retainer_holds_cylinder_pressure():
    k = get_valve("K")
    tanks = make_tanks(k)
    set_psig(k, tanks, BC=10)
    k.update_pressures(k.state_map["REL"].index, 0.1, tanks, 1)
    assert tanks[2].psig == pytest.approx(10)
    k.update_pressures(k.state_map["REL"].index, 0.1, tanks, 0)
    assert tanks[2].psig < 10


def _simple_valve(**passage_options):
    valve = BrakeValve("test")
    valve.add_tank("A", 0.01)
    valve.add_tank("B", 0.01)
    valve.add_piston("A", "B")
    valve.add_state("S", "S", "S", 100, -100)
    valve.add_passage("S", "A", "B", 1e-5, **passage_options)
    valve.match_states()
    return valve


def test_oneway_passage_blocks_reverse_flow():
    valve = _simple_valve(oneway=True)
    tanks = [AirTank(0.01), AirTank(0.01)]
    tanks[0].psig, tanks[1].psig = 20, 50
    valve.update_pressures(0, 0.1, tanks, 0)
    assert tanks[0].psig == pytest.approx(20)
    assert tanks[1].psig == pytest.approx(50)


def test_max_pressure_closes_passage():
    valve = _simple_valve(max_pressure2=10)
    tanks = [AirTank(0.01), AirTank(0.01)]
    tanks[0].psig, tanks[1].psig = 50, 15
    valve.update_pressures(0, 0.1, tanks, 0)
    assert tanks[1].psig == pytest.approx(15)
    tanks[1].psig = 5
    valve.update_pressures(0, 0.1, tanks, 0)
    assert tanks[1].psig > 5


def test_unknown_tank_in_piston_raises():
    valve = BrakeValve("bad")
    valve.add_tank("A", 0.01)
    with pytest.raises(BrakeValveError):
        valve.add_piston("A", "B")


def test_state_without_piston_raises():
    with pytest.raises(BrakeValveError):
        BrakeValve("bad").add_state("S", "S", "S", 1, -1)


def test_unknown_state_or_tank_in_passage_raises():
    valve = _simple_valve()
    with pytest.raises(BrakeValveError):
        valve.add_passage("NOPE", "A", "B", 1e-5)
    with pytest.raises(BrakeValveError):
        valve.add_passage("S", "A", "C", 1e-5)


def test_match_states_with_unknown_name_raises():
    valve = BrakeValve("bad")
    valve.add_tank("A", 0.01)
    valve.add_tank("B", 0.01)
    valve.add_piston("A", "B")
    valve.add_state("S", "MISSING", "S", 1, -1)
    with pytest.raises(BrakeValveError):
        valve.match_states()
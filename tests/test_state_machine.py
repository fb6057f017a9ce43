from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from trust_car.constants import REGISTRY_VERSION
from trust_car.errors import ErrorKind, NotOwner
from trust_car.operations import AddService, GetInfo, Register, Transfer, Unknown
from trust_car.state_machine import RegistryStateMachine
from trust_car.store import RegistryStore, VehicleRecord, normalize_registration

A, B, C = "OWNER_A", "OWNER_B", "OWNER_C"


def test_register_then_duplicate_is_rejected_and_owner_kept() -> None:
    sm = RegistryStateMachine()

    first = sm.register("12D12345", A)
    assert first.is_ok
    assert first.payload == VehicleRecord(registration="12D12345", owner=A)
    assert first.render() == f"Vehicle 12D12345 registered successfully to {A}"

    again = sm.register("12D12345", B)
    assert not again.is_ok
    assert again.kind is ErrorKind.ALREADY_REGISTERED
    assert again.registration == "12D12345"
    assert again.operation == "registerVehicle"
    assert sm.get_vehicle_owner("12D12345").payload == A


def test_ownership_walkthrough() -> None:
    sm = RegistryStateMachine()
    assert sm.register("12D12345", A).is_ok
    assert sm.register("12D12345", B).kind is ErrorKind.ALREADY_REGISTERED

    wrong = sm.transfer("12D12345", C, caller=B)
    assert wrong.kind is ErrorKind.NOT_OWNER
    assert sm.get_vehicle_owner("12D12345").payload == A

    moved = sm.transfer("12D12345", C, caller=A)
    assert moved.is_ok
    assert moved.message == f"12D12345 ownership transferred to {C}"
    assert sm.get_vehicle_owner("12D12345").payload == C

    stale = sm.add_service_record("12D12345", "Oil Change at 50000km", caller=A)
    assert stale.kind is ErrorKind.NOT_OWNER
    assert stale.message == "Only owner can add service records for 12D12345"


def test_unregistered_vehicle_is_not_found_for_any_caller() -> None:
    sm = RegistryStateMachine()
    for caller in (A, B, ""):
        assert sm.transfer("24L86420", C, caller).kind is ErrorKind.NOT_FOUND
        assert sm.add_service_record("24L86420", "Brake Service", caller).kind is ErrorKind.NOT_FOUND
    assert len(sm.store) == 0


def test_service_records_count_for_owner() -> None:
    sm = RegistryStateMachine()
    sm.register("21G99999", A)

    first = sm.add_service_record("21G99999", "Oil Change at 1000km", A)
    second = sm.add_service_record("21G99999", "Tire Rotation at 2000km", A)

    assert first.message == "Service record 'Oil Change at 1000km' added for 21G99999"
    assert second.payload.service_count == 2
    assert sm.store.get("21G99999").owner == A


def test_keys_are_normalized_once_at_the_boundary() -> None:
    sm = RegistryStateMachine()
    assert sm.register(" 12d 12345 ", A).is_ok
    assert sm.register("12D12345", B).kind is ErrorKind.ALREADY_REGISTERED
    assert sm.transfer("12d12345", C, A).is_ok
    assert "12d12345" in sm.store


def test_invalid_registration_does_not_mutate() -> None:
    sm = RegistryStateMachine()
    for bad in ("", "   ", "12-D-123", "ÄB12"):
        result = sm.register(bad, A)
        assert result.kind is ErrorKind.INVALID_REGISTRATION
    assert len(sm.store) == 0


def test_get_info_and_apply_dispatch() -> None:
    sm = RegistryStateMachine()
    assert sm.get_info().payload == REGISTRY_VERSION

    assert sm.apply(Register("16WX7890"), A, confirmed_round=7).payload.registered_round == 7
    assert sm.apply(Transfer("16WX7890", B), A).is_ok
    assert sm.apply(AddService("16WX7890", "Major Service"), B).is_ok
    assert sm.apply(GetInfo(), B).message == REGISTRY_VERSION

    unknown = sm.apply(Unknown(selector="deadbeef", reason="unrecognized method selector"), A)
    assert unknown.kind is ErrorKind.DECODE_FAILURE
    assert "unrecognized method selector" in unknown.message


def test_error_result_unwraps_to_matching_exception() -> None:
    sm = RegistryStateMachine()
    sm.register("23G97531", A)
    result = sm.transfer("23G97531", C, B)

    with pytest.raises(NotOwner) as exc:
        result.unwrap()
    assert exc.value.registration == "23G97531"
    assert result.to_dict()["error"]["retryable"] is False


def test_concurrent_registration_has_exactly_one_winner() -> None:
    sm = RegistryStateMachine(RegistryStore())
    callers = [f"OWNER_{i}" for i in range(16)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda c: sm.register("13C98876", c), callers))

    winners = [r for r in results if r.is_ok]
    assert len(winners) == 1
    assert sm.get_vehicle_owner("13C98876").payload == winners[0].payload.owner
    assert sum(r.kind is ErrorKind.ALREADY_REGISTERED for r in results) == 15


def test_store_records_snapshot_is_sorted() -> None:
    store = RegistryStore()
    store.put(VehicleRecord("24G54321", A))
    store.put(VehicleRecord("12D12345", B))

    assert [r.registration for r in store.records()] == ["12D12345", "24G54321"]
    assert store.get("99Z99999") is None
    assert normalize_registration(" 24g 54321") == "24G54321"


def test_owner_and_registration_queries() -> None:
    sm = RegistryStateMachine()

    missing = sm.get_vehicle_owner("24L86420")
    assert missing.kind is ErrorKind.NOT_FOUND
    assert missing.message == "Vehicle 24L86420 not found"
    assert missing.operation == "getVehicleOwner"
    assert sm.is_vehicle_registered("24L86420").payload is False

    sm.register("24L86420", A)
    assert sm.get_vehicle_owner(" 24l86420 ").payload == A
    registered = sm.is_vehicle_registered("24l86420")
    assert registered.payload is True
    assert registered.message == "Vehicle 24L86420 is registered"

    assert sm.is_vehicle_registered("24-L").kind is ErrorKind.INVALID_REGISTRATION
    assert sm.get_vehicle_owner("").kind is ErrorKind.INVALID_REGISTRATION

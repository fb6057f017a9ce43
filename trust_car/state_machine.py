"""
Registry State Machine.

Per registration key::

    Absent --register--> Registered --transfer / addServiceRecord--> Registered

There is no way back to ``Absent``. Each entry point checks and writes under
the store lock, so an operation either applies completely or not at all.
Failures come back as error ``Result`` values, never as exceptions.
"""
from __future__ import annotations

import logging
from dataclasses import replace

from .constants import REGISTRY_VERSION
from .errors import AlreadyRegistered, DecodeFailure, NotFound, NotOwner, RegistryError, Result
from .operations import AddService, GetInfo, Operation, Register, Transfer, Unknown
from .store import RegistryStore, VehicleRecord, normalize_registration

logger = logging.getLogger(__name__)


class RegistryStateMachine:
    """Validates and applies registry operations against a ``RegistryStore``.

    Authorization policy: only the current owner may transfer a vehicle or
    log a service record against it.
    """

    def __init__(self, store: RegistryStore | None = None, version: str = REGISTRY_VERSION):
        self.store = store if store is not None else RegistryStore()
        self.version = version

    # ── Entry points ─────────────────────────────────────────────────────────

    def register(self, registration: str, caller: str, confirmed_round: int | None = None) -> Result[VehicleRecord]:
        try:
            key = normalize_registration(registration)
            with self.store.lock:
                if self.store.get(key) is not None:
                    raise AlreadyRegistered(f"Vehicle {key} is already registered", key, Register.method)
                record = VehicleRecord(registration=key, owner=caller, registered_round=confirmed_round)
                self.store.put(record)
        except RegistryError as e:
            return self._failed(e, Register.method)
        logger.info(f"[REGISTRY] {key} registered to {caller}")
        return Result.ok(record, f"Vehicle {key} registered successfully to {caller}")

    def transfer(self, registration: str, new_owner: str, caller: str) -> Result[VehicleRecord]:
        try:
            key = normalize_registration(registration)
            with self.store.lock:
                current = self._owned_by(key, caller, Transfer.method, "Only owner can transfer")
                record = replace(current, owner=new_owner)
                self.store.put(record)
        except RegistryError as e:
            return self._failed(e, Transfer.method)
        logger.info(f"[REGISTRY] {key} transferred {caller} -> {new_owner}")
        return Result.ok(record, f"{key} ownership transferred to {new_owner}")

    def add_service_record(self, registration: str, service_details: str, caller: str) -> Result[VehicleRecord]:
        try:
            key = normalize_registration(registration)
            with self.store.lock:
                current = self._owned_by(key, caller, AddService.method, "Only owner can add service records for")
                record = replace(current, service_count=current.service_count + 1)
                self.store.put(record)
        except RegistryError as e:
            return self._failed(e, AddService.method)
        logger.info(f"[REGISTRY] {key} service #{record.service_count}: {service_details}")
        return Result.ok(record, f"Service record '{service_details}' added for {key}")

    def get_info(self) -> Result[str]:
        return Result.ok(self.version, self.version)

    def get_vehicle_owner(self, registration: str) -> Result[str]:
        try:
            key = normalize_registration(registration)
            record = self.store.get(key)
            if record is None:
                raise NotFound(f"Vehicle {key} not found", key, "getVehicleOwner")
        except RegistryError as e:
            e.operation = e.operation or "getVehicleOwner"
            return e.to_result()
        return Result.ok(record.owner, record.owner)

    def is_vehicle_registered(self, registration: str) -> Result[bool]:
        try:
            key = normalize_registration(registration)
        except RegistryError as e:
            e.operation = "isVehicleRegistered"
            return e.to_result()
        registered = key in self.store
        return Result.ok(registered, f"Vehicle {key} is {'' if registered else 'not '}registered")

    def apply(self, operation: Operation, caller: str, confirmed_round: int | None = None) -> Result:
        """Dispatch a decoded operation to its entry point."""
        if isinstance(operation, Register):
            return self.register(operation.registration, caller, confirmed_round)
        if isinstance(operation, Transfer):
            return self.transfer(operation.registration, operation.new_owner, caller)
        if isinstance(operation, AddService):
            return self.add_service_record(operation.registration, operation.service_details, caller)
        if isinstance(operation, GetInfo):
            return self.get_info()
        reason = operation.reason if isinstance(operation, Unknown) else type(operation).__name__
        return DecodeFailure(f"Cannot apply call: {reason}", operation=Unknown.method).to_result()

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _owned_by(self, key: str, caller: str, operation: str, denial: str) -> VehicleRecord:
        record = self.store.get(key)
        if record is None:
            raise NotFound(f"Vehicle {key} not found", key, operation)
        if record.owner != caller:
            raise NotOwner(f"{denial} {key}", key, operation)
        return record

    @staticmethod
    def _failed(error: RegistryError, operation: str) -> Result:
        if error.operation is None:
            error.operation = operation
        logger.info(f"[REGISTRY] {operation} rejected: {error.message}")
        return error.to_result()

"""Vehicle static-data lookup (make, model, year...) over the registry API."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

import requests

from .errors import LookupFailed, NotFound, RegistryError, Result
from .store import normalize_registration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleData:
    registration: str
    vin: str = ""
    make: str = ""
    model: str = ""
    year: int | None = None
    color: str = ""
    fuel_type: str = ""
    engine_size: str = ""
    image_url: str | None = None
    thumbnail_url: str | None = None
    owner: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "VehicleData":
        year = data.get("year")
        return cls(
            registration=str(data.get("registration", "")),
            vin=data.get("vin", ""),
            make=data.get("make", ""),
            model=data.get("model", ""),
            year=int(year) if year not in (None, "") else None,
            color=data.get("color", ""),
            fuel_type=data.get("fuelType", ""),
            engine_size=data.get("engineSize", ""),
            image_url=data.get("imageUrl"),
            thumbnail_url=data.get("thumbnailUrl"),
            owner=dict(data.get("owner") or {}),
        )

    def to_dict(self) -> dict:
        return asdict(self)


class VehicleLookup:
    def __init__(self, base_url: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def search(self, registration: str) -> Result[VehicleData]:
        try:
            key = normalize_registration(registration)
            return Result.ok(self._fetch(key), f"Vehicle {key} found")
        except RegistryError as e:
            e.operation = e.operation or "lookup"
            return e.to_result()

    def _fetch(self, key: str) -> VehicleData:
        try:
            resp = self.session.get(f"{self.base_url}/api/vehicles/{key}", timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"[LOOKUP] {key}: {e}")
            raise LookupFailed(f"Vehicle lookup unavailable: {e}", key) from e

        if resp.status_code == 404:
            raise NotFound(f"Vehicle {key} not found", key)
        try:
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise LookupFailed(f"Vehicle lookup failed ({resp.status_code}): {e}", key) from e

        if not isinstance(body, dict) or not body.get("success") or not isinstance(body.get("data"), dict):
            message = body.get("message") if isinstance(body, dict) else None
            raise NotFound(message or f"Vehicle {key} not found", key)
        try:
            return VehicleData.from_api(body["data"])
        except (TypeError, ValueError) as e:
            raise LookupFailed(f"Vehicle lookup returned malformed data: {e}", key) from e

"""
TrustCar HTTP API.

Every route answers with a serialized ``Result`` (``{"ok": true, "data": ...}``
or ``{"ok": false, "error": {...}}``); the UI only renders it.

With ``TRUSTCAR_LOCAL_LEDGER=1`` the API hosts a ``LocalLedger`` and accepts
register / transfer / service calls itself. Otherwise calls are signed and
submitted from the browser wallet and the API only serves reads.
"""
from __future__ import annotations

import logging

import requests
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import Settings
from .constants import application_url, format_service_details
from .errors import ErrorKind, LookupFailed, Result, SubmissionFailed
from .history import HistoryReconstructor
from .indexer import IndexerSource
from .ledger import LocalLedger
from .lookup import VehicleLookup
from .operations import AddService, Register, Transfer
from .state_machine import RegistryStateMachine

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.ALREADY_REGISTERED: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NOT_OWNER: 403,
    ErrorKind.INVALID_REGISTRATION: 400,
    ErrorKind.DECODE_FAILURE: 400,
    ErrorKind.HISTORY_SOURCE_UNAVAILABLE: 503,
    ErrorKind.SCAN_CANCELLED: 503,
    ErrorKind.LOOKUP_FAILED: 502,
    ErrorKind.SUBMISSION_FAILED: 502,
}


class RegisterRequest(BaseModel):
    registration: str
    sender: str


class TransferRequest(BaseModel):
    sender: str
    new_owner: str


class ServiceRequest(BaseModel):
    sender: str
    service_type: str
    mileage_km: int | None = None
    condition: str | None = None


def respond(result: Result, success_status: int = 200) -> JSONResponse:
    status = success_status if result.is_ok else STATUS_BY_KIND.get(result.kind, 400)
    return JSONResponse(result.to_dict(), status_code=status)


def create_app(
    settings: Settings | None = None,
    *,
    ledger: LocalLedger | None = None,
    reconstructor: HistoryReconstructor | None = None,
    lookup: VehicleLookup | None = None,
    session: requests.Session | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    session = session or requests.Session()

    if ledger is None and settings.local_ledger:
        ledger = LocalLedger(application_id=settings.app_id)
    if reconstructor is None:
        source = ledger if ledger is not None else IndexerSource(
            settings.indexer_url, settings.indexer_token, settings.request_timeout, session=session)
        reconstructor = HistoryReconstructor(
            source,
            settings.app_id,
            page_limit=settings.page_limit,
            scan_timeout=settings.scan_timeout,
        )
    lookup = lookup or VehicleLookup(settings.api_base_url, settings.request_timeout, session=session)
    state_machine = ledger.state_machine if ledger is not None else RegistryStateMachine()

    app = FastAPI(title="TrustCar Vehicle Registry API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def submit(operation, sender: str) -> JSONResponse:
        if ledger is None:
            disabled = SubmissionFailed(
                "Local ledger disabled: sign and submit this call from your wallet",
                getattr(operation, "registration", None), operation.method)
            return JSONResponse(disabled.to_result().to_dict(), status_code=501)
        return respond(ledger.call(operation, sender), success_status=201)

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "message": "TrustCar Vehicle Registry API is running",
            "app_id": settings.app_id,
            "network": "local" if ledger is not None else settings.network,
            "explorer": application_url(settings.app_id, settings.network),
            "endpoints": ["/info", "/history/{registration}", "/vehicles/{registration}", "/vehicles/{registration}/owner",
                          "/vehicles/{registration}/registered", "/algod/params"],
        }

    @app.get("/info")
    async def info():
        return respond(state_machine.get_info())

    @app.get("/history/{registration}")
    def history(registration: str):
        return respond(reconstructor.fetch(registration))

    @app.get("/vehicles/{registration}/owner")
    def vehicle_owner(registration: str):
        if ledger is None:
            disabled = LookupFailed(
                "Local ledger disabled: read the owner from the deployed application",
                registration, "getVehicleOwner")
            return JSONResponse(disabled.to_result().to_dict(), status_code=501)
        return respond(state_machine.get_vehicle_owner(registration))

    @app.get("/vehicles/{registration}/registered")
    def vehicle_registered(registration: str):
        if ledger is None:
            disabled = LookupFailed(
                "Local ledger disabled: query the deployed application instead",
                registration, "isVehicleRegistered")
            return JSONResponse(disabled.to_result().to_dict(), status_code=501)
        return respond(state_machine.is_vehicle_registered(registration))

    @app.get("/vehicles/{registration}")
    def vehicle(registration: str):
        return respond(lookup.search(registration))

    @app.post("/vehicles")
    def register_vehicle(body: RegisterRequest):
        return submit(Register(body.registration), body.sender)

    @app.post("/vehicles/{registration}/transfer")
    def transfer_ownership(registration: str, body: TransferRequest):
        return submit(Transfer(registration, body.new_owner), body.sender)

    @app.post("/vehicles/{registration}/service")
    def add_service_record(registration: str, body: ServiceRequest):
        if body.mileage_km is None:
            details = body.service_type.strip()
        else:
            details = format_service_details(body.service_type, body.mileage_km, body.condition)
        return submit(AddService(registration, details), body.sender)

    @app.get("/algod/params")
    def algod_params():
        """Proxy: suggested transaction params from algod (avoids browser CORS/403)."""
        headers = {"X-Algo-API-Token": settings.algod_token} if settings.algod_token else {}
        try:
            r = session.get(f"{settings.algod_url.rstrip('/')}/v2/transactions/params",
                            headers=headers, timeout=settings.request_timeout)
            r.raise_for_status()
            return r.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"[ALGOD] params proxy failed: {e}")
            return JSONResponse({"error": str(e)}, status_code=502)

    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    uvicorn.run("trust_car.api:create_app", factory=True, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()

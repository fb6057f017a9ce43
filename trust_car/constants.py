# ── Network defaults (AlgoNode public Testnet endpoints) ─────────────────────
DEFAULT_ALGOD_URL = "https://testnet-api.algonode.cloud"
DEFAULT_INDEXER_URL = "https://testnet-idx.algonode.cloud"
DEFAULT_API_BASE_URL = "https://irish-vehicle-registry-api.vercel.app"
DEFAULT_APP_ID = 741037215   # IrishVehicleRegistry App ID on Testnet

REGISTRY_VERSION = "Irish Vehicle Registry v2.0 - Enhanced with State Storage"

TRANSACTION_WAIT_ROUNDS = 4
INDEXER_PAGE_LIMIT = 1000

LORA_BASE_URL = "https://lora.algokit.io"

SERVICE_TYPES = (
    ("oil-change", "Oil Change"),
    ("tire-rotation", "Tire Rotation"),
    ("brake-service", "Brake Service"),
    ("general-maintenance", "General Maintenance"),
    ("major-service", "Major Service"),
)


def format_service_details(service_type: str, mileage_km: int, condition: str | None = None) -> str:
    """Build the free-text service description stored on-chain.

    ``service_type`` may be one of the ``SERVICE_TYPES`` slugs, in which case the
    label is used, or any free text.
    """
    label = dict(SERVICE_TYPES).get(service_type, service_type.strip())
    details = f"{label} at {int(mileage_km)}km"
    if condition and condition.strip():
        details += f" - Condition: {condition.strip()}"
    return details


def transaction_url(tx_id: str, network: str = "testnet") -> str:
    return f"{LORA_BASE_URL}/{network}/transaction/{tx_id}"


def application_url(app_id: int, network: str = "testnet") -> str:
    return f"{LORA_BASE_URL}/{network}/application/{app_id}"

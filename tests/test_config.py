from __future__ import annotations

import pytest

from trust_car.config import Settings
from trust_car.constants import DEFAULT_APP_ID, DEFAULT_INDEXER_URL, format_service_details, transaction_url


def test_defaults_from_empty_environment() -> None:
    settings = Settings.from_env({})
    assert settings == Settings()
    assert settings.app_id == DEFAULT_APP_ID
    assert settings.indexer_url == DEFAULT_INDEXER_URL
    assert settings.local_ledger is False


def test_values_are_parsed() -> None:
    settings = Settings.from_env({
        "TRUSTCAR_APP_ID": "1001",
        "TRUSTCAR_REQUEST_TIMEOUT": "2.5",
        "TRUSTCAR_PAGE_LIMIT": "50",
        "TRUSTCAR_LOCAL_LEDGER": "yes",
        "TRUSTCAR_NETWORK": "localnet",
    })
    assert settings.app_id == 1001
    assert settings.request_timeout == 2.5
    assert settings.page_limit == 50
    assert settings.local_ledger is True
    assert settings.network == "localnet"


@pytest.mark.parametrize("name,value", [
    ("TRUSTCAR_APP_ID", "abc"),
    ("TRUSTCAR_SCAN_TIMEOUT", "-1"),
    ("TRUSTCAR_SCAN_TIMEOUT", "0"),
    ("TRUSTCAR_PAGE_LIMIT", "0"),
    ("TRUSTCAR_REQUEST_TIMEOUT", "0"),
])
def test_bad_values_name_the_variable(name, value) -> None:
    with pytest.raises(ValueError, match=name):
        Settings.from_env({name: value})


def test_dotenv_file_is_loaded(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("TRUSTCAR_APP_ID", "0")
    monkeypatch.delenv("TRUSTCAR_APP_ID")
    env_file = tmp_path / ".env"
    env_file.write_text("TRUSTCAR_APP_ID=4242\n")

    assert Settings.from_env(dotenv_path=env_file).app_id == 4242


def test_service_details_and_links() -> None:
    assert format_service_details("oil-change", 50000) == "Oil Change at 50000km"
    assert format_service_details("Timing belt", 120000, " Good ") == "Timing belt at 120000km - Condition: Good"
    assert transaction_url("TX1") == "https://lora.algokit.io/testnet/transaction/TX1"

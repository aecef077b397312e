import pytest

from secret_vault.vault.clipboard import MemoryClipboard
from secret_vault.vault.config import VaultConfig
from secret_vault.vault.lifecycle import SecretVault
from secret_vault.vault.store import MemoryRecordStore

PEPPER_V1 = bytes(range(32))
PEPPER_V2 = bytes(range(32, 64))


@pytest.fixture
def config():
    """Vault config with two pepper versions, v1 active."""
    return VaultConfig(
        peppers={1: PEPPER_V1, 2: PEPPER_V2},
        active_pepper_id=1,
    )


@pytest.fixture
def store():
    return MemoryRecordStore()


@pytest.fixture
def clipboard():
    return MemoryClipboard()


@pytest.fixture
def vault(store, config, clipboard):
    return SecretVault("user-123", store, config, clipboard=clipboard)

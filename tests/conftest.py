import pytest

from lockbox.vault import VaultConfig, VaultEngine

MASTER = "Secret123!"


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temp dir with a cheap KDF work factor."""
    return VaultConfig(home=tmp_path / "lockbox", kdf_iterations=1_000)


@pytest.fixture
def vault_path(config):
    return config.vault_path


@pytest.fixture
def vault(vault_path, config):
    """A freshly initialized, unlocked vault."""
    engine = VaultEngine.init(vault_path, MASTER, config)
    yield engine
    engine.close()

"""Shared test fixtures for triton-machine-driver."""

from __future__ import annotations

import base64
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from triton_driver.models import DriverConfig, HostIdentity, ImageCatalogEntry, InstanceRecord, PackageInfo


@pytest.fixture(scope="session")
def rsa_key_pem() -> bytes:
    """A throwaway unencrypted RSA key in traditional PEM form."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture
def key_file(tmp_path, rsa_key_pem):
    path = tmp_path / "id_rsa"
    path.write_bytes(rsa_key_pem)
    return path


@pytest.fixture
def key_material(rsa_key_pem) -> str:
    return base64.b64encode(rsa_key_pem).decode("ascii")


@pytest.fixture
def driver_config(key_file) -> DriverConfig:
    """Return a minimal DriverConfig with sensible defaults."""
    return DriverConfig(
        account="alice",
        key_id="aa:bb:cc:dd:ee:ff:00:11:22:33:44:55:66:77:88:99",
        key_path=str(key_file),
        url="https://cloudapi.example.com",
        image="debian-8",
        package="k4-highcpu-kvm-250M",
    )


@pytest.fixture
def identity(tmp_path) -> HostIdentity:
    return HostIdentity(machine_name="test-machine", store_path=tmp_path / "store")


@pytest.fixture
def fake_client():
    """A CloudAPIClient stand-in with a tiny catalog."""
    client = MagicMock()
    client.ping.return_value = {"ping": "pong"}
    client.get_image.return_value = ImageCatalogEntry(
        id="aaa-111", name="debian-8", version="20150702", published_at="2015-07-02T15:53:12Z"
    )
    client.list_images.return_value = []
    client.get_package.return_value = PackageInfo(id="pkg-1", name="k4-highcpu-kvm-250M", memory=256, vcpus=1)
    client.create_instance.return_value = InstanceRecord(id="inst-1", name="test-machine", state="provisioning")
    client.get_instance.return_value = InstanceRecord(
        id="inst-1", name="test-machine", primary_ip="10.0.0.5", state="running"
    )
    return client


# All environment variables that build_config() reads; used to ensure a clean slate.
_CONFIG_ENV_VARS = [
    "SDC_URL",
    "SDC_ACCOUNT",
    "SDC_KEY_ID",
    "SDC_KEY_PATH",
    "SDC_SSH_USER",
    "MACHINE_STORAGE_PATH",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Clear all environment variables that build_config() reads."""
    for key in _CONFIG_ENV_VARS:
        monkeypatch.delenv(key, raising=False)

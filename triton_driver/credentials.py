"""Credential loading and HTTP Signature request signing."""

from __future__ import annotations

import base64
import binascii
from email.utils import formatdate
from pathlib import Path
from typing import Tuple

import requests
from requests.auth import AuthBase

try:
    from cryptography.exceptions import UnsupportedAlgorithm
    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
except ImportError as exc:  # pragma: no cover
    raise SystemExit("cryptography is required but not installed") from exc

from triton_driver.constants import ENV_PREFIX, FLAG_PREFIX
from triton_driver.exceptions import ConfigurationError, ConnectivityError
from triton_driver.models import DriverConfig
from triton_driver.utils import log

_EC_HASHES = {
    "secp256r1": ("ecdsa-sha256", hashes.SHA256),
    "secp384r1": ("ecdsa-sha384", hashes.SHA384),
    "secp521r1": ("ecdsa-sha512", hashes.SHA512),
}


def decode_key_material(encoded: str) -> str:
    """Decode the base64 ``--triton-key-material`` value.

    Line-wrapped values such as the output of ``base64 id_rsa`` are accepted.
    """
    try:
        return base64.b64decode("".join(encoded.split()), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise ConfigurationError(f"failed to base64 decode --{FLAG_PREFIX}key-material") from None


def read_key_file(key_path: str) -> bytes:
    """Read an unencrypted private key from ``key_path``."""
    path = Path(key_path).expanduser()
    if not path.exists():
        raise ConnectivityError(f"error locating key path from {key_path}: no such file")
    try:
        key_bytes = path.read_bytes()
    except OSError as exc:
        raise ConnectivityError(f"error reading key material from {key_path}: {exc}") from exc
    if b"-----BEGIN " not in key_bytes or b"PRIVATE KEY-----" not in key_bytes:
        raise ConnectivityError(f"failed to read key material '{key_path}': no key found")
    if b"Proc-Type: 4,ENCRYPTED" in key_bytes:
        raise ConnectivityError(
            f"failed to read key '{key_path}': password protected keys are\n"
            "not currently supported. Please decrypt the key prior to use."
        )
    return key_bytes


def _load_private_key(key_bytes: bytes):
    try:
        if b"BEGIN OPENSSH PRIVATE KEY" in key_bytes:
            return serialization.load_ssh_private_key(key_bytes, password=None)
        return serialization.load_pem_private_key(key_bytes, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise ConnectivityError(f"error creating SSH private key signer: {exc}") from exc


class HTTPSignatureAuth(AuthBase):
    """Sign the ``Date`` header of each request with the account's SSH key."""

    def __init__(self, account: str, key_id: str, key_bytes: bytes) -> None:
        self.account = account
        self.key_id = key_id
        self._key = _load_private_key(key_bytes)
        self.algorithm, self._sign = self._signer_for(self._key)

    @staticmethod
    def _signer_for(key) -> Tuple[str, object]:
        if isinstance(key, rsa.RSAPrivateKey):
            return "rsa-sha256", lambda data: key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        if isinstance(key, ec.EllipticCurvePrivateKey):
            try:
                algorithm, digest = _EC_HASHES[key.curve.name]
            except KeyError:
                raise ConnectivityError(f"unsupported ECDSA curve: {key.curve.name}") from None
            return algorithm, lambda data: key.sign(data, ec.ECDSA(digest()))
        raise ConnectivityError(f"unsupported private key type: {type(key).__name__}")

    @property
    def key_path(self) -> str:
        return f"/{self.account}/keys/{self.key_id}"

    def signature_header(self, date: str) -> str:
        try:
            raw = self._sign(f"date: {date}".encode("utf-8"))  # type: ignore[operator]
        except (ValueError, TypeError) as exc:
            raise ConnectivityError(f"error signing request: {exc}") from exc
        signature = base64.b64encode(raw).decode("ascii")
        return (
            f'Signature keyId="{self.key_path}",algorithm="{self.algorithm}",'
            f'headers="date",signature="{signature}"'
        )

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        date = formatdate(usegmt=True)
        request.headers["Date"] = date
        request.headers["Authorization"] = self.signature_header(date)
        return request


def build_signer(config: DriverConfig) -> HTTPSignatureAuth:
    """Create the request signer from inline key material or a key path."""
    if config.key_material:
        key_bytes = decode_key_material(config.key_material).encode("utf-8")
    elif config.key_path:
        key_bytes = read_key_file(config.key_path)
    else:
        raise ConfigurationError(
            f"triton driver requires --{FLAG_PREFIX}key-path/{ENV_PREFIX}KEY_PATH or --{FLAG_PREFIX}key-material "
            "(SSH agent signing is not supported)"
        )
    log("DEBUG", f"signing requests as /{config.account}/keys/{config.key_id}")
    return HTTPSignatureAuth(config.account, config.key_id, key_bytes)

"""Minimal Triton CloudAPI client built on requests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

import requests
from requests.auth import AuthBase

from triton_driver.constants import API_VERSION, REQUEST_TIMEOUT, USER_AGENT
from triton_driver.credentials import build_signer
from triton_driver.exceptions import (
    ConnectivityError,
    ImageNotFoundError,
    PackageNotFoundError,
    RemoteOperationError,
    ResolutionError,
)
from triton_driver.models import DriverConfig, ImageCatalogEntry, InstanceRecord, PackageInfo
from triton_driver.utils import log


class CloudAPIClient:
    """Wrapper around the subset of CloudAPI the driver needs."""

    def __init__(
        self,
        url: str,
        account: str,
        auth: Optional[AuthBase] = None,
        timeout: int = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = url.rstrip("/")
        self.account = account
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = auth
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Accept-Version": API_VERSION,
                "User-Agent": USER_AGENT,
            }
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        not_found: Optional[Type[ResolutionError]] = None,
        reference: str = "",
    ) -> Any:
        url = f"{self.base_url}{path}"
        log("DEBUG", f"{method} {url}")
        try:
            resp = self.session.request(method, url, params=params, json=json_body, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise ConnectivityError(f"HTTP error contacting {self.base_url}: {exc}") from exc

        if resp.status_code >= 400:
            try:
                data = resp.json()
            except ValueError:
                data = {"message": resp.text[:500]}
            if not isinstance(data, dict):
                data = {"message": str(data)}
            code = data.get("code")
            message = data.get("message") or resp.reason or "request failed"
            if not_found is not None and (resp.status_code == 404 or code == "ResourceNotFound"):
                raise not_found(reference, message)
            raise RemoteOperationError(
                f"CloudAPI error ({resp.status_code}): {message}",
                status_code=resp.status_code,
                code=code,
            )

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteOperationError(
                f"CloudAPI returned non-JSON payload for {method} {path}", status_code=resp.status_code
            ) from exc

    def ping(self) -> Dict[str, Any]:
        data = self._request("GET", "/--ping")
        return data or {}

    def get_image(self, image_id: str) -> ImageCatalogEntry:
        data = self._request(
            "GET",
            f"/{self.account}/images/{image_id}",
            not_found=ImageNotFoundError,
            reference=image_id,
        )
        return ImageCatalogEntry.from_api(data or {})

    def list_images(self, state: str = "all", name: Optional[str] = None, version: Optional[str] = None) -> List[ImageCatalogEntry]:
        params = {"state": state}
        if name:
            params["name"] = name
        if version:
            params["version"] = version
        data = self._request("GET", f"/{self.account}/images", params=params)
        return [ImageCatalogEntry.from_api(item) for item in data or []]

    def get_package(self, reference: str) -> PackageInfo:
        data = self._request(
            "GET",
            f"/{self.account}/packages/{reference}",
            not_found=PackageNotFoundError,
            reference=reference,
        )
        return PackageInfo.from_api(data or {})

    def create_instance(self, name: str, image: str, package: str) -> InstanceRecord:
        body = {"name": name, "image": image, "package": package}
        data = self._request("POST", f"/{self.account}/machines", json_body=body)
        return InstanceRecord.from_api(data or {})

    def get_instance(self, instance_id: str) -> InstanceRecord:
        data = self._request("GET", f"/{self.account}/machines/{instance_id}")
        return InstanceRecord.from_api(data or {})

    def _action(self, instance_id: str, action: str) -> None:
        self._request("POST", f"/{self.account}/machines/{instance_id}", params={"action": action})

    def start_instance(self, instance_id: str) -> None:
        self._action(instance_id, "start")

    def stop_instance(self, instance_id: str) -> None:
        self._action(instance_id, "stop")

    def reboot_instance(self, instance_id: str) -> None:
        self._action(instance_id, "reboot")

    def delete_instance(self, instance_id: str) -> None:
        self._request("DELETE", f"/{self.account}/machines/{instance_id}")


def build_client(config: DriverConfig) -> CloudAPIClient:
    """Create an authenticated client for ``config``."""
    return CloudAPIClient(config.url, config.account, auth=build_signer(config))

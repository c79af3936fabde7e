"""Lifecycle controller for a single Triton instance."""

from __future__ import annotations

import os
from typing import Callable

from triton_driver.client import CloudAPIClient, build_client
from triton_driver.constants import (
    DOCKER_ENGINE_PORT,
    DRIVER_NAME,
    IP_WAIT_ATTEMPTS,
    IP_WAIT_INTERVAL,
    SSH_KEY_FILE_TEMPLATE,
)
from triton_driver.credentials import decode_key_material
from triton_driver.exceptions import AddressTimeoutError, DriverError
from triton_driver.models import DriverConfig, HostIdentity, InstanceRecord, LifecycleState
from triton_driver.resolver import resolve_image, validate_package
from triton_driver.state import map_state
from triton_driver.utils import ensure_directory, log, wait_for

ClientFactory = Callable[[DriverConfig], CloudAPIClient]


class Driver:
    """Provision and control one instance through CloudAPI.

    Calls against the same instance must be serialized by the caller; the
    driver keeps no locks.
    """

    def __init__(
        self,
        config: DriverConfig,
        identity: HostIdentity,
        client_factory: ClientFactory = build_client,
        ip_wait_attempts: int = IP_WAIT_ATTEMPTS,
        ip_wait_interval: float = IP_WAIT_INTERVAL,
    ) -> None:
        self.config = config
        self.identity = identity
        self._client_factory = client_factory
        self.ip_wait_attempts = ip_wait_attempts
        self.ip_wait_interval = ip_wait_interval
        self.ip_address = ""
        self._ssh_key_path = identity.ssh_key_path
        self._image_resolved = False

    def driver_name(self) -> str:
        return DRIVER_NAME

    @property
    def machine_id(self) -> str:
        return self.config.machine_id

    def client(self) -> CloudAPIClient:
        return self._client_factory(self.config)

    def _require_machine_id(self) -> str:
        if not self.config.machine_id:
            raise DriverError(f"Machine '{self.identity.machine_name}' has no Triton instance id")
        return self.config.machine_id

    def _get_machine(self) -> InstanceRecord:
        machine = self.client().get_instance(self._require_machine_id())
        log("DEBUG", f"machine name: {machine.name}")
        # the address is known now, keep it for later calls
        self.ip_address = machine.primary_ip
        return machine

    def pre_create_check(self) -> None:
        """Verify connectivity and normalize the image and package references."""
        c = self.client()
        c.ping()

        self.config.image = resolve_image(self.config.image, c.get_image, c.list_images)
        self._image_resolved = True
        # GetPackage and CreateMachine both accept package names and ids
        validate_package(self.config.package, c.get_package)

    def create(self, wait: bool = True) -> str:
        """Create the instance and return its id."""
        if self.config.machine_id:
            raise DriverError(
                f"Machine '{self.identity.machine_name}' already has Triton instance {self.config.machine_id}"
            )
        c = self.client()

        # Write inline key material to the store so the host can SSH in later.
        if self.config.key_material:
            log("INFO", "creating SSH key...")
            self._create_ssh_key()

        if not self._image_resolved:
            self.config.image = resolve_image(self.config.image, c.get_image, c.list_images)
            self._image_resolved = True

        machine = c.create_instance(self.identity.machine_name, self.config.image, self.config.package)
        if not machine.id:
            raise DriverError("CloudAPI did not return an instance id")
        self.config.machine_id = machine.id
        log("SUCCESS", f"Created Triton instance {machine.id}")

        if wait:
            log("INFO", "waiting for ip address to become available")
            self.wait_for_ip()
        return machine.id

    def _instance_ip_available(self) -> bool:
        try:
            ip = self.get_ip()
        except DriverError as exc:
            log("DEBUG", str(exc))
            return False
        if ip:
            self.ip_address = ip
            log("INFO", f"got the IP Address: {ip!r}")
            return True
        return False

    def wait_for_ip(self) -> str:
        if not wait_for(self._instance_ip_available, self.ip_wait_attempts, self.ip_wait_interval):
            raise AddressTimeoutError(self.ip_wait_attempts)
        return self.ip_address

    def get_ip(self) -> str:
        if self.ip_address:
            return self.ip_address
        return self._get_machine().primary_ip

    def get_ssh_hostname(self) -> str:
        return self.get_ip()

    def get_url(self) -> str:
        """Return a Docker compatible host URL, e.g. ``tcp://1.2.3.4:2376``."""
        current = self.get_state()
        if current is not LifecycleState.RUNNING:
            raise DriverError(f"Host is not running (state: {current})")
        return f"tcp://{self.get_ip()}:{DOCKER_ENGINE_PORT}"

    def get_state(self) -> LifecycleState:
        return map_state(self._get_machine().state)

    def get_ssh_key_path(self) -> str:
        if self._ssh_key_path:
            return self._ssh_key_path
        if self.config.key_material:
            key_path = str(self.identity.resolve_store_path(SSH_KEY_FILE_TEMPLATE.format(account=self.config.account)))
        else:
            key_path = self.config.key_path
        self._ssh_key_path = key_path
        return key_path

    def _create_ssh_key(self) -> None:
        key_path = self.get_ssh_key_path()
        if os.path.exists(key_path):
            return
        ensure_directory(self.identity.machine_dir)
        material = decode_key_material(self.config.key_material)
        fd = os.open(key_path, os.O_APPEND | os.O_CREAT | os.O_WRONLY, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(material)
            f.write("\n")

    def start(self) -> None:
        self.client().start_instance(self._require_machine_id())

    def stop(self) -> None:
        self.client().stop_instance(self._require_machine_id())

    def restart(self) -> None:
        self.client().reboot_instance(self._require_machine_id())

    def kill(self) -> None:
        # CloudAPI has no forceful stop
        self.stop()

    def remove(self) -> None:
        self.client().delete_instance(self._require_machine_id())
        self.config.machine_id = ""
        self.ip_address = ""

"""Data models for triton-machine-driver."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional


class LifecycleState(enum.Enum):
    """Abstract instance state understood by the host orchestrator."""

    STARTING = "Starting"
    RUNNING = "Running"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    ERROR = "Error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ImageCatalogEntry:
    id: str
    name: str
    version: str
    published_at: str  # RFC 3339, parsed only when breaking ties

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ImageCatalogEntry":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            version=data.get("version", ""),
            published_at=data.get("published_at", ""),
        )


@dataclass(frozen=True)
class PackageInfo:
    id: str
    name: str
    memory: int = 0  # MiB
    disk: int = 0  # MiB
    vcpus: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PackageInfo":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            memory=int(data.get("memory") or 0),
            disk=int(data.get("disk") or 0),
            vcpus=int(data.get("vcpus") or 0),
        )


@dataclass
class InstanceRecord:
    id: str = ""
    name: str = ""
    primary_ip: str = ""
    state: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "InstanceRecord":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            primary_ip=data.get("primaryIp") or "",
            state=data.get("state", ""),
        )


@dataclass(frozen=True)
class HostIdentity:
    """The generic managed-host identity handed over by the orchestrator."""

    machine_name: str
    store_path: Path
    ssh_user: str = "root"
    ssh_key_path: str = ""

    @property
    def machine_dir(self) -> Path:
        return self.store_path / "machines" / self.machine_name

    def resolve_store_path(self, file_name: str) -> Path:
        return self.machine_dir / file_name


@dataclass
class DriverConfig:
    account: str
    key_id: str
    url: str
    image: str
    package: str
    key_path: str = ""
    # base64 encoded, as supplied on the command line
    key_material: str = ""
    ssh_user: str = "root"
    machine_id: str = ""

    def to_record(self) -> Dict[str, str]:
        return {
            "account": self.account,
            "key_id": self.key_id,
            "key_path": self.key_path,
            "key_material": self.key_material,
            "url": self.url,
            "image": self.image,
            "package": self.package,
            "ssh_user": self.ssh_user,
            "machine_id": self.machine_id,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "DriverConfig":
        def field(name: str) -> str:
            value: Optional[Any] = record.get(name)
            return "" if value is None else str(value)

        return cls(
            account=field("account"),
            key_id=field("key_id"),
            key_path=field("key_path"),
            key_material=field("key_material"),
            url=field("url"),
            image=field("image"),
            package=field("package"),
            ssh_user=field("ssh_user") or "root",
            machine_id=field("machine_id"),
        )

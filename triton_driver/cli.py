"""CLI entry points for triton-machine-driver."""

from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path
from typing import Dict, List, Optional

from triton_driver.config import OPTIONS, build_config, config_path, load_config, save_config
from triton_driver.constants import _SENSITIVE_FIELDS, FLAG_PREFIX
from triton_driver.driver import Driver
from triton_driver.exceptions import DriverError, UnknownStateError
from triton_driver.models import DriverConfig, HostIdentity
from triton_driver.utils import get_env, log, remove_directory

DEFAULT_STORE_PATH = "~/.triton-machine"

_CREATE_COMMANDS = {"precheck", "create"}


def show_config(cfg: DriverConfig) -> None:
    """Print the driver configuration with secrets masked."""
    for field in dataclasses.fields(cfg):
        value = getattr(cfg, field.name)
        if field.name in _SENSITIVE_FIELDS and value:
            print(f"  {field.name}: ********")
        else:
            print(f"  {field.name}: {value}")


def _flag_options(args: argparse.Namespace) -> Dict[str, Optional[str]]:
    return {name: getattr(args, name.replace("-", "_")) for name in OPTIONS}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Triton CloudAPI machine driver")
    parser.add_argument(
        "command",
        choices=["precheck", "create", "ip", "state", "url", "start", "stop", "restart", "kill", "rm", "show-config"],
    )
    parser.add_argument("machine_name", help="Name of the managed machine")
    parser.add_argument(
        "--store-path",
        default=None,
        help=f"Directory holding per-machine state (env MACHINE_STORAGE_PATH, default {DEFAULT_STORE_PATH})",
    )
    parser.add_argument("--no-wait", action="store_true", help="Do not wait for an IP address after create")
    for name, (env_var, default, usage) in OPTIONS.items():
        suffix = f" (env {env_var}, default {default!r})" if env_var else f" (default {default!r})"
        parser.add_argument(f"--{FLAG_PREFIX}{name}", dest=name.replace("-", "_"), default=None, help=usage + suffix)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    store_path = Path(args.store_path or get_env("MACHINE_STORAGE_PATH") or DEFAULT_STORE_PATH).expanduser()

    try:
        if args.command in _CREATE_COMMANDS:
            cfg = build_config(_flag_options(args))
        else:
            cfg = load_config(HostIdentity(machine_name=args.machine_name, store_path=store_path))
    except DriverError as exc:
        log("ERROR", str(exc))
        return 1

    if args.command == "show-config":
        show_config(cfg)
        return 0

    identity = HostIdentity(machine_name=args.machine_name, store_path=store_path, ssh_user=cfg.ssh_user)
    driver = Driver(cfg, identity)
    try:
        if args.command == "precheck":
            driver.pre_create_check()
            log("SUCCESS", f"Pre-create checks passed (image {cfg.image}, package {cfg.package})")
        elif args.command == "create":
            if config_path(identity).exists() and load_config(identity).machine_id:
                raise DriverError(f"Machine '{args.machine_name}' already exists in {identity.machine_dir}")
            driver.pre_create_check()
            try:
                driver.create(wait=not args.no_wait)
            finally:
                # keep the instance id even if the address wait failed
                if cfg.machine_id:
                    save_config(identity, cfg)
            print(driver.ip_address or cfg.machine_id)
        elif args.command == "ip":
            print(driver.get_ip())
        elif args.command == "state":
            try:
                print(driver.get_state())
            except UnknownStateError as exc:
                log("ERROR", str(exc))
                print(exc.state)
                return 1
        elif args.command == "url":
            print(driver.get_url())
        elif args.command == "start":
            driver.start()
        elif args.command == "stop":
            driver.stop()
        elif args.command == "kill":
            driver.kill()
        elif args.command == "restart":
            driver.restart()
        elif args.command == "rm":
            driver.remove()
            # drops the saved config and any key written from --triton-key-material
            remove_directory(identity.machine_dir)
            log("SUCCESS", f"Removed machine {args.machine_name}")
        return 0
    except DriverError as exc:
        log("ERROR", str(exc))
        return 1

"""Driver defaults and wire constants for triton-machine-driver."""

from __future__ import annotations

import os

DRIVER_NAME = "triton"
FLAG_PREFIX = DRIVER_NAME + "-"
# SDC_ is for historical reasons
ENV_PREFIX = "SDC_"

DEFAULT_ACCOUNT = ""
DEFAULT_KEY_PATH = ""
DEFAULT_KEY_ID = ""
DEFAULT_KEY_MATERIAL = ""
DEFAULT_URL = "https://us-east-1.api.joyent.com"
DEFAULT_IMAGE = "debian-8"
DEFAULT_PACKAGE = "k4-highcpu-kvm-250M"
DEFAULT_SSH_USER = "root"

DOCKER_ENGINE_PORT = 2376

API_VERSION = "~8"
REQUEST_TIMEOUT = 30
USER_AGENT = "triton-machine-driver/0.1"

# Address-availability polling budget
IP_WAIT_ATTEMPTS = 60
IP_WAIT_INTERVAL = 3.0

CONFIG_FILE_NAME = "config.yaml"
SSH_KEY_FILE_TEMPLATE = "id_rsa_triton_{account}"

TRUTHY = {"1", "true", "yes", "on"}

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in TRUTHY

_SENSITIVE_FIELDS = {"key_material"}

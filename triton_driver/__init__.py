"""triton-machine-driver package."""

__all__ = [
    "cli",
    "client",
    "config",
    "constants",
    "credentials",
    "driver",
    "exceptions",
    "models",
    "resolver",
    "state",
    "utils",
]

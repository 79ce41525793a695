"""devsetup — idempotent installer for development container resources."""

__version__ = "0.1.0"

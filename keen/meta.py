from importlib.metadata import PackageNotFoundError, version
import logging
import platform
from typing import Dict, Optional


LOG = logging.getLogger(__name__)

DISTRIBUTION_NAME = "keen-client"

# platform.machine() spellings -> the names sent in the User-Agent
ARCH_ALIASES = {
    "x86_64": "x86_64",
    "AMD64": "x86_64",
    "arm64": "arm_64",
    "aarch64": "arm_64",
    "i386": "x86",
}


def get_version() -> Optional[str]:
    """
    Installed keen-client version, or None when running from a source tree.
    """
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        LOG.debug("%s is not installed, sending no client version", DISTRIBUTION_NAME)
        return None


def get_user_agent() -> str:
    """
    ``keen-python/<version> (<os> <arch>; Python/<python version>)``
    """
    machine = platform.machine()
    arch = ARCH_ALIASES.get(machine, machine or "unknown")

    return (
        f"keen-python/{get_version() or 'unknown'} "
        f"({platform.system()} {arch}; Python/{platform.python_version()})"
    )


def get_meta_http_headers() -> Dict[str, str]:
    """
    Client identification headers sent with every API request.
    """
    return {
        "Keen-Client-Version": get_version() or "",
        "User-Agent": get_user_agent(),
    }

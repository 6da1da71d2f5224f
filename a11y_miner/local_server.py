"""Locate the URL of a locally started application under test."""

import json
import logging
import re
import socket
from pathlib import Path
from typing import Iterable, Optional, Union

import requests

logger = logging.getLogger(__name__)

COMMON_PORTS = (3000, 5000, 8080)
DEFAULT_REPO_PATH = "target-repo"

ENV_PORT_PATTERN = re.compile(r"PORT\s*=\s*(\d+)", re.IGNORECASE)
CLI_PORT_PATTERN = re.compile(r"--port\s+(\d+)", re.IGNORECASE)


def is_port_listening(port: int, host: str = "localhost", timeout: float = 0.5) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def detect_listening_url(ports: Iterable[int] = COMMON_PORTS) -> Optional[str]:
    """First common port with something listening on it."""
    for port in ports:
        if is_port_listening(port):
            return f"http://localhost:{port}"
    return None


def port_from_env_file(repo_path: Union[str, Path]) -> Optional[int]:
    env_path = Path(repo_path) / ".env"
    if not env_path.exists():
        return None
    match = ENV_PORT_PATTERN.search(env_path.read_text(encoding="utf-8", errors="replace"))
    return int(match.group(1)) if match else None


def port_from_package_json(repo_path: Union[str, Path]) -> Optional[int]:
    """Port set in the ``start`` script (``PORT=...`` or ``--port N``)."""
    pkg_path = Path(repo_path) / "package.json"
    if not pkg_path.exists():
        return None
    try:
        pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("Could not parse %s: %s", pkg_path, e)
        return None
    start = ((pkg.get("scripts") or {}).get("start") or "") if isinstance(pkg, dict) else ""
    match = ENV_PORT_PATTERN.search(start) or CLI_PORT_PATTERN.search(start)
    return int(match.group(1)) if match else None


def resolve_local_url(
    repo_path: Union[str, Path] = DEFAULT_REPO_PATH,
    ports: Iterable[int] = COMMON_PORTS,
) -> Optional[str]:
    """
    Find the local application URL.

    Tries the common development ports first, then the port configured in
    the repository's .env file, then the one in its package.json start script.
    """
    url = detect_listening_url(ports)
    if url:
        return url

    logger.info("No common port detected, reading .env and package.json...")
    port = port_from_env_file(repo_path) or port_from_package_json(repo_path)
    if port:
        return f"http://localhost:{port}"
    return None


def check_url(url: str, timeout: int = 10) -> bool:
    """Log whether ``url`` answers. Failure never stops the run."""
    logger.info("Testing access to URL: %s", url)
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.error("Error accessing URL: %s", e)
        return False
    if not response.ok:
        logger.error("URL unreachable: %s %s", response.status_code, response.reason)
        return False
    logger.info("URL reachable (%s)", response.status_code)
    return True

"""Configuration loading and saving.

Config file location: ~/.config/tmd-viewer/config.toml

Schema:
    [server]
    base_url = "http://127.0.0.1:8888"
    timeout = 30.0

    [feeds]
    count = 100  # page size, omitted to use the server default

    [output]
    format = "markdown"  # markdown | csv | text

TMD_VIEWER_BASE_URL overrides server.base_url.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

import tomli_w

CONFIG_DIR = Path.home() / ".config" / "tmd-viewer"
CONFIG_FILE = CONFIG_DIR / "config.toml"

DEFAULT_BASE_URL = "http://127.0.0.1:8888"
OUTPUT_FORMATS = ("markdown", "csv", "text")


@dataclass
class AppConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    page_size: int | None = None
    output_format: str = "markdown"


def load_config(config_path: Path = CONFIG_FILE) -> AppConfig:
    """Load and validate config from TOML file.

    A missing file gives the defaults; the server URL is all most commands need.
    """
    data: dict = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

    server_data = data.get("server", {})
    feeds_data = data.get("feeds", {})
    output_data = data.get("output", {})

    page_size = feeds_data.get("count")
    if page_size is not None and (not isinstance(page_size, int) or page_size <= 0):
        raise ValueError(f"feeds.count must be a positive integer, got {page_size!r}")

    output_format = output_data.get("format", "markdown")
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(
            f"output.format must be one of {', '.join(OUTPUT_FORMATS)}, got {output_format!r}"
        )

    base_url = os.environ.get("TMD_VIEWER_BASE_URL") or server_data.get(
        "base_url", DEFAULT_BASE_URL
    )

    return AppConfig(
        base_url=base_url,
        timeout=float(server_data.get("timeout", 30.0)),
        page_size=page_size,
        output_format=output_format,
    )


def save_config(config: AppConfig, config_path: Path = CONFIG_FILE) -> None:
    """Write config to TOML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "server": {
            "base_url": config.base_url,
            "timeout": config.timeout,
        },
        "output": {
            "format": config.output_format,
        },
    }

    if config.page_size:
        data["feeds"] = {"count": config.page_size}

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(config_path, 0o600)


def config_exists(config_path: Path = CONFIG_FILE) -> bool:
    """Check if config file exists."""
    return config_path.exists()

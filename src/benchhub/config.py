"""Configuration management for BenchHub."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import yaml
from dotenv import load_dotenv

load_dotenv()

# Root directories
PROJECT_ROOT = Path(__file__).resolve().parents[2]
RESULTS_DIR = PROJECT_ROOT / "site" / "public" / "results"
CONTRACT_FILE = PROJECT_ROOT / "benchmarks" / "contract.json"


class ContractError(ValueError):
    """The benchmark contract file is missing or does not carry a version."""


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_contract_version(contract_file: Union[str, Path]) -> int:
    """Read the current contract version from the contract file.

    The contract file is JSON (``{"version": 1, ...}``); YAML is accepted too.

    Args:
        contract_file: Path to the contract file

    Returns:
        The integer contract version
    """
    contract_file = Path(contract_file)
    try:
        with open(contract_file, encoding="utf-8") as f:
            contract = yaml.safe_load(f)
    except FileNotFoundError:
        raise ContractError(f"Contract file not found: {contract_file}") from None
    except yaml.YAMLError as e:
        raise ContractError(f"Cannot parse contract file {contract_file}: {e}") from None

    version = contract.get("version") if isinstance(contract, dict) else None
    if isinstance(version, bool) or not isinstance(version, int):
        raise ContractError(f"Contract file {contract_file} has no integer 'version'")
    return version


@dataclass
class AppConfig:
    """Application configuration with environment-based defaults."""

    results_dir: Path = field(
        default_factory=lambda: Path(os.getenv("BENCHHUB_RESULTS_DIR", str(RESULTS_DIR)))
    )
    contract_file: Path = field(
        default_factory=lambda: Path(os.getenv("BENCHHUB_CONTRACT_FILE", str(CONTRACT_FILE)))
    )
    # Prefix of the "latest" reference written into the index, as seen by the site
    latest_prefix: str = field(
        default_factory=lambda: os.getenv("BENCHHUB_LATEST_PREFIX", "results/frameworks")
    )
    max_concurrency: int = field(
        default_factory=lambda: int(os.getenv("BENCHHUB_MAX_CONCURRENCY", "4"))
    )
    strict_contract: bool = field(
        default_factory=lambda: _env_bool("BENCHHUB_STRICT_CONTRACT")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.results_dir = Path(self.results_dir)
        self.contract_file = Path(self.contract_file)
        self._validate()

    def _validate(self):
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if not self.latest_prefix or self.latest_prefix.startswith("/"):
            raise ValueError(f"latest_prefix must be a relative path, got {self.latest_prefix!r}")

    @property
    def frameworks_dir(self) -> Path:
        return self.results_dir / "frameworks"

    @property
    def index_file(self) -> Path:
        return self.results_dir / "index.json"

    def contract_version(self) -> int:
        return load_contract_version(self.contract_file)

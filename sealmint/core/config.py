"""
Sale configuration parameters for sealmint.

Defines the economic parameters, the phase schedule and operational paths.
Values come from (lowest to highest precedence): dataclass defaults, a
JSON or TOML config file, and SEALMINT_* environment variables (a .env
file is honoured).
"""

import json
import os
import tomllib
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

from sealmint.core.phase import PhaseWindow

ENV_PREFIX = "SEALMINT_"

NATIVE_ASSET = "native"
TOKEN_ASSET = "token"

DAY = 86_400


@dataclass
class SaleConfig:
    """Sale-wide configuration parameters"""

    # Economics (amounts in the payment asset's smallest unit)
    deposit: int = 10**17                  # Fixed per-commit deposit
    min_price: int = 10**16                # Floor for every price
    max_supply: int = 10_000               # Fixed issuance cap
    decay_rate: int = 10**12               # Public price decay per second
    increase_rate: int = 10**15            # Public price increase per unit sold

    # Eligibility and penalties
    band_factor: int = 1                   # Band half-width in std devs
    outlier_factor: int = 5                # Outlier surcharge multiplier
    lost_reveal_penalty_pct: int = 50      # Computed lost-reveal penalty
    apply_lost_reveal_penalty: bool = False

    # Settlement asset: "native" (attached payment) or "token" (pulled)
    payment_asset: str = NATIVE_ASSET

    # Phase schedule (unix seconds)
    commit_start: int = 0
    reveal_start: int = DAY
    restricted_start: int = 2 * DAY
    public_start: int = 3 * DAY

    # Paths
    data_dir: Optional[Path] = None        # None = in-memory only
    log_dir: Path = Path("logs")

    def phase_window(self) -> PhaseWindow:
        return PhaseWindow(
            commit_start=self.commit_start,
            reveal_start=self.reveal_start,
            restricted_start=self.restricted_start,
            public_start=self.public_start,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["data_dir"] = str(self.data_dir) if self.data_dir is not None else None
        data["log_dir"] = str(self.log_dir)
        return data


class SaleConfigModel(BaseModel):
    """Validation schema for config files and environment overrides."""

    model_config = ConfigDict(extra="forbid")

    deposit: int = Field(SaleConfig.deposit, ge=0)
    min_price: int = Field(SaleConfig.min_price, ge=0)
    max_supply: int = Field(SaleConfig.max_supply, ge=1)
    decay_rate: int = Field(SaleConfig.decay_rate, ge=0)
    increase_rate: int = Field(SaleConfig.increase_rate, ge=0)

    band_factor: int = Field(SaleConfig.band_factor, ge=0)
    outlier_factor: int = Field(SaleConfig.outlier_factor, ge=0)
    lost_reveal_penalty_pct: int = Field(SaleConfig.lost_reveal_penalty_pct, ge=0, le=100)
    apply_lost_reveal_penalty: bool = SaleConfig.apply_lost_reveal_penalty

    payment_asset: Literal["native", "token"] = NATIVE_ASSET

    commit_start: int = Field(SaleConfig.commit_start, ge=0)
    reveal_start: int = Field(SaleConfig.reveal_start, ge=0)
    restricted_start: int = Field(SaleConfig.restricted_start, ge=0)
    public_start: int = Field(SaleConfig.public_start, ge=0)

    data_dir: Optional[Path] = None
    log_dir: Path = Path("logs")

    @model_validator(mode="after")
    def check_schedule(self) -> "SaleConfigModel":
        bounds = [self.commit_start, self.reveal_start, self.restricted_start, self.public_start]
        if not all(a < b for a, b in zip(bounds, bounds[1:])):
            raise ValueError(
                "phase boundaries must be strictly increasing "
                "(commit_start < reveal_start < restricted_start < public_start)"
            )
        return self


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    suffix = config_path.suffix.lower()
    if suffix == ".json":
        return json.loads(config_path.read_text())
    if suffix == ".toml":
        with config_path.open("rb") as fh:
            data = tomllib.load(fh)
        # Allow the parameters to live under a [sale] table
        return data.get("sale", data)
    raise ValueError(f"Unsupported config format: {config_path.suffix} (use .json or .toml)")


def _env_overrides() -> Dict[str, str]:
    overrides = {}
    for f in fields(SaleConfig):
        value = os.environ.get(ENV_PREFIX + f.name.upper())
        if value is not None:
            overrides[f.name] = value
    return overrides


def load_config(
    config_path: Optional[str] = None,
    env_file: Optional[str] = None,
    use_env: bool = True,
) -> SaleConfig:
    """
    Load configuration from file and environment, or use defaults.

    Args:
        config_path: Optional path to a .json or .toml config file
        env_file: Optional .env file (defaults to searching for ./.env)
        use_env: Whether SEALMINT_* environment variables override the file

    Returns:
        SaleConfig instance

    Raises:
        pydantic.ValidationError: a value is out of range or the schedule is inverted
    """
    data: Dict[str, Any] = {}
    if config_path:
        data.update(_read_config_file(Path(config_path)))

    if use_env:
        load_dotenv(dotenv_path=env_file, override=False)
        data.update(_env_overrides())

    model = SaleConfigModel.model_validate(data)
    return SaleConfig(**model.model_dump())


__all__ = [
    "SaleConfig",
    "SaleConfigModel",
    "load_config",
    "ENV_PREFIX",
    "NATIVE_ASSET",
    "TOKEN_ASSET",
]

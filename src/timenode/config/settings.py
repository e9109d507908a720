"""TimeNode settings and economic strategy configuration."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError


class EconomicStrategy(BaseModel):
    """Thresholds the node applies before claiming or executing a transaction."""

    model_config = ConfigDict(frozen=True)

    max_deposit: int = Field(
        default=10**18,
        description="Maximum deposit the node is willing to stake when claiming (wei)"
    )
    min_balance: int = Field(
        default=0,
        description="Minimum balance an account must hold to claim (wei)"
    )
    min_profitability: int = Field(
        default=0,
        description="Minimum expected reward for claiming or executing (wei)"
    )
    max_gas_subsidy: int = Field(
        default=100,
        ge=0,
        description="Percentage above the scheduled gas price the node will subsidize"
    )
    min_claim_window: int = Field(
        default=30,
        description="Minimum seconds left in the claim window to attempt a claim"
    )
    min_claim_window_block: int = Field(
        default=2,
        description="Minimum blocks left in the claim window to attempt a claim"
    )
    min_execution_window: int = Field(
        default=150,
        description="Minimum execution window size in seconds for a claim to be worthwhile"
    )
    min_execution_window_block: int = Field(
        default=10,
        description="Minimum execution window size in blocks for a claim to be worthwhile"
    )
    using_smart_gas_estimation: bool = Field(
        default=False,
        description="Pick gas prices from gas station tiers based on time left"
    )


DEFAULT_ECONOMIC_STRATEGY = EconomicStrategy()


class TimeNodeSettings(BaseSettings):
    """TimeNode settings loaded from keyword arguments or TIMENODE_* environment variables."""

    # Network settings
    provider_urls: List[str] = Field(
        default_factory=list,
        description="Ordered provider URLs; the first one is active at startup"
    )
    max_retries: int = Field(
        default=30,
        description="Reconnect attempts before scanning is halted"
    )
    confirmation_timeout_seconds: float = Field(
        default=900.0,
        description="Deadline for a sent transaction to reach its confirmation depth"
    )

    # Scanning settings
    autostart: bool = Field(default=True, description="Start scanning on startup")
    claiming: bool = Field(default=False, description="Claim transactions, not only execute")
    scan_interval_ms: int = Field(default=4000, description="Cache scan interval in milliseconds")
    scan_spread: int = Field(default=50, description="Blocks behind the head to discover requests in")
    direct_tx_pool: bool = Field(
        default=False,
        description="Watch raw pending transactions instead of pending logs"
    )

    # Wallet settings
    wallet_stores: List[str] = Field(
        default_factory=list,
        description="Encrypted keystores (JSON) or raw private keys"
    )
    wallet_stores_as_private_keys: bool = Field(
        default=False,
        description="Treat wallet_stores as raw private keys"
    )
    password: Optional[SecretStr] = Field(
        default=None,
        description="Passphrase for encrypted keystores"
    )

    # Economics
    economic_strategy: EconomicStrategy = Field(default_factory=EconomicStrategy)
    gas_station_url: Optional[str] = Field(
        default=None,
        description="Gas station JSON API used for smart gas estimation"
    )

    log_level: str = Field(default="INFO", description="Root logging level")

    model_config = SettingsConfigDict(
        env_prefix="TIMENODE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_required(self) -> "TimeNodeSettings":
        if not self.provider_urls:
            raise ConfigurationError("Must pass at least 1 provider URL to the config object.")

        if self.wallet_stores and not self.wallet_stores_as_private_keys and self.password is None:
            raise ConfigurationError(
                "Unable to unlock the wallet. Please provide a password as a config param"
            )
        return self

    @property
    def active_provider_url(self) -> str:
        return self.provider_urls[0]

    @property
    def scan_interval_seconds(self) -> float:
        return self.scan_interval_ms / 1000


def load_settings(**overrides) -> TimeNodeSettings:
    """Build settings, turning validation failures into a ConfigurationError."""
    try:
        return TimeNodeSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid TimeNode configuration: {e}") from e

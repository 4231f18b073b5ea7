from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from poolguard.errors import ConfigurationError
from poolguard.models import Amount


class FilterConfig(BaseModel):
    """
    Thresholds and toggles for every filter in the pipeline.
    Built once, validated once, never mutated.
    """
    model_config = ConfigDict(frozen=True)

    # Burn
    check_burned: bool = True
    max_lp_supply: int = Field(default=0, ge=0)  # raw LP units still circulating

    # Renounced / Freeze
    check_renounced: bool = True
    check_freezable: bool = True

    # Mutable / Socials
    check_mutable: bool = True
    check_socials: bool = True

    # Pool size, in quote token units (0 disables a side)
    quote_decimals: int = Field(default=9, ge=0, le=18)
    quote_symbol: str = "WSOL"
    min_pool_size: Decimal = Field(default=Decimal("20"), ge=0)
    max_pool_size: Decimal = Field(default=Decimal("300"), ge=0)

    # Holders
    check_holders: bool = True
    min_holder_count: int = Field(default=150, ge=0)
    max_top_holder_percent: int = Field(default=5, ge=0, le=100)

    # Execution
    filter_timeout_seconds: float = Field(default=30.0, gt=0)
    max_concurrent_filters: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def check_pool_bounds(self):
        if self.min_pool_size and self.max_pool_size and self.min_pool_size > self.max_pool_size:
            raise ValueError(
                f"min_pool_size {self.min_pool_size} is greater than max_pool_size {self.max_pool_size}"
            )
        for bound in (self.min_pool_size, self.max_pool_size):
            # raises ValueError when the bound needs more precision than the quote token has
            Amount.from_ui(bound, self.quote_decimals)
        return self

    @property
    def min_pool_amount(self) -> Amount:
        return Amount.from_ui(self.min_pool_size, self.quote_decimals)

    @property
    def max_pool_amount(self) -> Amount:
        return Amount.from_ui(self.max_pool_size, self.quote_decimals)

    @classmethod
    def build(cls, **values) -> "FilterConfig":
        """Validates values and raises ConfigurationError instead of pydantic's ValidationError."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e


class Settings(BaseSettings):
    # General
    LOG_LEVEL: str = "INFO"
    ENV: str = "development"

    # RPC
    RPC_ENDPOINT: str = "https://api.mainnet-beta.solana.com"
    COMMITMENT_LEVEL: str = "confirmed"
    RPC_TIMEOUT_SECONDS: float = 15.0
    RPC_MAX_CALLS_PER_SECOND: int = 10
    METADATA_TIMEOUT_SECONDS: float = 5.0

    # Execution
    FILTER_TIMEOUT_SECONDS: float = 30.0
    MAX_CONCURRENT_FILTERS: int = 5

    # Quote token
    QUOTE_DECIMALS: int = 9
    QUOTE_SYMBOL: str = "WSOL"

    # Filters
    CHECK_IF_BURNED: bool = True
    MAX_LP_SUPPLY: int = 0
    CHECK_IF_MINT_IS_RENOUNCED: bool = True
    CHECK_IF_FREEZABLE: bool = True
    CHECK_IF_MUTABLE: bool = True
    CHECK_IF_SOCIALS: bool = True
    MIN_POOL_SIZE: Decimal = Decimal("20")
    MAX_POOL_SIZE: Decimal = Decimal("300")
    CHECK_HOLDERS: bool = True
    MIN_HOLDER_COUNT: int = 150
    MAX_TOP_HOLDER_PERCENT: int = 5

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def filter_config(self, **overrides) -> FilterConfig:
        values = dict(
            check_burned=self.CHECK_IF_BURNED,
            max_lp_supply=self.MAX_LP_SUPPLY,
            check_renounced=self.CHECK_IF_MINT_IS_RENOUNCED,
            check_freezable=self.CHECK_IF_FREEZABLE,
            check_mutable=self.CHECK_IF_MUTABLE,
            check_socials=self.CHECK_IF_SOCIALS,
            quote_decimals=self.QUOTE_DECIMALS,
            quote_symbol=self.QUOTE_SYMBOL,
            min_pool_size=self.MIN_POOL_SIZE,
            max_pool_size=self.MAX_POOL_SIZE,
            check_holders=self.CHECK_HOLDERS,
            min_holder_count=self.MIN_HOLDER_COUNT,
            max_top_holder_percent=self.MAX_TOP_HOLDER_PERCENT,
            filter_timeout_seconds=self.FILTER_TIMEOUT_SECONDS,
            max_concurrent_filters=self.MAX_CONCURRENT_FILTERS,
        )
        values.update(overrides)
        return FilterConfig.build(**values)


settings = Settings()

"""Application configuration via Pydantic Settings.

NOTE: Every capacity scalar is mapped to an explicit .env variable name
(CUSTOMER_TARGET_ARR, MAX_CRE_PER_REP, etc.) to avoid silent misconfiguration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings

from assignment_engine.domain.value_objects.capacity_limits import CapacityLimits


class Settings(BaseSettings):
    # Capacity
    customer_target_arr: float = Field(default=2_000_000, ge=0, validation_alias="CUSTOMER_TARGET_ARR")
    customer_max_arr: float = Field(default=3_000_000, ge=0, validation_alias="CUSTOMER_MAX_ARR")
    prospect_target_arr: float = Field(default=1_000_000, ge=0, validation_alias="PROSPECT_TARGET_ARR")
    prospect_max_arr: float = Field(default=1_500_000, ge=0, validation_alias="PROSPECT_MAX_ARR")
    capacity_variance_percent: float = Field(default=10.0, ge=0, validation_alias="CAPACITY_VARIANCE_PERCENT")
    max_cre_per_rep: int = Field(default=3, ge=0, validation_alias="MAX_CRE_PER_REP")
    max_tier1_per_rep: int | None = Field(default=5, ge=0, validation_alias="MAX_TIER1_PER_REP")
    max_tier2_per_rep: int | None = Field(default=8, ge=0, validation_alias="MAX_TIER2_PER_REP")

    # Balancing
    balance_precedence: list[str] = Field(
        default=["arr", "cre", "tier", "renewal_quarter"],
        validation_alias="BALANCE_PRECEDENCE",
    )
    balance_follow_rule_priority: bool = Field(default=False, validation_alias="BALANCE_FOLLOW_RULE_PRIORITY")
    balance_tie_tolerance_arr: float = Field(default=0.0, ge=0, validation_alias="BALANCE_TIE_TOLERANCE_ARR")

    # Data
    csv_data_path: str = Field(default="data", validation_alias="CSV_DATA_PATH")
    rules_path: str = Field(default="", validation_alias="RULES_PATH")

    # App
    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def capacity_limits(self) -> CapacityLimits:
        return CapacityLimits(
            customer_target_arr=self.customer_target_arr,
            customer_max_arr=self.customer_max_arr,
            prospect_target_arr=self.prospect_target_arr,
            prospect_max_arr=self.prospect_max_arr,
            capacity_variance_percent=self.capacity_variance_percent,
            max_cre_per_rep=self.max_cre_per_rep,
            max_tier1_per_rep=self.max_tier1_per_rep,
            max_tier2_per_rep=self.max_tier2_per_rep,
        )


settings = Settings()

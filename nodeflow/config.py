"""Engine configuration.

Plain data: the engine is constructed with one of these and carries it for
every run. Values can be loaded from a JSON file and overridden per CLI flag.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RetryConfig(BaseModel):
    """Bounded exponential backoff for node invocations."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=4, ge=1, description="Total invocations per node, first try included")
    base_delay: float = Field(default=0.1, ge=0, description="Delay before the first retry (seconds)")
    max_delay: float = Field(default=5.0, ge=0, description="Upper bound for any single delay (seconds)")

    @model_validator(mode="after")
    def _check_delays(self) -> RetryConfig:
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self


class EngineConfig(BaseModel):
    """Concurrency, timeout and retry settings for the execution engine."""

    model_config = ConfigDict(frozen=True)

    max_parallelism: int | None = Field(
        default=3,
        ge=1,
        description="Maximum concurrently running nodes (None = unbounded)",
    )
    node_timeout: float | None = Field(default=None, gt=0, description="Per-attempt timeout (seconds)")
    run_timeout: float | None = Field(default=None, gt=0, description="Whole-run timeout (seconds)")
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> EngineConfig:
        """Load a configuration from a JSON file."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

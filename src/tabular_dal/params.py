"""Parameter types for client configuration.

Params describe how the engine behaves (retry budgets, backoff bounds,
polling cadence). They are immutable and build fresh policy prototypes.
"""

import os
from collections.abc import Mapping
from typing import Self

from pydantic import BaseModel, Field, ValidationError, model_validator

from tabular_dal.errors import DalError, ErrorKind
from tabular_dal.policies.backoff import BackoffPolicy, ExponentialBackoffPolicy
from tabular_dal.policies.idempotency import (
    AlwaysRetryMutationPolicy,
    IdempotentMutationPolicy,
    SafeIdempotentMutationPolicy,
)
from tabular_dal.policies.polling import GenericPollingPolicy, PollingPolicy
from tabular_dal.policies.retry import (
    LimitedErrorCountRetryPolicy,
    LimitedTimeRetryPolicy,
    RetryPolicy,
)

ENV_PREFIX = "TABULAR_DAL_"


class RetryParams(BaseModel, frozen=True):
    """Retry budget for a single call.

    Set exactly one of `maximum_attempts` and `maximum_duration`.
    """

    maximum_attempts: int | None = Field(default=None, ge=1)
    """Total attempts allowed, including the first."""

    maximum_duration: float | None = Field(default=None, gt=0)
    """Seconds during which transient failures are retried."""

    @model_validator(mode="after")
    def _one_limit(self) -> Self:
        if self.maximum_attempts is not None and self.maximum_duration is not None:
            msg = "set either maximum_attempts or maximum_duration, not both"
            raise ValueError(msg)
        return self

    def build(self) -> RetryPolicy:
        if self.maximum_attempts is not None:
            return LimitedErrorCountRetryPolicy(self.maximum_attempts)
        return LimitedTimeRetryPolicy(self.maximum_duration or 600.0)


class BackoffParams(BaseModel, frozen=True):
    """Bounds of the exponential backoff between attempts."""

    initial_delay: float = Field(default=0.01, gt=0)
    maximum_delay: float = Field(default=300.0, gt=0)
    multiplier: float = Field(default=2.0, ge=1.0)
    jitter: float = Field(default=0.5, ge=0.0, lt=1.0)
    """Fraction of each delay that is randomized."""

    @model_validator(mode="after")
    def _ordered(self) -> Self:
        if self.maximum_delay < self.initial_delay:
            msg = "maximum_delay must not be smaller than initial_delay"
            raise ValueError(msg)
        return self

    def build(self) -> BackoffPolicy:
        return ExponentialBackoffPolicy(
            initial_delay=self.initial_delay,
            maximum_delay=self.maximum_delay,
            multiplier=self.multiplier,
            jitter=self.jitter,
        )


class PollingParams(BaseModel, frozen=True):
    """Cadence and total duration of long-running operation polling."""

    maximum_duration: float = Field(default=3600.0, gt=0)
    backoff: BackoffParams = Field(default_factory=lambda: BackoffParams(maximum_delay=60.0))

    def build(self) -> PollingPolicy:
        return GenericPollingPolicy(
            LimitedTimeRetryPolicy(self.maximum_duration),
            self.backoff.build(),
        )


class ClientParams(BaseModel, frozen=True):
    """Everything a client surface needs besides its transport."""

    project_id: str = Field(min_length=1)
    instance_id: str | None = None
    app_profile_id: str = ""
    emulator_host: str | None = None
    """`host:port` of a local emulator; transports connect there when set."""

    always_retry_mutations: bool = False
    """Retry server-timestamped writes too, accepting duplicate cell versions."""

    log_level: str | None = None
    """Attach a stderr log handler at this level when a surface is built."""

    retry: RetryParams = Field(default_factory=RetryParams)
    backoff: BackoffParams = Field(default_factory=BackoffParams)
    polling: PollingParams = Field(default_factory=PollingParams)

    def mutation_policy(self) -> IdempotentMutationPolicy:
        if self.always_retry_mutations:
            return AlwaysRetryMutationPolicy()
        return SafeIdempotentMutationPolicy()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> Self:
        """Build params from `TABULAR_DAL_*` variables, then apply `overrides`.

        Recognized variables: `PROJECT_ID`, `INSTANCE_ID`, `APP_PROFILE`,
        `EMULATOR_HOST`, `ALWAYS_RETRY_MUTATIONS`, `LOG_LEVEL`,
        `MAX_ATTEMPTS`, `MAX_RETRY_SECONDS`.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        simple = {
            "PROJECT_ID": "project_id",
            "INSTANCE_ID": "instance_id",
            "APP_PROFILE": "app_profile_id",
            "EMULATOR_HOST": "emulator_host",
            "ALWAYS_RETRY_MUTATIONS": "always_retry_mutations",
            "LOG_LEVEL": "log_level",
        }
        for suffix, field in simple.items():
            if (raw := env.get(ENV_PREFIX + suffix)) is not None:
                values[field] = raw
        retry: dict[str, object] = {}
        if (raw := env.get(ENV_PREFIX + "MAX_ATTEMPTS")) is not None:
            retry["maximum_attempts"] = raw
        if (raw := env.get(ENV_PREFIX + "MAX_RETRY_SECONDS")) is not None:
            retry["maximum_duration"] = raw
        if retry:
            values["retry"] = retry
        values.update(overrides)
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            msg = f"Invalid client configuration: {e}"
            raise DalError(msg, kind=ErrorKind.CONFIGURATION, source=e) from e

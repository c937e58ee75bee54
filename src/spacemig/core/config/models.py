"""
Configuration data models for spacemig.

These models define the structure of .spacemig.json and
~/.config/spacemig/config.json files, with validation via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field


class RetryConfig(BaseModel):
    """
    Backoff for rate-limited or transient API failures.
    """
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries per request after a 429 or a transient read failure"
    )
    base_delay: float = Field(
        default=1.0,
        gt=0.0,
        description="Delay before the first retry, in seconds"
    )
    multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Exponential backoff multiplier"
    )


class ApiConfig(BaseModel):
    """
    Management API connection settings.
    """
    base_url: str = Field(
        default="https://mapi.storyblok.com/v1",
        description="Management API root URL"
    )
    timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-request timeout in seconds"
    )
    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Page size when listing stories"
    )
    max_pages: int = Field(
        default=1000,
        ge=1,
        description="Safety cap on story pagination"
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)


class ReplicationConfig(BaseModel):
    """
    Concurrency limits for copying stories between spaces.

    Creation is kept tighter than fetching because writes have a
    smaller rate budget.
    """
    fetch_batch_size: int = Field(
        default=5,
        ge=1,
        description="Stories fetched concurrently per batch"
    )
    create_batch_size: int = Field(
        default=3,
        ge=1,
        description="Sibling stories created concurrently per batch"
    )


class SyncConfig(BaseModel):
    """
    Concurrency limit for resource sync.
    """
    batch_size: int = Field(
        default=5,
        ge=1,
        description="Resources written concurrently per batch"
    )


class DiscoveryConfig(BaseModel):
    """
    Where component definitions are looked for when the project has no
    storyblok config listing componentsDirectories.
    """
    component_dirs: list[str] = Field(
        default_factory=lambda: ["src", "components", "storyblok"],
        description="Component roots relative to the working directory"
    )


class RunnerConfig(BaseModel):
    """
    External migration CLI used by `spacemig run`.
    """
    executable: str = Field(
        default="sb-mig",
        description="Name or path of the external CLI"
    )


class SpacemigConfig(BaseModel):
    """
    Main spacemig configuration.

    Merged from: defaults < user config < project config < env vars
    """
    model_config = ConfigDict(extra="ignore")

    api: ApiConfig = Field(default_factory=ApiConfig)
    replication: ReplicationConfig = Field(default_factory=ReplicationConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)

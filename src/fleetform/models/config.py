"""Configuration models."""

import re
from typing import Optional
from pydantic import BaseModel, Field, validator


PREFIX_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")


class AgentConfig(BaseModel):
    """Agent configuration."""
    socket_path: str = Field(default="./state/fleetform-agent.sock")
    host: Optional[str] = None
    port: int = Field(default=8470, ge=0, le=65535)
    reconciliation_interval: int = Field(default=30, ge=5)
    log_level: str = Field(default="INFO")
    config_dir: str = Field(default="./configs")
    state_dir: str = Field(default="./state")
    continue_on_error: bool = Field(default=False, description="Keep applying stages after a task fails")

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class DockerConfig(BaseModel):
    """Docker backend connection."""
    base_url: Optional[str] = Field(None, description="Daemon URL, environment if unset")
    timeout: int = Field(default=60, ge=1)


class PlannerConfig(BaseModel):
    """Task set shaping options."""
    batch_image_pulls: bool = Field(default=False, description="Pull all images in one stage")
    batch_network_attaches: bool = Field(default=False, description="Attach all networks in one stage")


class FleetformConfig(BaseModel):
    """Main configuration model."""
    prefix: str = Field(default="ff_", description="Prepended to every resource name")
    agent: AgentConfig = Field(default_factory=AgentConfig)
    docker: DockerConfig = Field(default_factory=DockerConfig)
    planner: PlannerConfig = Field(default_factory=PlannerConfig)

    class Config:
        """Pydantic config."""
        extra = "ignore"

    @validator("prefix")
    def validate_prefix(cls, v):
        """Prefix must be usable inside container and network names."""
        if not PREFIX_RE.match(v):
            raise ValueError(f"Invalid prefix: {v!r}")
        return v

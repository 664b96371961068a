"""Observed host state."""

from typing import Dict, List
from pydantic import BaseModel, Field


class HostResourceInfo(BaseModel):
    """Containers and networks fleetform owns on a host, prefix stripped."""
    container_names: List[str] = Field(default_factory=list)
    network_names: List[str] = Field(default_factory=list)
    container_hashes: Dict[str, str] = Field(default_factory=dict)

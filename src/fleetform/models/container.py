"""Container plan models."""

from typing import Dict, List
from pydantic import BaseModel, Field, validator

from fleetform.utils.dedup import filter_duplicates


class ContainerPlan(BaseModel):
    """Declarative plan for one container.

    Fields beyond the ones declared here (``command``, ``environment``,
    ``ports``, ...) are kept as they are and handed to the backend when the
    container is created.
    """
    image: str = Field(..., min_length=1, description="Image repository")
    tag: str = Field(default="latest", min_length=1, description="Image tag")
    enabled: bool = Field(default=True)
    networks: List[str] = Field(default_factory=list, description="Networks to attach")

    class Config:
        """Pydantic config."""
        extra = "allow"
        frozen = True

    @validator("networks")
    def unique_networks(cls, v):
        """Keep the first occurrence of every network."""
        return filter_duplicates(v)

    @property
    def image_ref(self) -> str:
        """Image reference to pull, ``image:tag``."""
        return f"{self.image}:{self.tag}"

    @property
    def backend_options(self) -> Dict[str, object]:
        """Opaque fields passed through to container creation."""
        return dict(self.model_extra or {})


# Logical container name -> plan
ContainerMap = Dict[str, ContainerPlan]

"""Tenant scoping for every query and mutation."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TenantScope(BaseModel):
    """
    The organization a request acts on behalf of.

    Every repository takes a TenantScope and filters by it; there is no
    default tenant. Records owned by another organization are reported as
    missing, never as forbidden.
    """

    model_config = ConfigDict(frozen=True)

    org_id: str = Field(
        ...,
        description="Organization identifier",
        min_length=1,
        max_length=36,
        examples=["3f6c1b0e-8a2d-4c55-9d7e-2b1a4f0c9e11"],
    )

    def where(self, model: Any):
        """Return the filter clause restricting ``model`` to this organization."""
        return model.org_id == self.org_id

    def __str__(self) -> str:
        return self.org_id

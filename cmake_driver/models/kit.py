"""Kit: a named toolchain selection handed to the driver by the caller."""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from cmake_driver.models.codemodel import GeneratorInfo


class Kit(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    preferred_generator: Optional[GeneratorInfo] = Field(
        default=None,
        description="Generator this kit wants; overrides the global preference list",
    )
    environment: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for the configure subprocess",
    )

"""
Code Model: normalized view of a CMake File API reply.

Provides Pydantic models for the reply index (generator identity plus object
references) and for the code model tree built from it::

    CodeModel
     └── Configuration (Debug, Release, ...)
          ├── Project  (name + the target names it owns)
          └── RichTarget (name, type, artifacts)

Key design decisions
--------------------
* **Immutable snapshots**: every model is frozen. A reload produces a new
  ``CodeModel``; consumers holding the previous one keep a consistent view.
* **Tagged targets**: ``Target`` is a discriminated union of ``MetaTarget``
  (the synthetic "build everything" entry) and ``RichTarget`` (a real target
  read from the reply), switched on ``kind``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from cmake_driver.core.constants import CACHE_OBJECT_KIND, CODEMODEL_OBJECT_KIND

# ---------------------------------------------------------------------------
# Reply index
# ---------------------------------------------------------------------------


class GeneratorInfo(BaseModel):
    """Backend/toolchain identity a build tree was configured with."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Generator name, e.g. 'Ninja'")
    platform: Optional[str] = Field(default=None, description="Value passed with -A")
    toolset: Optional[str] = Field(default=None, description="Value passed with -T")
    multi_config: bool = Field(default=False, alias="multiConfig")


class ObjectVersion(BaseModel):
    model_config = ConfigDict(frozen=True)

    major: int
    minor: int = 0


class ObjectRef(BaseModel):
    """Reference from the index to one reply object file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: str = Field(..., min_length=1)
    version: Optional[ObjectVersion] = None
    json_file: str = Field(..., min_length=1, alias="jsonFile", description="Path relative to the reply dir")


class IndexDocument(BaseModel):
    """Entry point of a reply bundle."""

    model_config = ConfigDict(frozen=True)

    generator: GeneratorInfo
    objects: Tuple[ObjectRef, ...] = ()

    def find(self, kind: str) -> Optional[ObjectRef]:
        for obj in self.objects:
            if obj.kind == kind:
                return obj
        return None

    @property
    def cache_ref(self) -> Optional[ObjectRef]:
        return self.find(CACHE_OBJECT_KIND)

    @property
    def codemodel_ref(self) -> Optional[ObjectRef]:
        return self.find(CODEMODEL_OBJECT_KIND)


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


class TargetType(str, Enum):
    """Target kinds reported by codemodel v2."""

    EXECUTABLE = "EXECUTABLE"
    STATIC_LIBRARY = "STATIC_LIBRARY"
    SHARED_LIBRARY = "SHARED_LIBRARY"
    MODULE_LIBRARY = "MODULE_LIBRARY"
    OBJECT_LIBRARY = "OBJECT_LIBRARY"
    INTERFACE_LIBRARY = "INTERFACE_LIBRARY"
    UTILITY = "UTILITY"


class MetaTarget(BaseModel):
    """Synthetic target building everything; never present in a reply."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["meta"] = "meta"
    name: str


class RichTarget(BaseModel):
    """A real target read from a per-target reply file."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["rich"] = "rich"
    name: str = Field(..., min_length=1)
    type: TargetType
    filepath: Optional[str] = Field(default=None, description="First artifact path")
    artifacts: Tuple[str, ...] = ()
    configuration: str = ""


Target = Annotated[Union[MetaTarget, RichTarget], Field(discriminator="kind")]


class ExecutableTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    path: str


# ---------------------------------------------------------------------------
# Code model tree
# ---------------------------------------------------------------------------


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    target_names: Tuple[str, ...] = ()


class Configuration(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    projects: Tuple[Project, ...] = ()
    targets: Tuple[RichTarget, ...] = ()


class CodeModel(BaseModel):
    """Configurations with their targets and per-configuration artifacts."""

    model_config = ConfigDict(frozen=True)

    configurations: Tuple[Configuration, ...] = ()

    @property
    def configuration_names(self) -> List[str]:
        return [config.name for config in self.configurations]

    def unique_targets(self) -> List[RichTarget]:
        """All targets across configurations, first occurrence of each name kept."""
        seen = set()
        result: List[RichTarget] = []
        for config in self.configurations:
            for target in config.targets:
                if target.name in seen:
                    continue
                seen.add(target.name)
                result.append(target)
        return result

    def executable_targets(self) -> List[ExecutableTarget]:
        return [
            ExecutableTarget(name=target.name, path=target.filepath)
            for target in self.unique_targets()
            if target.type == TargetType.EXECUTABLE and target.filepath
        ]

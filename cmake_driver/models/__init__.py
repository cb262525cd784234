from cmake_driver.models.cache import EMPTY_CACHE, CacheEntry, CacheEntryType, freeze_entries, is_truthy
from cmake_driver.models.codemodel import (
    CodeModel,
    Configuration,
    ExecutableTarget,
    GeneratorInfo,
    IndexDocument,
    MetaTarget,
    ObjectRef,
    Project,
    RichTarget,
    Target,
    TargetType,
)
from cmake_driver.models.kit import Kit

__all__ = [
    "EMPTY_CACHE",
    "CacheEntry",
    "CacheEntryType",
    "CodeModel",
    "Configuration",
    "ExecutableTarget",
    "GeneratorInfo",
    "IndexDocument",
    "Kit",
    "MetaTarget",
    "ObjectRef",
    "Project",
    "RichTarget",
    "Target",
    "TargetType",
    "freeze_entries",
    "is_truthy",
]

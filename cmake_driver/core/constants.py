"""
Core constants for the CMake File API driver.

Centralized location for protocol constants shared by the query writer, the
reply loaders and the drivers. Values here must match what CMake expects on
disk, so change them only together with a protocol version bump.
"""

# File API layout: <binaryDir>/.cmake/api/v1/{query,reply}
FILE_API_ROOT_PARTS = (".cmake", "api", "v1")
QUERY_DIR_NAME = "query"
REPLY_DIR_NAME = "reply"
QUERY_FILE_NAME = "query.json"
INDEX_FILE_GLOB = "index-*.json"

# Client name used for the stateful query directory (query/client-<id>/)
DEFAULT_CLIENT_ID = "vscode"

# Object kinds requested on every configure, at fixed protocol versions
QUERY_REQUESTS = (
    {"kind": "cache", "version": 2},
    {"kind": "codemodel", "version": 2},
    {"kind": "cmakeFiles", "version": 1},
)
CACHE_OBJECT_KIND = "cache"
CODEMODEL_OBJECT_KIND = "codemodel"

# Build tree contents owned by CMake
CACHE_FILE_NAME = "CMakeCache.txt"
CMAKE_FILES_DIR_NAME = "CMakeFiles"

# Cache variables recording the generator a build tree was configured with
GENERATOR_CACHE_KEY = "CMAKE_GENERATOR"
GENERATOR_PLATFORM_CACHE_KEY = "CMAKE_GENERATOR_PLATFORM"
GENERATOR_TOOLSET_CACHE_KEY = "CMAKE_GENERATOR_TOOLSET"

# Name of the generator's own "build everything" target
DEFAULT_ALL_TARGET_NAME = "all"
IDE_ALL_TARGET_NAME = "ALL_BUILD"

# First CMake release shipping the File API
FILE_API_MIN_VERSION = (3, 15, 0)

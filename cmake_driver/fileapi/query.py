"""
File API query writer.

CMake only writes a reply bundle on a configure run that sees a pending
query, so the query file is (re)written before every such run.
"""

import json
from pathlib import Path
from typing import Union

from loguru import logger

from cmake_driver.common.exceptions import FileSystemError
from cmake_driver.core.constants import (
    DEFAULT_CLIENT_ID,
    FILE_API_ROOT_PARTS,
    QUERY_DIR_NAME,
    QUERY_FILE_NAME,
    QUERY_REQUESTS,
)


def api_root_for(binary_dir: Union[str, Path]) -> Path:
    """<binaryDir>/.cmake/api/v1"""
    return Path(binary_dir).joinpath(*FILE_API_ROOT_PARTS)


def query_document() -> str:
    return json.dumps({"requests": [dict(request) for request in QUERY_REQUESTS]}, separators=(",", ":"))


def ensure_query_file(api_root: Union[str, Path], client_id: str = DEFAULT_CLIENT_ID) -> Path:
    """
    Write the stateful client query requesting cache, codemodel and cmakeFiles.

    Args:
        api_root: The ``.cmake/api/v1`` directory of a build tree
        client_id: Client name, the query lands in ``query/client-<id>/``

    Returns:
        Path of the written ``query.json``

    Raises:
        FileSystemError: The query directory or file cannot be written
    """
    query_dir = Path(api_root) / QUERY_DIR_NAME / f"client-{client_id}"
    query_file = query_dir / QUERY_FILE_NAME
    try:
        query_dir.mkdir(parents=True, exist_ok=True)
        query_file.write_text(query_document(), encoding="utf-8")
    except OSError as e:
        raise FileSystemError(f"Cannot write File API query {query_file}: {e}", path=query_file) from e

    logger.debug(f"Created CMake File API query: {query_file}")
    return query_file

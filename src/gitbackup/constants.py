"""Literal constants used by gitbackup."""

APP_NAME = "gitbackup"

GIT_MARKER_NAME = ".git"
ORIGIN_REMOTE_NAME = "origin"
MIRROR_FETCH_REFSPEC = "+refs/*:refs/*"

ARCHIVE_SUFFIX = ".zip"
METADATA_SUFFIX = ".json"
BACKUP_SUFFIX = ".bak"

STAGING_DIR_PREFIX = f"{APP_NAME}-"
DEFAULT_FIND_FILENAME = "find.txt"

# zlib level 1 (fastest)
ARCHIVE_COMPRESSLEVEL = 1

LOG_FILE_MAX_BYTES = 2 * 1024 * 1024

REMOVE_TREE_ATTEMPTS = 5
REMOVE_TREE_BACKOFF_INITIAL_SEC = 0.1
REMOVE_TREE_BACKOFF_MAX_SEC = 1.0

WARNING_PREFIX = "WARNING:"
ERROR_PREFIX = "ERROR:"

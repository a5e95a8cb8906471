"""Constants for mnemos."""

# Repository marker directory
MNEMOS_DIR = ".mnemos"

# Metadata files (inside MNEMOS_DIR)
INDEX_FILE = "index"
HEAD_FILE = "HEAD"
REMOTE_FILE = "remote"
CONFIG_FILE = "config.yaml"
LOCK_FILE = "lock"

# Metadata directories (inside MNEMOS_DIR)
OBJECTS_DIR = "objects"
COMMITS_DIR = "commits"

# Commit layout (inside COMMITS_DIR/<commit id>)
MESSAGE_FILE = "message"
TIMESTAMP_FILE = "timestamp"
TREE_DIR = "tree"

# Project-level ignore file for track --all
IGNORE_FILE = ".mnemosignore"

# Streaming read size
DEFAULT_CHUNK_SIZE = 8192

# Version
MNEMOS_VERSION = "0.1.0"

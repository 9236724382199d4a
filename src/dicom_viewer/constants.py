"""Default configuration values and constants for dicom-viewer."""

# Server defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
API_PREFIX = "/api/v1/files"
TAG_QUERY_PARAM = "tag"

# Storage
STORAGE_DIR_ENV_VAR = "DICOM_VIEWER_STORAGE_DIR"
APP_NAME = "dicom-viewer"

# Rendering
TARGET_PIXEL_MIN = 0
TARGET_PIXEL_MAX = 255

# Elements with binary values larger than this are served as bulk data URIs
BULK_DATA_THRESHOLD = 1024

# Performance defaults
DEFAULT_MAX_WORKERS = 8

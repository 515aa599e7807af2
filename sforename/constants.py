# Magic and layout
SFO_MAGIC = b"\x00PSF"  # 4 bytes; little-endian int32 1179865088

SFO_HEADER_SIZE = 20
SFO_INDEX_ENTRY_SIZE = 16

# Value format tags (informational; extraction does not branch on them)
FMT_UTF8 = 0x0204
FMT_INT32 = 0x0404


# Keys
KEY_TITLE = "TITLE"
KEY_TITLE_ID = "TITLE_ID"
KEY_APP_VER = "APP_VER"
KEY_VERSION = "VERSION"
KEY_CATEGORY = "CATEGORY"
KEY_REGION = "REGION"

DEFAULT_REGION = "UNK"

# CATEGORY value of additional content packages
ADDON_CATEGORY = "ac"

# Starting point for the version folds; candidates must compare greater
VERSION_FLOOR = "0.00"


# Archive scanning
PARAM_SFO_SUFFIX = "param.sfo"
ARCHIVE_PATTERN = "*.zip"
MAX_CAPTURE_SIZE = 10_000_000  # bytes read per embedded record

DEFAULT_JOBS = 4

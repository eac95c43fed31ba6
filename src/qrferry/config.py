"""Default configuration values."""

HASH_SIZE = 20  # SHA-1 digest bytes at the head of every frame
MAX_INDEX_BYTES = 3  # index width reserved when sizing chunks (~16M chunks)
MAX_INDEX_WIDTH = 512  # hard ceiling for the index width search

# Byte-mode capacity of a version 40 QR code per error-correction level
QR_CAPACITY = {
    "L": 2953,  # ~7% recovery
    "M": 2331,  # ~15% recovery
    "Q": 1663,  # ~25% recovery
    "H": 1273,  # ~30% recovery
}

DEFAULT_CHUNK_SIZE = 1024  # payload bytes per frame before clamping
DEFAULT_ERROR_LEVEL = "M"
INFO_ERROR_LEVEL = "M"  # announcement and recovery QR codes
DEFAULT_INFO_REPEAT = 3  # display cycles the announcement is held for
DEFAULT_RENDER_WORKERS = 4
DEFAULT_GRID_ROWS = 1
DEFAULT_GRID_COLS = 1
DEFAULT_FPS = 5
DEFAULT_BORDER = 4  # quiet zone in modules
DEFAULT_SCALE = 4  # pixels per module when rendering QR
DEFAULT_GAP = 12  # pixels between QR cells
DEFAULT_COLOR_FG = 0  # black
DEFAULT_COLOR_BG = 255  # white
READ_BUF = 1024 * 256
LOG_LEVEL_ENV = "QRFERRY_LOG_LEVEL"

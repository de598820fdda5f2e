"""
Project constants definitions
"""

# ============================================================
# Connection
# ============================================================

DEFAULT_SSH_PORT = 22
DEFAULT_SSH_TIMEOUT = 10

SSH_CONFIG_PATH = "~/.ssh/config"

# ============================================================
# Stream Handling
# ============================================================

# Longest single line handed to a drain callback in one piece
MAX_SCAN_TOKEN = 256 * 1024

# Seconds between exit-status polls while waiting on a session
WAIT_POLL_INTERVAL = 0.05

# ============================================================
# Pseudo Terminal
# ============================================================

PTY_TERM = "xterm"
PTY_ROWS = 40
PTY_COLS = 80
PTY_BAUD = 14400

# RFC 4254 section 8 opcodes
TTY_OP_END = 0
ECHO = 53
TTY_OP_ISPEED = 128
TTY_OP_OSPEED = 129

PTY_MODES = {
    ECHO: 0,
    TTY_OP_ISPEED: PTY_BAUD,
    TTY_OP_OSPEED: PTY_BAUD,
}

# ============================================================
# Upload
# ============================================================

SCP_PROGRAM = "/usr/bin/scp"
SCP_RECEIVE_FLAGS = "-qt"
SCP_BENIGN_EXIT_STATUS = 1
UPLOAD_CHUNK_SIZE = 32 * 1024
DEFAULT_PERMISSION = "0644"

PROGRESS_DOING = "Uploading"
PROGRESS_DONE = "Uploaded"

"""termtile configuration

Settings are grouped as:
- Server: bind address, project root
- Shell: spawned program and default terminal extent
- Sessions: orphan sweep and scrollback
- Auth: access token and cookie
- Files: editor file access limits
- Logging / metrics
"""

import os
import secrets

# === Server ===
HOST = os.environ.get("TERMTILE_HOST", "127.0.0.1")
PORT = int(os.environ.get("TERMTILE_PORT", "3001"))
PROJECT_ROOT = os.environ.get("TERMTILE_PROJECT_ROOT", os.getcwd())  # default cwd and file root

# === Shell ===
SHELL = os.environ.get("SHELL", "/bin/bash")
TERM_NAME = "xterm-256color"
DEFAULT_COLS = 80
DEFAULT_ROWS = 24
READ_CHUNK_SIZE = 4096  # bytes per pty read

# === Sessions ===
ORPHAN_TIMEOUT_SECONDS = 5 * 60.0  # unattached sessions older than this are swept
SWEEP_INTERVAL_SECONDS = 30.0
SCROLLBACK_BYTES = int(os.environ.get("TERMTILE_SCROLLBACK_BYTES", str(64 * 1024)))  # replayed on re-attach

# === Timer ===
TIMER_TICK_INTERVAL = 1.0

# === Auth ===
AUTH_ENABLED = os.environ.get("TERMTILE_AUTH", "1") not in {"0", "false", "no"}
AUTH_TOKEN = os.environ.get("TERMTILE_TOKEN") or secrets.token_hex(32)
AUTH_COOKIE_NAME = "termtile-auth"
AUTH_COOKIE_MAX_AGE_SECONDS = 7 * 24 * 60 * 60

# === Files ===
MAX_FILE_BYTES = 1024 * 1024

# === Logging ===
LOG_LEVEL = os.environ.get("TERMTILE_LOG_LEVEL", "INFO")

# === Metrics ===
METRICS_ENABLED = os.environ.get("TERMTILE_METRICS", "1") != "0"

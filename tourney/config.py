import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/tournaments.db")
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Identity headers asserted by the upstream auth gateway
USER_ID_HEADER = "X-User-Id"
PLAYER_ID_HEADER = "X-Player-Id"
ROLE_HEADER = "X-User-Role"
CLUB_ID_HEADER = "X-Club-Id"

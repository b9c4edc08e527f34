import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Team whose lineup is drafted (142 = Minnesota Twins)
TEAM_ID = int(os.getenv("PICK3_TEAM_ID", "142"))
TIMEZONE = os.getenv("PICK3_TIMEZONE", "America/Chicago")

# Where the key/value store keeps its JSON blobs
STATE_DIR = os.getenv("PICK3_STATE_DIR", ".pick3")

# MLB Stats API
STATS_API_BASE = os.getenv("PICK3_STATS_API_BASE", "https://statsapi.mlb.com/api")
HTTP_TIMEOUT = int(os.getenv("PICK3_HTTP_TIMEOUT", "10"))

# Application Settings
POLL_INTERVAL = int(os.getenv("PICK3_POLL_INTERVAL", "15"))  # live scoring refresh (seconds)
VIEWING_CHECK_INTERVAL = int(os.getenv("PICK3_VIEWING_CHECK_INTERVAL", "300"))
PORT = int(os.getenv("PORT", "5000"))

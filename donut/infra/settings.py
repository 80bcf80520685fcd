import datetime as dt
import json
import os
import stat
from pathlib import Path
from zoneinfo import ZoneInfo

APP_NAME = "donut"
CONFIG_DIR = Path(os.getenv("DONUT_CONFIG_DIR") or Path.home() / ".config" / APP_NAME)
CONFIG_DIR.mkdir(parents=True, exist_ok=True)

GOOGLE_CREDENTIALS_PATH = CONFIG_DIR / "credentials.json"
TOKEN_STORE_PATH = CONFIG_DIR / "secrets.json"

CAL_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
]

LOCAL_PORT = 51280
CALLBACK_PATH = "/callback"


def _local_tz():
    name = os.getenv("DONUT_TZ")
    if name:
        return ZoneInfo(name)
    return dt.datetime.now().astimezone().tzinfo


DEFAULT_TZ = _local_tz()

# Timing (seconds)
COUNTDOWN_INTERVAL = 1.0
SYNC_INTERVAL = 300.0
SCROLL_INTERVAL = 0.5
API_TIMEOUT = 30.0
SIGN_IN_TIMEOUT = 300.0
REFRESH_MARGIN = dt.timedelta(minutes=5)

# Display
TITLE_DISPLAY_WIDTH = 5
MAX_RESULTS = 50


def ensure_600(path: Path):
    """Ensure the file has 600 permissions (read/write for owner only)."""
    try:
        if os.name == "posix":
            path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0o600
    # pylint: disable=broad-except
    except Exception as e:
        print(f"Warning: Failed to set permissions for {path}: {e}")


def _validate_client(data: dict) -> None:
    if not any(k in data for k in ("installed", "web")):
        raise ValueError("Invalid OAuth client JSON (need 'installed' or 'web').")


def import_oauth_client_from_json_string(raw: str) -> None:
    data = json.loads(raw)
    _validate_client(data)
    GOOGLE_CREDENTIALS_PATH.write_text(json.dumps(data), encoding="utf-8")
    ensure_600(GOOGLE_CREDENTIALS_PATH)


def import_oauth_client_from_path(path: str) -> None:
    p = Path(path).expanduser().resolve()
    if not p.exists():
        raise FileNotFoundError(f"credentials.json not found: {p}")
    import_oauth_client_from_json_string(p.read_text(encoding="utf-8"))


def load_client_config(path: Path = GOOGLE_CREDENTIALS_PATH) -> dict:
    """Read the imported OAuth client back as a Flow-compatible client config."""
    if not path.exists():
        raise FileNotFoundError(
            f"Missing OAuth client at {path}.\n"
            "Run: donut configure oauth"
        )
    data = json.loads(path.read_text(encoding="utf-8"))
    _validate_client(data)
    return data

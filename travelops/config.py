"""
Client configuration loaded from environment variables (and an optional .env file).
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables before anything reads them
load_dotenv()

DEFAULT_BASE_URL = 'http://localhost:3000'
DEFAULT_STORAGE_FILE = Path.home() / '.travelops' / 'storage.json'
DEFAULT_LOGIN_PAGE = '/login.html'
DEFAULT_LOGOUT_PAGE = '/logout.html'
DEFAULT_HOME_PAGE = '/single-dashboard.html'


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


class Config:
    """
    Settings for one panel client.

    Every attribute can be overridden with a keyword argument, which is how
    tests build isolated configurations.
    """

    def __init__(self, **overrides):
        self.base_url = os.getenv('TRAVELOPS_BASE_URL', DEFAULT_BASE_URL).rstrip('/')
        self.storage_file = Path(os.getenv('TRAVELOPS_STORAGE_FILE', str(DEFAULT_STORAGE_FILE))).expanduser()
        self.login_page = os.getenv('TRAVELOPS_LOGIN_PAGE', DEFAULT_LOGIN_PAGE)
        self.logout_page = os.getenv('TRAVELOPS_LOGOUT_PAGE', DEFAULT_LOGOUT_PAGE)
        self.home_page = os.getenv('TRAVELOPS_HOME_PAGE', DEFAULT_HOME_PAGE)
        self.request_timeout = _env_float('TRAVELOPS_REQUEST_TIMEOUT', 30.0)
        self.use_cache = _env_bool('TRAVELOPS_USE_CACHE', False)
        self.log_level = os.getenv('TRAVELOPS_LOG_LEVEL', 'INFO').upper()
        self.username = os.getenv('TRAVELOPS_USERNAME')
        self.password = os.getenv('TRAVELOPS_PASSWORD')

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown config option: {key}")
            setattr(self, key, value)

        if isinstance(self.base_url, str):
            self.base_url = self.base_url.rstrip('/')

    def __repr__(self):
        return (f"Config(base_url={self.base_url!r}, storage_file={str(self.storage_file)!r}, "
                f"login_page={self.login_page!r}, use_cache={self.use_cache})")

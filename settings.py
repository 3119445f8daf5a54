import copy
import json
import logging
import os

__version__ = "0.1.0"

SETTINGS_FILE = os.path.join(os.path.expanduser("~"), ".mini_postman_settings.json")
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "User-Agent": f"Mini Postman/{__version__}",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

DEFAULT_SETTINGS = {
    "timeout": 30,
    "param_slots": 4,
    "encode_params": False,
    "theme": "darkly",
    "geometry": "900x700",
    "log_level": "INFO",
    "default_headers": DEFAULT_HEADERS,
}


def setup_logging(level="INFO"):
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def deep_merge(a: dict, b: dict) -> dict:
    out = copy.deepcopy(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def load_settings(path: str = SETTINGS_FILE) -> dict:
    if not os.path.exists(path):
        return copy.deepcopy(DEFAULT_SETTINGS)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return deep_merge(DEFAULT_SETTINGS, data)
    except (OSError, ValueError):
        logging.exception("Failed to load settings from %s", path)
        return copy.deepcopy(DEFAULT_SETTINGS)


def save_settings(settings: dict, path: str = SETTINGS_FILE):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)

import os
import json


"""
Persisting cli config
"""

DEFAULT_CONFIG_PATH = os.environ.get(
    "LOGTAP_CONFIG_PATH", os.path.expanduser("~/.logtap/config.json")
)


DEFAULTS = {
    "host": "0.0.0.0",
    "advertise_host": None,
    "max_body_length": 500,
    "sensitive_headers": ["authorization", "cookie"],
    "request_timeout": 5,
    "debug": False,
    "log": False
}

def load_user_config(path=DEFAULT_CONFIG_PATH):
    os.makedirs(os.path.dirname(path), exist_ok=True)

    if not os.path.exists(path):
        with open(path, "w") as f:
            json.dump(DEFAULTS, f, indent=2)
        return DEFAULTS.copy()

    try:
        with open(path, "r") as f:
            user_conf = json.load(f)
        return {**DEFAULTS, **{k: v for k, v in user_conf.items() if k in DEFAULTS}}
    except (OSError, ValueError, AttributeError):
        return DEFAULTS.copy()


def save_user_config(data, path=DEFAULT_CONFIG_PATH):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        json.dump({k: v for k, v in data.items() if k in DEFAULTS}, f, indent=2)

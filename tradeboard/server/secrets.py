from typing import Any, Dict, Optional

from tradeboard.config import Settings

MASK_CHAR = "•"
ENV_PLACEHOLDER = "__env__"
VISIBLE_TAIL = 4

# Stored secret -> environment variable that overrides it
SECRET_FIELDS = {
    "binanceApiKey": "BINANCE_API_KEY",
    "binanceApiSecret": "BINANCE_API_SECRET",
    "telegramBotToken": None,
}


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= VISIBLE_TAIL:
        return MASK_CHAR * len(value)
    return MASK_CHAR * (len(value) - VISIBLE_TAIL) + value[-VISIBLE_TAIL:]


def _env_value(env: Settings, name: Optional[str]) -> str:
    if not name:
        return ""
    return getattr(env, name, None) or ""


def sanitize_settings_response(data: Dict[str, Any], env: Settings) -> Dict[str, Any]:
    """Never echo a secret: environment-provided ones become ``__env__``, stored ones are masked."""
    sanitized = dict(data)
    for field, env_name in SECRET_FIELDS.items():
        if _env_value(env, env_name):
            sanitized[field] = ENV_PLACEHOLDER
        elif sanitized.get(field):
            sanitized[field] = mask_secret(sanitized[field])
    return sanitized


def sanitize_incoming_settings(payload: Dict[str, Any], env: Settings) -> Dict[str, Any]:
    """
    Drop secret fields the client echoed back instead of editing: masked values,
    the ``__env__`` placeholder, blanks, and anything the environment controls.
    """
    sanitized = dict(payload)
    for field, env_name in SECRET_FIELDS.items():
        if field not in sanitized:
            continue
        value = sanitized[field]
        echoed = isinstance(value, str) and (
            value.startswith(ENV_PLACEHOLDER) or not value.strip() or MASK_CHAR in value
        )
        if _env_value(env, env_name) or echoed:
            del sanitized[field]
    return sanitized

from typing import Any

# Khmer half-day tokens
HALF_DAY_TOKENS = {
    "មួយព្រឹក": 0.5,
    "មួយរសៀល": 0.5,
    "ពេលយប់": 0.5,
}

DAYS_UNIT = "ថ្ងៃ"


def is_half_day_token(raw_value: Any) -> bool:
    return isinstance(raw_value, str) and raw_value.strip() in HALF_DAY_TOKENS


def parse_duration(raw_value: Any) -> float:
    """
    Normalize a submitted duration to a number of days.

    Half-day tokens become 0.5, anything else is read as a float and
    unparsable values fall back to 0.
    """
    if raw_value is None or isinstance(raw_value, bool):
        return 0
    if is_half_day_token(raw_value):
        return HALF_DAY_TOKENS[raw_value.strip()]
    try:
        value = float(str(raw_value).strip())
    except ValueError:
        return 0
    if value != value or value in (float("inf"), float("-inf")):
        return 0
    return value


def format_number(value: float) -> str:
    return f"{value:g}"


def format_duration(raw_value: Any) -> str:
    if is_half_day_token(raw_value):
        return raw_value.strip()
    value = parse_duration(raw_value)
    if value > 0:
        return f"{format_number(value)} {DAYS_UNIT}"
    return str(raw_value) if raw_value is not None else ""

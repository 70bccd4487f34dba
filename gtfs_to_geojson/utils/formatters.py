import re
from datetime import timedelta

import pandas as pd

# Anything that would break a "<route>_<direction>" key or a file name
_UNSAFE_CHARS = re.compile(r"[^\w.\-]+")


def _is_blank(value) -> bool:
    return value is None or (not isinstance(value, str) and pd.isna(value)) or str(value).strip() == ""


def get_route_name(route) -> str:
    """Human readable, key safe route name: short name, else long name, else route id"""
    for field in ("route_short_name", "route_long_name", "route_id"):
        value = getattr(route, field, None)
        if not _is_blank(value):
            return _UNSAFE_CHARS.sub("-", str(value).strip()).strip("-") or str(route.route_id)
    return "route"


def format_seconds(elapsed: timedelta) -> str:
    return f"{elapsed.total_seconds():.2f}"


def to_camel_case(value: str) -> str:
    head, *tail = value.split("-")
    return head + "".join(part.capitalize() for part in tail)

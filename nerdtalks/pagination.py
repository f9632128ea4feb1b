import math

MAX_PAGE_LIMIT = 100
# Keeps (page - 1) * limit well inside a BSON int64
MAX_PAGE = 1_000_000


def parse_positive_int(value, default: int) -> int:
    """Lenient integer parsing: absent, non-numeric or non-positive values use the default"""
    if value is None:
        return default
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def page_params(page, limit, default_limit: int):
    """Return (page, limit, skip) clamped to sane positive values"""
    page = min(parse_positive_int(page, 1), MAX_PAGE)
    limit = min(parse_positive_int(limit, default_limit), MAX_PAGE_LIMIT)
    return page, limit, (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on")

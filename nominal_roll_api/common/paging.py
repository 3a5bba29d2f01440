# nominal_roll_api/common/paging.py
from flask import request, current_app

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100

def page_size():
    """Read ``page`` (1-based) and ``size``/``limit`` from the query string, clamped."""
    default_size = current_app.config.get("SEARCH_PAGE_SIZE", DEFAULT_SIZE)
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except (TypeError, ValueError):
        page = DEFAULT_PAGE
    raw = request.args.get("size", request.args.get("limit"))
    try:
        size = int(raw) if raw is not None else default_size
        size = max(1, min(size, MAX_SIZE))
    except (TypeError, ValueError):
        size = default_size
    return page, size

def fetch_page(query, page: int, size: int):
    """
    Offset pagination without a COUNT: fetch ``size + 1`` rows and use the
    extra row only as the "there is another page" signal.
    Returns (rows, has_next_page).
    """
    rows = query.offset((page - 1) * size).limit(size + 1).all()
    return rows[:size], len(rows) > size

def text_q():
    q = request.args.get("q", "")
    return q.strip() or None

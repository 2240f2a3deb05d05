import math
from urllib.parse import urlencode

from flask import request, current_app


def _page_params():
    cfg = current_app.config
    default_size = cfg.get("DEFAULT_PER_PAGE", 20)

    page = max(request.args.get("page", type=int) or 1, 1)
    per_page = request.args.get("per_page", type=int) or default_size
    if per_page < 1:
        per_page = default_size
    return page, min(per_page, cfg.get("MAX_PER_PAGE", 100))


def _link(page, per_page):
    args = request.args.to_dict()
    args.update(page=page, per_page=per_page)
    return f"{request.base_url}?{urlencode(args)}"


def paginate(query, serialize):
    """Run ``query`` for the requested page and build the list payload.

    ``serialize`` turns each row into a dict. Out of range pages are clamped
    to the last page.
    """
    page, per_page = _page_params()

    total_items = query.order_by(None).count()
    total_pages = max(1, math.ceil(total_items / per_page))
    page = min(page, total_pages)

    rows = query.limit(per_page).offset((page - 1) * per_page).all()

    links = {"self": _link(page, per_page)}
    if page > 1:
        links["prev"] = _link(page - 1, per_page)
    if page < total_pages:
        links["next"] = _link(page + 1, per_page)

    return {
        "items": [serialize(r) for r in rows],
        "meta": {
            "page": page,
            "per_page": per_page,
            "total_items": total_items,
            "total_pages": total_pages,
        },
        "links": links,
    }

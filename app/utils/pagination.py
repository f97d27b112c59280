from flask import request


def page_args(default_limit=20, max_limit=100):
    try:
        page = max(int(request.args.get("page", 1)), 1)
        limit = min(max(int(request.args.get("limit", default_limit)), 1), max_limit)
    except (TypeError, ValueError):
        page, limit = 1, default_limit
    return page, limit


def paginate_query(query, page, limit):
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = (total + limit - 1) // limit
    return items, {"total": total, "page": page, "limit": limit, "total_pages": total_pages}

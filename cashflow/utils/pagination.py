from flask import request, url_for
from cashflow.utils.constants import MAX_PAGE_SIZE


DEFAULT_PAGE_SIZE = 10


def _positive_int(value, default):
    try:
        value = int(value)
    except (ValueError, TypeError):
        return default
    return value if value > 0 else default


class PaginatedResult:
    """
    One page of a Flask-SQLAlchemy query plus its navigation metadata.

    Serialized as total/page counters, previous/next links and ``data``.
    """

    def __init__(self, query, page=1, per_page=DEFAULT_PAGE_SIZE):
        self.page = max(1, page)
        self.per_page = min(max(1, per_page), MAX_PAGE_SIZE)
        self.pagination = query.paginate(
            page=self.page, per_page=self.per_page, error_out=False
        )

    @property
    def items(self):
        return self.pagination.items

    def to_dict(self, schema, endpoint=None, **params):
        response = {
            "total_items": self.pagination.total,
            "total_pages": self.pagination.pages,
            "current_page": self.page,
            "per_page": self.per_page,
            "previous": None,
            "next": None,
        }

        if endpoint:
            params["per_page"] = self.per_page
            if self.pagination.has_prev:
                response["previous"] = url_for(
                    endpoint, **params, page=self.page - 1, _external=True
                )
            if self.pagination.has_next:
                response["next"] = url_for(
                    endpoint, **params, page=self.page + 1, _external=True
                )

        response["data"] = schema.dump(self.items)
        return response


def paginate(query, schema, endpoint=None):
    """
    Paginate ``query`` using the page/per_page request arguments.

    Other request arguments (filters) are carried into the navigation links.
    """
    params = request.args.to_dict()
    page = _positive_int(params.pop("page", 1), 1)
    per_page = _positive_int(params.pop("per_page", DEFAULT_PAGE_SIZE), DEFAULT_PAGE_SIZE)

    return PaginatedResult(query, page, per_page).to_dict(schema, endpoint, **params)

import math

from fastapi import Query, Request, Response

from courier.config import PAGINATION_DEFAULT_LIMIT, PAGINATION_MAX_LIMIT


class Pagination:
    """Page/limit query parameters turned into skip/limit for Mongo queries."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(PAGINATION_DEFAULT_LIMIT, ge=1, le=PAGINATION_MAX_LIMIT),
    ) -> None:
        self.page = page
        self.limit = limit

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def page_count(self, total: int) -> int:
        return math.ceil(total / self.limit) if total else 0

    def has_next_pages(self, page_count: int) -> bool:
        return self.page < page_count


def set_link_header(request: Request, response: Response, pagination: Pagination, total: int) -> None:
    """Point the client to the next page with a ``Link: <...>; rel="next"`` header."""
    if pagination.has_next_pages(pagination.page_count(total)):
        next_url = request.url.include_query_params(page=pagination.page + 1)
        response.headers["Link"] = f'<{next_url}>; rel="next"'

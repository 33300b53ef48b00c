"""Query helpers shared by the dispatch repositories."""

PAGE_SIZE = 100


def fetch_all(query, page_size: int = PAGE_SIZE) -> list:
    """Every record matching ``query``, read page by page.

    A bare ``query.all()`` returns only the first page of results.
    """
    records = []
    offset = 0
    while True:
        page = query.offset(offset).limit(page_size).all()
        records.extend(page.items)
        if len(page.items) < page_size:
            return records
        offset += page_size

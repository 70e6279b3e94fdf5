from app.search.client import SearchClient, SearchError

__all__ = ["SearchClient", "SearchError"]

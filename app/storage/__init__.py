from app.storage.store import BrowserStore

__all__ = ["BrowserStore"]

"""Remote store infrastructure package."""

from .http_record_store import HttpRecordStore

__all__ = ["HttpRecordStore"]

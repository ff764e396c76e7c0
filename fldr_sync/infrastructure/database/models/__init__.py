from .local_entry import LocalEntryModel

__all__ = [
    "LocalEntryModel",
]

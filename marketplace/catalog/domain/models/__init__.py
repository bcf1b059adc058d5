from .catalog import Listing


__all__ = [
    "Listing",
]

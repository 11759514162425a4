from .data_utils import DataUtils
from .ttl_cache import NullCache, TTLCache

__all__ = ["DataUtils", "NullCache", "TTLCache"]

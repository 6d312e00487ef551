"""Fail-open key/value cache."""

from shared.cache.client import CacheClient

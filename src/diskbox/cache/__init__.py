"""
Cache package.

- base.py: CacheProtocol, the connection contract
- disk_store.py: DiskStore, one JSON record file per entry
- sweeper.py: background reclamation of expired/corrupt records
- paths.py / codec.py: key-to-path mapping and record format
- policy.py: CachePolicy, a segment-bound view of a connection
"""

from diskbox.cache.base import CacheProtocol
from diskbox.cache.disk_store import DiskStore
from diskbox.cache.policy import CachePolicy
from diskbox.cache.sweeper import SweepReport, Sweeper

__all__ = ["CacheProtocol", "CachePolicy", "DiskStore", "SweepReport", "Sweeper"]

"""
diskbox: a disk-backed key/value cache with TTL expiration.
"""

__version__ = "0.1.0"

"""Alert State Synchronization and Geospatial AOI Matching.

Keeps a client-side view of security alerts consistent across REST
snapshots and a push event channel, and matches user-supplied areas of
interest against satellite tile catalogs.
"""

__version__ = "0.1.0"

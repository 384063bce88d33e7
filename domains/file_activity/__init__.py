"""
File Activity Domain

Audits file creation under a directory tree:
- Walks the tree and watches every directory
- Turns creation events on regular files into {name, date} records
- Persists each record to a MongoDB collection
"""

__all__ = ["recorder", "watchers", "writer"]

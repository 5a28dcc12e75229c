"""
HTTP surface of the registry indexer (FastAPI).
"""

from registry_indexer.api.app import create_app

__all__ = ["create_app"]

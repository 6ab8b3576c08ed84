"""
Document module for managing the MongoDB store handle.

This module provides functionality for:
- Reading connection settings from the environment
- Owning the shared AsyncMongoClient
- Handing out CollectionQuery builders
"""

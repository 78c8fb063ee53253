"""
Storage subsystem.

Components:
- schema.py: declared collections and indexes (SchemaRegistry)
- connection.py: the single SQLite handle and scoped transactions (StoreManager)
- records.py: generic add/get/update/remove/index queries over JSON documents
"""

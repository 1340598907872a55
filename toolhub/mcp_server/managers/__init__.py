"""Data access managers for the MCP server.

Each module provides async functions that encapsulate record-store CRUD.
Managers accept ``AsyncSession`` as a parameter and raise domain exceptions
(``LookupError``, ``ValueError``), never tool or protocol errors -- turning
them into tool results is the tool handler's responsibility.
"""

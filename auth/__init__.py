"""auth/ -- Identity, tenancy, and access-control package for OrgAccess.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/. api/ imports from auth/, not the other way
around. auth/dependencies.py is the single exception that touches FastAPI,
because it is part of the FastAPI dependency injection system.
"""

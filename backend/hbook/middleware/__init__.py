# Middleware package init
"""
Hbook Backend — Middleware Package
===================================

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    - Rate Limit runs first and rejects before any session lookup
    - Request ID is set before Logging reads it
    - Responses pass back through the chain in reverse order
"""

"""
SchoolDesk Backend — Middleware Package
========================================

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    Request ID runs first so every log line of the request, including the
    access log line, carries the same correlation id.
"""

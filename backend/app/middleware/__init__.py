# Middleware package init
"""
TaskManager Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → Route Handler

    1. Request ID: correlation ID for logs and error responses
    2. Logging: method, path, status and duration, tagged with the request ID

    Responses travel back through the same chain in reverse, so the
    X-Request-ID header is present on every response, errors included.
"""

# Routes package init
"""
TaskManager Backend — API Routes Package
========================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - lifecycle.py:  DELETE /api/{tasks|activities|comments|attachments}/{id}
                     POST   /api/{tasks|activities|comments|attachments}/{id}/restore
    - health.py:     GET    /health

Design Principle:
    Routes are THIN: read the tenant scope from headers, make one
    TransactionCoordinator.run() call, serialize the result. Business logic
    lives in app.services.
"""

# Services package init
"""
TaskManager Backend — Services Layer
====================================

What:  Business logic between the routes (HTTP) and the database.

Service Inventory (leaves first):
    - scope:              TenantScope + scoped() query filter
    - parents:            ParentRef tagged union and per-variant resolvers
    - transaction:        TransactionCoordinator / UnitOfWork / require_transaction
    - inventory_service:  conditional stock delta applier
    - cascade_service:    bounded BFS over comment trees + bulk soft-delete flips
    - events:             post-commit collaborator boundary
    - lifecycle_service:  delete / restore / consumption flows built from the above

Every write in these modules requires an active transaction; only the
coordinator opens and commits one.
"""

"""
Catalog Service package for the Catalog Access Layer.

The service answers "get catalog item by ISBN" from a local store, refreshing
stale or missing entries from a remote book provider:
- Fresh local hits never reach the provider
- Refreshed items are merged with locally-owned fields (price, stock, rating)
- Write-backs to the store run in the background

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.domain: Item entity and staleness rule.
- app.ports: Repository and external source contracts.
- app.adapters: Redis / in-memory repositories, HTTP book source.
- app.catalog: The lookup service.
"""

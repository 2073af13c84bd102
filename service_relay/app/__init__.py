"""
Relay Service package.

The relay fronts a paginated REST API:
- Relaying: GET requests forwarded with per-hop header translation
- Pagination: "next" links followed until the final page
- Caching: per-request freshness windows over an in-memory store

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.adapters: Upstream client, header translation, link parsing.
- app.caching: Response cache and cache manager.
- app.domain: Data model and response assembly.
"""

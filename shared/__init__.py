"""
Shared utilities for the paginated relay.

This package aggregates common building blocks consumed by relay services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI application shell (CORS, timing, health, metrics)

Do not import from service_* packages into shared/.
"""

"""
Infrastructure layer - Adapters for the registration engine.

This layer contains:
- In-memory stub adapters (repositories, notifier, ticket renderer)
- Production adapters (HTTP messaging gateway, system clock)
- Observability (structlog configuration) and monitoring (Prometheus)

IMPORT RULES:
- CAN import from: domain, application, config
- CANNOT import from: api
"""

"""
Application layer - Use cases and orchestration for the registration engine.

This layer contains:
- Application services (stage machine, ticket ledger, segments, campaigns)
- Port definitions (abstract interfaces for infrastructure)

IMPORT RULES:
- CAN import from: domain
- CANNOT import from: infrastructure, api
"""

"""
Domain layer - Pure business logic for the registration engine.

This layer contains:
- Domain models (registration record, stage machine table, tickets, campaigns)
- Domain services (eligibility rules, segment filter, template rendering)
- Domain exceptions

CRITICAL: This layer must NOT import from application, infrastructure, or api.
Only stdlib and typing imports are allowed.
"""

from bmm_engine.domain.exceptions import RegistrationEngineError

__all__: list[str] = ["RegistrationEngineError"]

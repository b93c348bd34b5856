"""
API layer - HTTP entry points for the registration engine.

IMPORT RULES:
- CAN import from: application, domain, bootstrap, config
- CANNOT import from: infrastructure (wiring goes through bootstrap)
"""

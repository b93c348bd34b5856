"""Configuration module for the registration engine.

Available Configurations:
- EngineConfig: Dispatch tuning, links and special vote policy
- NotifierGatewayConfig: HTTP messaging gateway adapter
"""

from bmm_engine.config.engine_config import (
    TEST_ENGINE_CONFIG,
    EngineConfig,
    NotifierGatewayConfig,
)

__all__ = [
    "EngineConfig",
    "NotifierGatewayConfig",
    "TEST_ENGINE_CONFIG",
]

"""Production adapters for the application ports."""

from bmm_engine.infrastructure.adapters.http_notifier import HttpNotifierAdapter
from bmm_engine.infrastructure.adapters.system_time_authority import SystemTimeAuthority

__all__: list[str] = ["HttpNotifierAdapter", "SystemTimeAuthority"]

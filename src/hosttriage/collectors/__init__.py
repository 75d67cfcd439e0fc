"""Persistence indicator collectors.

One collector per indicator category:
- Registry Run/RunOnce keys
- Startup folders
- Scheduled tasks
- Services
- IFEO debugger keys
- WMI event subscriptions
"""

# Import collectors to register them (registration order = run order)
from hosttriage.collectors import (
    registry_run,  # noqa: F401
    startup_folder,  # noqa: F401
    scheduled_tasks,  # noqa: F401
    services,  # noqa: F401
    ifeo,  # noqa: F401
    wmi,  # noqa: F401
)
from hosttriage.collectors.base import BaseCollector, CollectorRegistry, build_collectors

__all__ = ["BaseCollector", "CollectorRegistry", "build_collectors"]

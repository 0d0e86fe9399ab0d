"""Monitor metrics package.

Exports the explicit metrics handle passed to every component.
"""

from .monitor_metrics import MonitorMetrics, group_path_label

__all__ = ["MonitorMetrics", "group_path_label"]

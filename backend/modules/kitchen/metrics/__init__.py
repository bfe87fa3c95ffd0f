from .kitchen_metrics import KitchenMetricsCollector

__all__ = ["KitchenMetricsCollector"]

from .kitchen_tick_task import KitchenTickScheduler

__all__ = ["KitchenTickScheduler"]

# backend/modules/kitchen/config/__init__.py

from .kitchen_config import KitchenEngineConfig, get_kitchen_config

__all__ = ["KitchenEngineConfig", "get_kitchen_config"]

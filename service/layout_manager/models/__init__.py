from layout_manager.models.layout import Layout

__all__ = ["Layout"]

from .assets import AssetResponder

__all__ = ["AssetResponder"]

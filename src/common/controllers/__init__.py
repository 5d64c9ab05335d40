from .base import UserAwareController

__all__ = ["UserAwareController"]

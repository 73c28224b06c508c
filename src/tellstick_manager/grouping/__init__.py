from .group_manager import GroupManager
from .models import Group

__all__ = ["Group", "GroupManager"]

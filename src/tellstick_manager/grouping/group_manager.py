"""
Group manager for handling device groups.
"""
import os
import threading
from typing import Callable, Dict, Iterable, List, Optional

from ..devices.library import DeviceLibrary
from ..exceptions import DeviceError, GroupExistsError, GroupNotFoundError
from ..utils.logging import get_logger
from .models import Group

# Get the logger for this module
logger = get_logger(__name__)

GROUPS_FILE_ENV = "TELLSTICK_GROUPS_FILE"


class GroupManager:
    """
    Manager for device groups.

    Groups live in memory for the lifetime of the process. They can be seeded
    from a text file of GROUP configuration lines, which is never written back.
    Actions fan out to the member devices that support them; other members
    are skipped.
    """

    def __init__(self, devices: DeviceLibrary, groups_file: Optional[str] = None):
        """
        Initialize the group manager.

        Args:
            devices: Backend the group actions are sent to
            groups_file: Optional file of GROUP lines to load. The environment
                variable TELLSTICK_GROUPS_FILE takes precedence.
        """
        self.devices = devices
        self.groups: Dict[int, Group] = {}
        self._lock = threading.RLock()

        groups_file = os.environ.get(GROUPS_FILE_ENV) or groups_file
        if groups_file:
            self.load_file(groups_file)

    def load_config(self, lines: Iterable[str]) -> List[Group]:
        """
        Parse and add groups from configuration lines.

        Blank lines and lines starting with '#' are ignored.

        Returns:
            List[Group]: The groups added

        Raises:
            GroupParseError: If a line is malformed
            GroupExistsError: If a group id is already taken
        """
        added = []
        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            added.append(self.add(Group.parse(line)))
        return added

    def load_file(self, path: str) -> List[Group]:
        """Load groups from a file of configuration lines."""
        with open(path, "r", encoding="utf-8") as f:
            added = self.load_config(f)
        logger.info(f"Loaded {len(added)} groups from {path}")
        return added

    def to_config_lines(self) -> List[str]:
        """Serialize all groups, ordered by id."""
        return [group.to_config_str() for group in self.list_groups()]

    def add(self, group: Group) -> Group:
        """
        Add a group.

        Raises:
            GroupExistsError: If a group with the same id exists
        """
        with self._lock:
            if group.id in self.groups:
                raise GroupExistsError(group.id)
            self.groups[group.id] = group
        logger.info(f"Added group {group.id} '{group.name}' with {len(group.device_ids)} devices")
        return group

    def get(self, group_id: int) -> Optional[Group]:
        """
        Get a group by id.

        Returns:
            Optional[Group]: The group, or None if not found
        """
        with self._lock:
            return self.groups.get(group_id)

    def list_groups(self) -> List[Group]:
        with self._lock:
            return [self.groups[group_id] for group_id in sorted(self.groups)]

    def remove(self, group_id: int) -> bool:
        """
        Remove a group.

        Returns:
            bool: True if the group was removed, False if it didn't exist
        """
        with self._lock:
            if self.groups.pop(group_id, None) is None:
                return False
        logger.info(f"Removed group {group_id}")
        return True

    def _member_ids(self, group_id: int) -> List[int]:
        with self._lock:
            group = self.groups.get(group_id)
            if group is None:
                raise GroupNotFoundError(group_id)
            return list(group.device_ids)

    def _fan_out(
        self,
        group_id: int,
        action: str,
        supported: Callable[[int], bool],
        perform: Callable[[int], None]
    ) -> None:
        for device_id in self._member_ids(group_id):
            if not supported(device_id):
                continue
            try:
                perform(device_id)
            except DeviceError as e:
                logger.warning(f"Group {group_id}: {action} failed for device {device_id}: {str(e)}")

    def turn_on(self, group_id: int) -> None:
        """
        Turn on every member device that supports on/off.

        Raises:
            GroupNotFoundError: If the group doesn't exist
        """
        self._fan_out(group_id, "turn on", self.devices.supports_on_off, self.devices.turn_on)

    def turn_off(self, group_id: int) -> None:
        """
        Turn off every member device that supports on/off.

        Raises:
            GroupNotFoundError: If the group doesn't exist
        """
        self._fan_out(group_id, "turn off", self.devices.supports_on_off, self.devices.turn_off)

    def dim(self, group_id: int, level: int) -> None:
        """
        Dim every member device that supports dimming.

        Raises:
            GroupNotFoundError: If the group doesn't exist
        """
        self._fan_out(
            group_id,
            f"dim to {level}",
            self.devices.supports_dim,
            lambda device_id: self.devices.dim(device_id, level)
        )

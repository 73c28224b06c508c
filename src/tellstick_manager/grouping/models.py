"""
Models for defining device groups.
"""
import re
from dataclasses import dataclass, field
from typing import List

from ..exceptions import GroupParseError

GROUP_KEYWORD = "GROUP"

_DECIMAL = re.compile(r"[+-]?[0-9]+")


def _parse_int(value: str, what: str) -> int:
    # int() alone would also take "1_0" and non-ASCII digits
    if not _DECIMAL.fullmatch(value):
        raise GroupParseError(f"invalid {what} {value}")
    return int(value)


@dataclass
class Group:
    """
    Represents a group of devices.

    The order of device_ids is kept for serialization only; actions treat the
    group as a set.
    """
    id: int
    name: str
    device_ids: List[int] = field(default_factory=list)

    @classmethod
    def parse(cls, config_str: str) -> "Group":
        """
        Create a group from a configuration line.

        The syntax is:
            GROUP <groupID> "<name>" <ID1> [<ID2> .. <IDn>]

        Args:
            config_str: The configuration line

        Returns:
            Group: A new Group instance

        Raises:
            GroupParseError: If the line is malformed
        """
        sections = config_str.split('"')
        if len(sections) != 3:
            raise GroupParseError('Group name must be within "')
        words = sections[0].split()
        if not words or words[0] != GROUP_KEYWORD:
            found = words[0] if words else ""
            raise GroupParseError(
                f"This is not a group configuration. Expected {GROUP_KEYWORD} got {found}"
            )
        if len(words) != 2:
            raise GroupParseError("Group id is missing")
        group_id = _parse_int(words[1], "group id")
        device_ids = [_parse_int(word, "device id") for word in sections[2].split()]
        return cls(id=group_id, name=sections[1], device_ids=device_ids)

    def to_config_str(self) -> str:
        """Serialize the group using single spaces and a quoted name."""
        words = [GROUP_KEYWORD, str(self.id), f'"{self.name}"']
        words.extend(str(device_id) for device_id in self.device_ids)
        return " ".join(words)

    def has_device(self, device_id: int) -> bool:
        return device_id in self.device_ids


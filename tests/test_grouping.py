#!/usr/bin/env python
"""Test cases for the grouping functionality."""

import os
import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest import mock

# Add the src directory to the Python path
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from tellstick_manager.devices.mock import MockDevice, MockDeviceLibrary
from tellstick_manager.exceptions import (
    GroupExistsError,
    GroupNotFoundError,
    GroupParseError,
    NativeCallError,
)
from tellstick_manager.grouping.group_manager import GROUPS_FILE_ENV, GroupManager
from tellstick_manager.grouping.models import Group


class TestGroupParsing(unittest.TestCase):
    """Test parsing and serializing GROUP configuration lines."""

    def test_parse_irregular_spacing(self):
        group = Group.parse('GROUP     872    "a" 7 6 5    88 8  ')
        self.assertEqual(group.id, 872)
        self.assertEqual(group.name, "a")
        self.assertEqual(group.device_ids, [7, 6, 5, 88, 8])

    def test_parse_name_with_spaces(self):
        line = 'GROUP 5424 "hello there or what" 99 22 43 1 6 7 121'
        group = Group.parse(line)
        self.assertEqual(group.name, "hello there or what")
        self.assertEqual(group.to_config_str(), line)

    def test_serialize_normalizes_spacing(self):
        group = Group.parse('GROUP     872    "a" 7 6 5    88 8  ')
        self.assertEqual(group.to_config_str(), 'GROUP 872 "a" 7 6 5 88 8')

    def test_parse_without_members(self):
        group = Group.parse('GROUP 2 "Garden"')
        self.assertEqual(group.device_ids, [])
        self.assertEqual(group.to_config_str(), 'GROUP 2 "Garden"')

    def test_member_order_is_kept(self):
        group = Group.parse('GROUP 1 "x" 3 1 2')
        self.assertEqual(group.device_ids, [3, 1, 2])
        self.assertTrue(group.has_device(1))
        self.assertFalse(group.has_device(4))

    def test_name_must_be_quoted(self):
        with self.assertRaises(GroupParseError) as ctx:
            Group.parse("GROUP 1 lamps 2 3")
        self.assertIn('Group name must be within "', str(ctx.exception))

    def test_extra_quote_is_rejected(self):
        with self.assertRaises(GroupParseError):
            Group.parse('GROUP 1 "a" "b" 2')

    def test_wrong_keyword(self):
        with self.assertRaises(GroupParseError) as ctx:
            Group.parse('GROUPS 1 "a" 2')
        self.assertIn("Expected GROUP got GROUPS", str(ctx.exception))

    def test_missing_group_id(self):
        with self.assertRaises(GroupParseError) as ctx:
            Group.parse('GROUP "a" 2')
        self.assertIn("Group id is missing", str(ctx.exception))

    def test_non_numeric_group_id(self):
        with self.assertRaises(GroupParseError) as ctx:
            Group.parse('GROUP one "a" 2')
        self.assertIn("invalid group id one", str(ctx.exception))

    def test_non_numeric_member(self):
        with self.assertRaises(GroupParseError) as ctx:
            Group.parse('GROUP 1 "a" 2 three')
        self.assertIn("invalid device id three", str(ctx.exception))

    def test_ids_must_be_ascii_decimal(self):
        lines = [
            'GROUP 1_0 "x" 2',
            'GROUP \u0663 "x" 2',
            'GROUP 1 "x" 2_0',
            'GROUP 1 "x" 2 \u0663',
        ]
        for line in lines:
            with self.assertRaises(GroupParseError, msg=line):
                Group.parse(line)

    def test_parse_error_is_value_error(self):
        with self.assertRaises(ValueError):
            Group.parse("")


class TestGroupManager(unittest.TestCase):
    """Test the GroupManager class."""

    def setUp(self):
        """Set up the test environment."""
        self.env = mock.patch.dict(os.environ)
        self.env.start()
        os.environ.pop(GROUPS_FILE_ENV, None)

        self.devices = MockDeviceLibrary()
        self.devices.add_device(MockDevice(id=1, name="Lamp", supports_on_off=True))
        self.devices.add_device(MockDevice(id=2, name="Dimmer", supports_on_off=True, supports_dim=True))
        self.devices.add_device(MockDevice(id=3, name="Bell"))
        self.devices.add_device(MockDevice(id=4, name="Porch", supports_on_off=True))
        self.group_manager = GroupManager(self.devices)

    def tearDown(self):
        """Clean up the test environment."""
        self.env.stop()

    def test_add_and_get(self):
        group = self.group_manager.add(Group(id=1, name="All", device_ids=[1, 2]))
        self.assertIs(self.group_manager.get(1), group)
        self.assertIsNone(self.group_manager.get(2))

    def test_add_duplicate(self):
        self.group_manager.add(Group(id=1, name="All"))
        with self.assertRaises(GroupExistsError) as ctx:
            self.group_manager.add(Group(id=1, name="Other"))
        self.assertEqual(str(ctx.exception), "Group with id 1 already exists")
        self.assertEqual(self.group_manager.get(1).name, "All")

    def test_list_groups_sorted(self):
        for group_id in (5, 1, 3):
            self.group_manager.add(Group(id=group_id, name=f"g{group_id}"))
        self.assertEqual([g.id for g in self.group_manager.list_groups()], [1, 3, 5])

    def test_remove(self):
        self.group_manager.add(Group(id=1, name="All"))
        self.assertTrue(self.group_manager.remove(1))
        self.assertFalse(self.group_manager.remove(1))
        self.assertIsNone(self.group_manager.get(1))

    def test_turn_on_skips_unsupported_members(self):
        # 3 has no on/off and 99 does not exist
        self.group_manager.add(Group(id=1, name="All", device_ids=[1, 2, 3, 99]))
        self.group_manager.turn_on(1)
        self.assertTrue(self.devices.devices[1].is_on)
        self.assertTrue(self.devices.devices[2].is_on)
        self.assertFalse(self.devices.devices[3].is_on)

        self.group_manager.turn_off(1)
        self.assertFalse(self.devices.devices[1].is_on)
        self.assertFalse(self.devices.devices[2].is_on)

    def test_dim_only_reaches_dimmers(self):
        self.group_manager.add(Group(id=1, name="All", device_ids=[1, 2]))
        self.group_manager.dim(1, 128)
        self.assertEqual(self.devices.devices[2].dim_level, 128)
        self.assertEqual(self.devices.devices[1].dim_level, 0)

    def test_member_failure_does_not_stop_group(self):
        self.group_manager.add(Group(id=1, name="Pair", device_ids=[1, 4]))
        failure = NativeCallError("communication error", code=-5)
        with mock.patch.object(self.devices, "turn_on", side_effect=[failure, None]) as turn_on:
            with self.assertLogs("tellstick_manager.grouping.group_manager", level="WARNING") as logs:
                self.group_manager.turn_on(1)
        self.assertEqual(turn_on.call_count, 2)
        self.assertIn("communication error", logs.output[0])

    def test_action_on_missing_group(self):
        with self.assertRaises(GroupNotFoundError):
            self.group_manager.turn_on(7)
        with self.assertRaises(GroupNotFoundError):
            self.group_manager.dim(7, 10)

    def test_load_config(self):
        added = self.group_manager.load_config([
            "# living room",
            "",
            'GROUP 2 "Living room" 1 2',
            '   GROUP 1 "Outside" 4   ',
        ])
        self.assertEqual([g.id for g in added], [2, 1])
        self.assertEqual(self.group_manager.to_config_lines(), [
            'GROUP 1 "Outside" 4',
            'GROUP 2 "Living room" 1 2',
        ])

    def test_load_config_duplicate(self):
        with self.assertRaises(GroupExistsError):
            self.group_manager.load_config(['GROUP 1 "a"', 'GROUP 1 "b"'])

    def test_load_file_and_env_override(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            configured = os.path.join(temp_dir, "configured.conf")
            from_env = os.path.join(temp_dir, "env.conf")
            with open(configured, "w", encoding="utf-8") as f:
                f.write('GROUP 1 "Configured" 1\n')
            with open(from_env, "w", encoding="utf-8") as f:
                f.write('GROUP 2 "From env" 2\n')

            group_manager = GroupManager(self.devices, groups_file=configured)
            self.assertEqual([g.name for g in group_manager.list_groups()], ["Configured"])

            os.environ[GROUPS_FILE_ENV] = from_env
            group_manager = GroupManager(self.devices, groups_file=configured)
            self.assertEqual([g.name for g in group_manager.list_groups()], ["From env"])

    def test_concurrent_add_and_actions(self):
        """Test adding groups and running actions from multiple threads."""
        def add_group(group_id):
            return self.group_manager.add(Group(id=group_id, name=f"g{group_id}", device_ids=[1, 2, 4]))

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = list(executor.map(add_group, range(20)))
        self.assertEqual(len(results), 20)
        self.assertEqual(len(self.group_manager.list_groups()), 20)

        with ThreadPoolExecutor(max_workers=5) as executor:
            list(executor.map(self.group_manager.turn_on, range(20)))
        for device_id in (1, 2, 4):
            self.assertTrue(self.devices.devices[device_id].is_on)

    def test_concurrent_duplicate_add(self):
        def add_group(_):
            try:
                self.group_manager.add(Group(id=1, name="same"))
                return True
            except GroupExistsError:
                return False

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(add_group, range(16)))
        self.assertEqual(results.count(True), 1)


if __name__ == "__main__":
    unittest.main()

import unittest
from types import SimpleNamespace
from unittest import mock

from jumperless.errors import DiscoveryError
from jumperless.services import PortRole, collapse_alias_ports, list_ports

JUMPERLESS_ID = (0xACAB, 0x1312)


def _port(device, vid=JUMPERLESS_ID[0], pid=JUMPERLESS_ID[1], product="Jumperless"):
    return SimpleNamespace(device=device, vid=vid, pid=pid, product=product)


class CollapseAliasPortsTests(unittest.TestCase):
    def test_keeps_only_callout_nodes_when_both_present(self) -> None:
        ports = [
            _port("/dev/cu.usbmodem01"),
            _port("/dev/tty.usbmodem01"),
            _port("/dev/cu.usbmodem03"),
            _port("/dev/tty.usbmodem03"),
        ]
        result = collapse_alias_ports(ports)
        self.assertEqual(
            [info.device for info in result],
            ["/dev/cu.usbmodem01", "/dev/cu.usbmodem03"],
        )

    def test_leaves_other_platforms_alone(self) -> None:
        ports = [_port("/dev/ttyACM0"), _port("/dev/ttyACM1")]
        self.assertEqual(collapse_alias_ports(ports), ports)


@mock.patch("jumperless.services.ports.serial.tools.list_ports.comports")
class ListPortsTests(unittest.TestCase):
    def test_single_port_is_primary(self, mock_comports) -> None:
        mock_comports.return_value = [_port("/dev/ttyACM0")]
        found = list_ports()
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].port_name, "/dev/ttyACM0")
        self.assertIs(found[0].role, PortRole.PRIMARY)
        self.assertEqual(found[0].usb_id, JUMPERLESS_ID)

    def test_two_ports_greater_name_is_primary(self, mock_comports) -> None:
        mock_comports.return_value = [_port("/dev/ttyACM1"), _port("/dev/ttyACM0")]
        roles = {found.port_name: found.role for found in list_ports()}
        self.assertEqual(
            roles,
            {"/dev/ttyACM1": PortRole.PRIMARY, "/dev/ttyACM0": PortRole.SECONDARY},
        )

    def test_alias_duplicates_collapse_before_role_assignment(self, mock_comports) -> None:
        mock_comports.return_value = [
            _port("/dev/cu.usbmodem01"),
            _port("/dev/tty.usbmodem01"),
            _port("/dev/cu.usbmodem03"),
            _port("/dev/tty.usbmodem03"),
        ]
        roles = {found.port_name: found.role for found in list_ports()}
        self.assertEqual(
            roles,
            {
                "/dev/cu.usbmodem03": PortRole.PRIMARY,
                "/dev/cu.usbmodem01": PortRole.SECONDARY,
            },
        )

    def test_more_than_two_ports_get_no_role(self, mock_comports) -> None:
        mock_comports.return_value = [
            _port("/dev/ttyACM0"),
            _port("/dev/ttyACM1"),
            _port("/dev/ttyACM2"),
        ]
        with self.assertLogs("jumperless.services.ports", level="ERROR"):
            self.assertEqual(list_ports(), [])

    def test_other_devices_are_unknown(self, mock_comports) -> None:
        mock_comports.return_value = [
            _port("/dev/ttyUSB0", vid=0x0403, pid=0x6001, product="FT232R USB UART"),
            _port("/dev/ttyUSB1", vid=0x0403, pid=0x6001, product="FT232R USB UART"),
            SimpleNamespace(device="/dev/ttyS0", vid=None, pid=None, product=None),
        ]
        found = list_ports()
        self.assertEqual(
            [(item.port_name, item.role) for item in found],
            [("/dev/ttyUSB0", PortRole.UNKNOWN), ("/dev/ttyUSB1", PortRole.UNKNOWN)],
        )

    def test_enumeration_failure(self, mock_comports) -> None:
        mock_comports.side_effect = OSError("no sysfs")
        with self.assertRaises(DiscoveryError):
            list_ports()


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

from jumperless.config import DeviceConfig
from jumperless.errors import (
    DeviceConnectionError,
    DiscoveryError,
    RequestFailed,
    ResponseTimeout,
)
from jumperless.services import DeviceManager, FoundPort, PortRole
from jumperless.transport import FileActivityLogger


def _fake_device(port: str = "/dev/ttyACM1") -> mock.Mock:
    device = mock.Mock(name=f"device[{port}]")
    device.port = port
    device.is_alive.return_value = True
    return device


class DeviceManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.opened = []

        def factory(port):
            device = _fake_device(port)
            self.opened.append(device)
            return device

        self.factory = factory

    def test_device_is_opened_lazily_and_reused(self) -> None:
        manager = DeviceManager("/dev/ttyACM1", device_factory=self.factory)
        self.assertEqual(self.opened, [])
        manager.with_device(lambda device: device.netlist())
        manager.with_device(lambda device: device.bridgelist())
        self.assertEqual(len(self.opened), 1)
        self.opened[0].netlist.assert_called_once_with()
        self.opened[0].bridgelist.assert_called_once_with()

    def test_returns_operation_result(self) -> None:
        manager = DeviceManager("/dev/ttyACM1", device_factory=self.factory)
        self.assertEqual(manager.with_device(lambda device: device.port), "/dev/ttyACM1")

    def test_failure_discards_connection(self) -> None:
        manager = DeviceManager("/dev/ttyACM1", device_factory=self.factory)

        def rejected(device):
            raise RequestFailed("Board rejected request 1", sequence=1)

        with self.assertRaises(RequestFailed):
            manager.with_device(rejected)
        self.opened[0].close.assert_called_once_with()

        manager.with_device(lambda device: None)
        self.assertEqual(len(self.opened), 2)

    def test_any_exception_discards_connection(self) -> None:
        manager = DeviceManager("/dev/ttyACM1", device_factory=self.factory)
        with self.assertRaises(KeyError):
            manager.with_device(lambda device: {}["missing"])
        manager.with_device(lambda device: None)
        self.assertEqual(len(self.opened), 2)

    def test_timeout_discards_connection(self) -> None:
        manager = DeviceManager("/dev/ttyACM1", device_factory=self.factory)

        def slow(device):
            raise ResponseTimeout("Timeout while waiting for reply to request 1")

        with self.assertRaises(ResponseTimeout):
            manager.with_device(slow)
        manager.with_device(lambda device: None)
        self.assertEqual(len(self.opened), 2)

    def test_dead_reader_triggers_reopen(self) -> None:
        manager = DeviceManager("/dev/ttyACM1", device_factory=self.factory)
        manager.with_device(lambda device: None)
        self.opened[0].is_alive.return_value = False
        manager.with_device(lambda device: None)
        self.assertEqual(len(self.opened), 2)
        self.opened[0].close.assert_called_once_with()

    @mock.patch("jumperless.services.device_manager.list_ports")
    def test_fixed_port_bypasses_discovery(self, mock_list_ports) -> None:
        manager = DeviceManager("/dev/ttyUSB7", device_factory=self.factory)
        manager.with_device(lambda device: None)
        mock_list_ports.assert_not_called()
        self.assertEqual(self.opened[0].port, "/dev/ttyUSB7")

    @mock.patch("jumperless.services.device_manager.list_ports")
    def test_discovery_opens_primary_port(self, mock_list_ports) -> None:
        mock_list_ports.return_value = [
            FoundPort(SimpleNamespace(device="/dev/ttyUSB0"), PortRole.UNKNOWN),
            FoundPort(SimpleNamespace(device="/dev/ttyACM0"), PortRole.SECONDARY),
            FoundPort(SimpleNamespace(device="/dev/ttyACM1"), PortRole.PRIMARY),
        ]
        manager = DeviceManager(device_factory=self.factory)
        manager.with_device(lambda device: None)
        self.assertEqual(self.opened[0].port, "/dev/ttyACM1")
        mock_list_ports.assert_called_once_with("Jumperless")

    @mock.patch("jumperless.services.device_manager.list_ports")
    def test_discovery_without_primary_fails(self, mock_list_ports) -> None:
        mock_list_ports.return_value = [
            FoundPort(SimpleNamespace(device="/dev/ttyUSB0"), PortRole.UNKNOWN),
        ]
        manager = DeviceManager(device_factory=self.factory)
        with self.assertRaises(DiscoveryError):
            manager.with_device(lambda device: None)
        self.assertEqual(self.opened, [])

    def test_status_reports_connection(self) -> None:
        manager = DeviceManager("/dev/ttyACM1", device_factory=self.factory)
        self.assertTrue(manager.status().connected)

    def test_status_hides_open_errors(self) -> None:
        def factory(port):
            raise DeviceConnectionError(f"Failed to open serial port {port}")

        manager = DeviceManager("/dev/ttyACM1", device_factory=factory)
        self.assertFalse(manager.status().connected)

    def test_close_device_forgets_connection(self) -> None:
        manager = DeviceManager("/dev/ttyACM1", device_factory=self.factory)
        manager.with_device(lambda device: None)
        manager.close_device()
        self.opened[0].close.assert_called_once_with()
        manager.with_device(lambda device: None)
        self.assertEqual(len(self.opened), 2)

    @mock.patch("jumperless.services.device_manager.Device.open")
    def test_default_factory_passes_settings(self, mock_open) -> None:
        mock_open.return_value = _fake_device()
        manager = DeviceManager("/dev/ttyACM1", response_timeout=2.5)
        manager.with_device(lambda device: None)
        mock_open.assert_called_once_with(
            "/dev/ttyACM1",
            baudrate=57600,
            read_timeout=0.45,
            response_timeout=2.5,
            activity_log=None,
        )


class DeviceManagerConfigTests(unittest.TestCase):
    def test_from_config_builds_activity_log(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "activity.log"
            config = DeviceConfig(
                port="/dev/ttyACM3", activity_log=str(log_path), response_timeout=1.5
            )
            manager = DeviceManager.from_config(config)
            try:
                self.assertEqual(manager.port, "/dev/ttyACM3")
                self.assertEqual(manager.response_timeout, 1.5)
                self.assertIsInstance(manager._activity_log, FileActivityLogger)
            finally:
                manager.close()
            self.assertTrue(log_path.exists())

    def test_from_config_without_port_uses_discovery(self) -> None:
        manager = DeviceManager.from_config(DeviceConfig())
        self.assertIsNone(manager.port)
        self.assertIsNone(manager._activity_log)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

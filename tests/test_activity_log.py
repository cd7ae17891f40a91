import re
import tempfile
import threading
import unittest
from pathlib import Path

from jumperless.transport import FileActivityLogger, NullActivityLogger

LINE = re.compile(r"\[[^\]]+\] (OPEN|SEND|RECV) .*")


class FileActivityLoggerTests(unittest.TestCase):
    def test_writes_tagged_lines(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "activity.log"
            log = FileActivityLogger(path)
            log.opened("/dev/ttyACM0")
            log.sent("::getnetlist:1[]")
            log.received("::ok:1")
            log.close()
            lines = path.read_text(encoding="utf-8").splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].endswith("] OPEN /dev/ttyACM0"))
        self.assertTrue(lines[1].endswith("] SEND ::getnetlist:1[]"))
        self.assertTrue(lines[2].endswith("] RECV ::ok:1"))

    def test_appends_to_existing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "activity.log"
            path.write_text("previous\n", encoding="utf-8")
            log = FileActivityLogger(path)
            log.sent("::getbridgelist:1[]")
            log.close()
            lines = path.read_text(encoding="utf-8").splitlines()
        self.assertEqual(lines[0], "previous")
        self.assertEqual(len(lines), 2)

    def test_concurrent_writers_never_split_lines(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "activity.log"
            log = FileActivityLogger(path)

            def writer(method, prefix):
                for i in range(200):
                    method(f"{prefix}:{i}" + "x" * 64)

            threads = [
                threading.Thread(target=writer, args=(log.sent, "::send")),
                threading.Thread(target=writer, args=(log.received, "::recv")),
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()
            log.close()
            lines = path.read_text(encoding="utf-8").splitlines()
        self.assertEqual(len(lines), 400)
        self.assertTrue(all(LINE.fullmatch(line) for line in lines))

    def test_events_after_close_are_dropped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "activity.log"
            log = FileActivityLogger(path)
            log.close()
            log.sent("::ok")
            self.assertEqual(path.read_text(encoding="utf-8"), "")

    def test_null_logger_accepts_events(self) -> None:
        log = NullActivityLogger()
        log.opened("/dev/ttyACM0")
        log.sent("::ok")
        log.received("::ok")
        log.close()


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

import re
from datetime import datetime

import pytest

from jetcar.control_logger import ControlLogger, timestamp

TIMESTAMP = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}")
STAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "test_control_log.log"


def test_initialization_creates_log_file(log_path):
    with ControlLogger(str(log_path)):
        pass
    assert log_path.exists()
    content = log_path.read_text()
    assert "Control Logging Session Started" in content
    assert "Control Logging Session Ended" in content


def test_log_control_update(log_path):
    with ControlLogger(str(log_path)) as logger:
        logger.log_control_update("throttle:50;", 0.0, 50.0)
    content = log_path.read_text()
    assert "Command: throttle:50;" in content
    assert "Steering: 0" in content
    assert "Throttle: 50" in content


def test_log_error(log_path):
    with ControlLogger(str(log_path)) as logger:
        logger.log_error("Test error message")
    assert "ERROR - Test error message" in log_path.read_text()


def test_timestamp_format_is_correct(log_path):
    before = datetime.now()
    with ControlLogger(str(log_path)) as logger:
        logger.log_control_update("test", 0.0, 0.0)
    assert logger.closed is True
    content = log_path.read_text()
    stamps = TIMESTAMP.findall(content)
    assert len(stamps) >= 3
    for stamp in stamps:
        moment = datetime.strptime(stamp, STAMP_FORMAT)
        assert abs((moment - before).total_seconds()) < 60


def test_multiple_log_entries(log_path):
    with ControlLogger(str(log_path)) as logger:
        logger.log_control_update("throttle:10;", 0.0, 10.0)
        logger.log_control_update("steering:20;", 20.0, 0.0)
        logger.log_control_update("throttle:30;steering:40;", 40.0, 30.0)
    content = log_path.read_text()
    assert "Throttle: 10" in content
    assert "Steering: 20" in content
    assert "Throttle: 30" in content
    assert "Steering: 40" in content
    assert content.count("Command:") >= 3


def test_timestamp_function():
    before = datetime.now()
    stamp = timestamp()
    assert len(stamp) == 23
    assert (stamp[4], stamp[7], stamp[10], stamp[13], stamp[16], stamp[19]) == (
        "-", "-", " ", ":", ":", "."
    )
    assert TIMESTAMP.fullmatch(stamp).group(0) == stamp
    moment = datetime.strptime(stamp, STAMP_FORMAT)
    assert abs((moment - before).total_seconds()) < 60


def test_sessions_append(log_path):
    with ControlLogger(str(log_path)):
        pass
    with ControlLogger(str(log_path)):
        pass
    assert log_path.read_text().count("Control Logging Session Started") == 2


def test_logging_after_close_is_ignored(log_path):
    logger = ControlLogger(str(log_path))
    logger.close()
    before = log_path.read_text()
    logger.log_control_update("late", 1.0, 1.0)
    logger.log_error("late error")
    logger.close()
    assert logger.closed is True
    assert log_path.read_text() == before


def test_unopenable_path_raises(tmp_path):
    with pytest.raises(OSError):
        ControlLogger(str(tmp_path / "missing" / "log.log"))
from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dir2file import logging as dir2file_logging

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_get_logger_binds_component_on_injected_logger(mocker: MockerFixture) -> None:
    base = mocker.Mock()

    bound = dir2file_logging.get_logger("tree", base)

    base.bind.assert_called_once_with(component="tree")
    assert bound is base.bind.return_value


@pytest.mark.unit
def test_setup_logging_configures_once(mocker: MockerFixture) -> None:
    mocker.patch.object(dir2file_logging, "_LOGGING_CONFIGURED", new=False)
    configure = mocker.patch.object(dir2file_logging.structlog, "configure")
    mocker.patch.object(dir2file_logging.logging, "basicConfig")

    dir2file_logging.setup_logging(verbose=True)
    dir2file_logging.setup_logging()

    configure.assert_called_once()
    assert dir2file_logging._LOGGING_CONFIGURED is True  # noqa: SLF001

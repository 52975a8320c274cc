"""
=============================================
Pytest suite for core/logger.py
=============================================

Sections:
---------
1. Unit tests - ColoredFormatter and get_logger
2. Integration tests - setup_logging handlers and file output

Available markers:
------------------
unit, integration

How to Execute:
---------------
All tests:          pytest tests/tests_core/test_logger.py -v
"""

import logging

import pytest

from core.logger import ColoredFormatter, get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    """setup_logging replaces root handlers; put the originals back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(level=logging.INFO, msg='Built SELECT statement'):
    return logging.LogRecord('sql.query_builder', level, __file__, 1, msg, None, None)


# ===============
# 1. UNIT TESTS
# ===============

@pytest.mark.unit
def test_colored_formatter_adds_marker_and_color():
    formatter = ColoredFormatter('%(marker)s %(levelname)s %(message)s')

    output = formatter.format(make_record(logging.ERROR))

    assert output.startswith('❌ ')
    assert '\033[31mERROR\033[0m' in output
    assert output.endswith('Built SELECT statement')


@pytest.mark.unit
def test_colored_formatter_restores_levelname():
    record = make_record(logging.WARNING)

    ColoredFormatter('%(levelname)s').format(record)

    assert record.levelname == 'WARNING'


@pytest.mark.unit
def test_get_logger_sets_level():
    logger = get_logger('tests.logger.level', 'debug')

    assert logger.level == logging.DEBUG
    assert get_logger('tests.logger.level') is logger


# ===============================
# 2. INTEGRATION TESTS
# ===============================

@pytest.mark.integration
def test_setup_logging_console_only(restore_root_logger):
    root = setup_logging(log_level='WARNING', use_colors=False)

    assert root is restore_root_logger
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert not isinstance(root.handlers[0].formatter, ColoredFormatter)


@pytest.mark.integration
def test_setup_logging_writes_file(restore_root_logger, tmp_path):
    root = setup_logging(
        log_level='DEBUG',
        log_file='dbquery.log',
        log_dir=str(tmp_path / 'logs'),
        console_output=False
    )

    logging.getLogger('sql.database').debug('Executing: SELECT 1')
    for handler in root.handlers:
        handler.flush()

    content = (tmp_path / 'logs' / 'dbquery.log').read_text(encoding='utf-8')
    assert 'sql.database - DEBUG - Executing: SELECT 1' in content


@pytest.mark.integration
def test_setup_logging_replaces_existing_handlers(restore_root_logger):
    setup_logging(use_colors=True)
    root = setup_logging(use_colors=True)

    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, ColoredFormatter)

from unittest.mock import MagicMock, patch

from campusknot.utils.errors import ValidationError
from campusknot.utils.logging import configure_logging, get_logger, log_error


@patch("campusknot.utils.logging.structlog")
@patch("campusknot.utils.logging.logging")
@patch("campusknot.utils.logging.settings")
def test_configure_logging_development(mock_settings, mock_logging, mock_structlog):
    mock_settings.LOG_LEVEL = "DEBUG"
    mock_settings.ENVIRONMENT = "development"

    configure_logging()

    mock_logging.basicConfig.assert_called_once()
    _args, kwargs = mock_logging.basicConfig.call_args
    assert kwargs["level"] == mock_logging.DEBUG

    mock_structlog.configure.assert_called_once()
    processors = mock_structlog.configure.call_args[1]["processors"]
    assert mock_structlog.dev.ConsoleRenderer.return_value in processors


@patch("campusknot.utils.logging.structlog")
@patch("campusknot.utils.logging.logging")
@patch("campusknot.utils.logging.settings")
def test_configure_logging_production(mock_settings, mock_logging, mock_structlog):
    mock_settings.LOG_LEVEL = "INFO"
    mock_settings.ENVIRONMENT = "production"

    configure_logging()

    processors = mock_structlog.configure.call_args[1]["processors"]
    assert mock_structlog.processors.JSONRenderer.return_value in processors
    assert mock_structlog.dev.ConsoleRenderer.return_value not in processors


@patch("campusknot.utils.logging.structlog")
def test_get_logger(mock_structlog):
    mock_logger = MagicMock()
    mock_structlog.get_logger.return_value = mock_logger

    logger = get_logger("test_logger", foo="bar")

    mock_structlog.get_logger.assert_called_with("test_logger")
    mock_logger.bind.assert_called_with(foo="bar")
    assert logger == mock_logger.bind.return_value


def test_log_error():
    mock_logger = MagicMock()
    error = ValueError("test error")

    log_error(mock_logger, error, "something went wrong", {"user_id": 1})

    mock_logger.error.assert_called_once()
    args, kwargs = mock_logger.error.call_args
    assert args[0] == "something went wrong"
    assert kwargs["user_id"] == 1
    assert kwargs["error_type"] == "ValueError"
    assert kwargs["error_message"] == "test error"
    assert kwargs["exc_info"] == error


def test_log_error_with_details():
    mock_logger = MagicMock()
    error = ValidationError("bad input", details={"field": "age"})

    log_error(mock_logger, error)

    args, kwargs = mock_logger.error.call_args
    assert args[0] == "An error occurred"
    assert kwargs["error_details"] == {"field": "age"}


@patch("campusknot.utils.logging.structlog")
@patch("campusknot.utils.logging.logging")
@patch("campusknot.utils.logging.settings")
def test_configure_logging_quiets_library_loggers(mock_settings, mock_logging, mock_structlog):
    mock_settings.LOG_LEVEL = "INFO"
    mock_settings.ENVIRONMENT = "development"

    configure_logging()

    names = [c.args[0] for c in mock_logging.getLogger.call_args_list]
    assert "sqlalchemy.engine" in names
    assert "uvicorn.access" in names

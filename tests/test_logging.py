import io
import json
import logging

from supply_api.logging_config import redact_secrets, setup_logging


def test_redact_secrets_masks_credentials_only():
    event = {"event": "calling upstream", "api_key": "abc", "X-CMC_PRO_API_KEY": "def", "symbol": "sUSDe"}

    redacted = redact_secrets(None, "info", event)

    assert redacted["api_key"] == "***"
    assert redacted["X-CMC_PRO_API_KEY"] == "***"
    assert redacted["symbol"] == "sUSDe"


def test_stdlib_records_render_as_json():
    stream = io.StringIO()
    setup_logging("INFO", stream=stream)
    try:
        logging.getLogger("supply_api.test").info("Missing data for %d tokens", 2)

        line = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert line["event"] == "Missing data for 2 tokens"
        assert line["level"] == "info"
        assert line["logger"] == "supply_api.test"
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        logging.getLogger().handlers = []

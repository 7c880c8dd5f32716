"""
Flask app for loopback simulator control

Device picker and command console for simulated controllers.
Run with `python -m loopback_web.main`, access at http://<host>:8080
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
import logging
import os

from loopback.constants import LoopbackConstants
from loopback.devices import list_devices
from loopback.errors import ConfigurationError
from loopback_web.services import LoopbackDeviceManager, LoopbackService
from loopback_web.utils import (
    flush_flag,
    iso_timestamp,
    reply_timeout_s,
    response_delay_ms,
    settle_ms,
    web_port,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)


@app.errorhandler(Exception)
def handle_unexpected_error(err):
    """Ensure API endpoints always return JSON, even for unhandled failures."""
    if request.path.startswith("/api/"):
        status = 500
        message = str(err) or "Internal Server Error"
        if isinstance(err, HTTPException):
            status = err.code or 500
            message = err.description or message
        if status >= 500:
            logger.exception("Unhandled API error on %s: %s", request.path, err)
        return jsonify({"success": False, "error": message}), status

    if isinstance(err, HTTPException):
        return err
    logger.exception("Unhandled web error on %s: %s", request.path, err)
    return "Internal Server Error", 500


device_manager = LoopbackDeviceManager()
loopback_service = LoopbackService(device_manager)

DEFAULT_URI = os.getenv(LoopbackConstants.ENV_URI, LoopbackConstants.DEFAULT_CLI_URI)
try:
    DEFAULT_DELAY_MS = response_delay_ms(
        os.getenv(LoopbackConstants.ENV_RESPONSE_DELAY_MS), LoopbackConstants.DEFAULT_RESPONSE_DELAY_MS
    )
except ValueError:
    logger.warning(f"Ignoring invalid {LoopbackConstants.ENV_RESPONSE_DELAY_MS}")
    DEFAULT_DELAY_MS = LoopbackConstants.DEFAULT_RESPONSE_DELAY_MS

logger.info(f"=== Loopback Startup Configuration ===")
logger.info(f"Default URI: {DEFAULT_URI}")
logger.info(f"Default response delay: {DEFAULT_DELAY_MS} ms")
logger.info(f"======================================")


def _json_payload() -> dict:
    """Return JSON object payload (empty dict when no body) or raise ValueError."""
    if not request.data:
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Invalid JSON payload")
    return data


@app.route("/api/devices", methods=["GET"])
def devices():
    return jsonify({"success": True, "devices": [d.to_dict() for d in list_devices()]})


@app.route("/api/connect", methods=["POST"])
def connect():
    try:
        data = _json_payload()
        uri = data.get("uri") or DEFAULT_URI
        delay_ms = response_delay_ms(data.get("delay_ms"), DEFAULT_DELAY_MS)
        mode, banner = device_manager.connect(uri, delay_ms=delay_ms)
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Connect failed: {e}")
        return jsonify({"success": False, "connected": False, "error": str(e)}), 400

    return jsonify({"success": True, "connected": True, "uri": uri, "mode": mode.value, "banner": banner})


@app.route("/api/send", methods=["POST"])
def send():
    try:
        data = _json_payload()
        command = data.get("command")
        if not isinstance(command, str):
            raise ValueError("command must be a string")
        timeout = reply_timeout_s(data.get("timeout"))
        settle = settle_ms(data.get("settle_ms"))
        flush_input = flush_flag(data.get("flush_input"))
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    ok, result = loopback_service.send_command(
        command, timeout=timeout, settle_ms=settle, flush_input=flush_input
    )
    if not ok:
        status = 409 if not device_manager.is_connected() else 400
        return jsonify(result), status
    return jsonify(result)


@app.route("/api/disconnect", methods=["POST"])
def disconnect():
    device_manager.disconnect()
    return jsonify({"success": True, "connected": False})


@app.route("/api/status", methods=["GET"])
def status():
    """Get current simulator status"""
    response = device_manager.status()
    response["timestamp"] = iso_timestamp()
    return jsonify(response)


if __name__ == "__main__":
    port = web_port(os.getenv(LoopbackConstants.ENV_WEB_PORT), LoopbackConstants.DEFAULT_WEB_PORT)
    app.run(host="0.0.0.0", port=port)

# mips_runner/app.py
from flask import Flask, request, jsonify
from flask_cors import CORS
import logging

from mips_runner.mips_consts import MAX_STEPS
from mips_runner.mips_driver import run_source
from mips_runner.mips_simulator import (
    DEFAULT_HISTORY_LIMIT, DEFAULT_MAX_SESSIONS, SimulatorNotLoadedError, SimulatorRegistry
)

#logging.basicConfig(level=logging.DEBUG) # Use DEBUG for development
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "CORS_ORIGINS": "http://localhost:3000",
    "MAX_STEPS": MAX_STEPS,
    "HISTORY_LIMIT": DEFAULT_HISTORY_LIMIT,
    "MAX_SESSIONS": DEFAULT_MAX_SESSIONS,
}


class BadRequest(ValueError):
    pass


def _read_program_request():
    """Pulls source and optional initial values out of a JSON body."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get('source'), str):
        raise BadRequest("Missing 'source' key in request.")
    registers = data.get('initial_registers')
    memory = data.get('initial_memory')
    if registers is not None and not isinstance(registers, dict):
        raise BadRequest("'initial_registers' must be an object of register name -> value.")
    if memory is not None and not isinstance(memory, dict):
        raise BadRequest("'initial_memory' must be an object of address -> value.")
    return data['source'], registers, memory


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_CONFIG)
    app.config.from_prefixed_env(prefix="MIPS_RUNNER")
    if config:
        app.config.from_mapping(config)

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})
    registry = SimulatorRegistry(
        history_limit=app.config["HISTORY_LIMIT"],
        max_steps=app.config["MAX_STEPS"],
        max_sessions=app.config["MAX_SESSIONS"],
    )
    app.extensions["mips_registry"] = registry

    def session_call(doc_id, action, describe):
        """Runs one session operation with the shared error handling."""
        try:
            return jsonify(action(registry.get(doc_id)))
        except BadRequest as e:
            return jsonify({"error": str(e)}), 400
        except SimulatorNotLoadedError as e:
            return jsonify({"error": str(e)}), 409
        except Exception as e:
            logger.error(f"Error during {describe} for '{doc_id}': {e}", exc_info=True)
            return jsonify({"error": f"Internal server error during {describe}: {e}"}), 500

    @app.route('/')
    def index():
        return "MIPS runner backend is running!"

    @app.route('/api/ping', methods=['GET'])
    def ping():
        logger.debug("Ping endpoint called")
        return jsonify({"message": "pong"})

    @app.route('/api/run', methods=['POST'])
    def handle_run():
        """Runs a whole program and returns the terminal result."""
        try:
            source, registers, memory = _read_program_request()
            logger.debug(f"Received source for run: {source[:100]}...")
            result = run_source(source, registers, memory, max_steps=app.config["MAX_STEPS"])
            if result.status == "error":
                logger.warning(f"Run failed: {result.output[-200:]}")
            return jsonify({"status": result.status, "output": result.output})
        except BadRequest as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            logger.error(f"Error during run: {e}", exc_info=True)
            return jsonify({"error": f"Internal server error during run: {e}"}), 500

    # --- Step-by-step session endpoints ---

    @app.route('/api/mips/<doc_id>/load', methods=['POST'])
    def handle_load(doc_id):
        def load(session):
            source, registers, memory = _read_program_request()
            logger.info(f"Loading program for document '{doc_id}'")
            return session.load(source, registers, memory)
        return session_call(doc_id, load, "load")

    @app.route('/api/mips/<doc_id>/step', methods=['POST'])
    def handle_step(doc_id):
        return session_call(doc_id, lambda session: session.step(), "step")

    @app.route('/api/mips/<doc_id>/step_back', methods=['POST'])
    def handle_step_back(doc_id):
        return session_call(doc_id, lambda session: session.step_back(), "step back")

    @app.route('/api/mips/<doc_id>/run', methods=['POST'])
    def handle_session_run(doc_id):
        return session_call(doc_id, lambda session: session.run(), "run")

    @app.route('/api/mips/<doc_id>/reset', methods=['POST'])
    def handle_reset(doc_id):
        return session_call(doc_id, lambda session: session.reset(), "reset")

    @app.route('/api/mips/<doc_id>/state', methods=['GET'])
    def handle_get_state(doc_id):
        return session_call(doc_id, lambda session: session.get_state(), "state lookup")

    @app.route('/api/mips/<doc_id>', methods=['DELETE'])
    def handle_discard(doc_id):
        return jsonify({"discarded": registry.discard(doc_id)})

    return app


app = create_app()


if __name__ == '__main__':
    # Or: `flask --app mips_runner.app run --port 5001`
    app.run(debug=False, port=5001)

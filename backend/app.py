from flask import Flask, request, jsonify, session
from flask_cors import CORS
import logging
import threading
import uuid
from collections import OrderedDict

from google.genai import errors as genai_errors

from stepwise.config import Settings
from stepwise.errors import DictationUnavailable
from stepwise.llm.backends import GeminiBackend, UnconfiguredBackend, build_backend
from stepwise.llm.transform import TransformationClient
from stepwise.session.capture import BrowserCapture, CaptureTarget
from stepwise.session.controller import SessionController, SubmitOutcome

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

OUTCOME_STATUS = {
    SubmitOutcome.APPLIED: 200,
    SubmitOutcome.FAILED: 200,
    SubmitOutcome.UNDONE: 200,
    SubmitOutcome.DISCARDED: 200,
    SubmitOutcome.IGNORED_BLANK: 400,
    SubmitOutcome.REJECTED_BUSY: 409,
    SubmitOutcome.REJECTED_MODE: 409,
}


class SessionRegistry:
    """
    In-memory controllers, one per browser session. Nothing is persisted.

    At most max_sessions controllers are kept; the least recently used one is
    dropped when a new session would exceed the limit.
    """

    def __init__(self, make_controller, max_sessions=1000):
        self._make_controller = make_controller
        self._max_sessions = max(1, max_sessions)
        self._controllers = OrderedDict()
        self._lock = threading.Lock()

    def get(self, sid):
        with self._lock:
            controller = self._controllers.get(sid)
            if controller is not None:
                self._controllers.move_to_end(sid)
                return controller
            controller = self._make_controller()
            self._controllers[sid] = controller
            logger.info(f'Created session {sid}')
            while len(self._controllers) > self._max_sessions:
                evicted, _ = self._controllers.popitem(last=False)
                logger.info(f'Evicted idle session {evicted}')
            return controller

    def __contains__(self, sid):
        return sid in self._controllers

    def __len__(self):
        return len(self._controllers)


def _parse_target(value):
    try:
        return CaptureTarget(value)
    except ValueError:
        return None


def create_app(settings=None, backend=None, relay_backend=None, speech_enabled=None):
    """
    Build the Flask app.

    backend is the model call boundary used by sessions; relay_backend is the
    Gemini client behind /api/relay. Both default to what the settings ask for.
    """
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    CORS(app)
    app.logger.setLevel(logging.INFO)

    if backend is None:
        try:
            backend = build_backend(settings)
        except RuntimeError as e:
            logger.warning(f'{e} AI features will be disabled.')
            backend = UnconfiguredBackend(str(e))

    if relay_backend is None and settings.genai_api_key:
        try:
            relay_backend = GeminiBackend(settings.genai_api_key, settings.genai_model,
                                          settings.timeout, settings.temperature)
        except Exception as e:
            logger.error(f'Failed to initialize GenAI client for relay: {e}')

    if speech_enabled is None:
        speech_enabled = settings.speech_enabled

    client = TransformationClient(backend)
    registry = SessionRegistry(
        lambda: SessionController(client, BrowserCapture(available=speech_enabled)),
        max_sessions=settings.max_sessions,
    )
    app.extensions['stepwise_sessions'] = registry

    def current():
        if 'sid' not in session:
            session['sid'] = uuid.uuid4().hex
        return registry.get(session['sid'])

    def state_response(controller, status=200, **extra):
        body = controller.snapshot()
        body.update(extra)
        return jsonify(body), status

    def submit_response(controller, outcome):
        return state_response(controller, OUTCOME_STATUS[outcome], outcome=outcome.value)

    @app.route('/api/relay', methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'])
    def relay():
        """Forward a prompt to Gemini, keeping the API key on the server."""
        if request.method != 'POST':
            return 'Method Not Allowed', 405

        payload = request.get_json(silent=True) or {}
        prompt = payload.get('prompt')
        if not isinstance(prompt, str) or not prompt.strip():
            return jsonify({'error': 'No prompt provided'}), 400
        if relay_backend is None:
            logger.error('Relay called but no Gemini API key is configured')
            return jsonify({'error': 'API key is not available.'}), 500

        try:
            resp = relay_backend.raw_generate(prompt)
        except genai_errors.APIError as e:
            logger.error(f'Gemini API Error: {e}')
            return f'Gemini API error: {e.message}', e.code or 500
        except Exception as e:
            logger.error(f'Proxy Function Error: {e}', exc_info=True)
            return jsonify({'error': str(e)}), 500

        return app.response_class(
            resp.model_dump_json(exclude_none=True),
            status=200,
            mimetype='application/json',
        )

    @app.route('/api/session', methods=['GET'])
    def get_session():
        return state_response(current())

    @app.route('/api/session/start', methods=['POST'])
    def start():
        controller = current()
        sentence = (request.get_json(silent=True) or {}).get('sentence')
        if sentence is not None and not isinstance(sentence, str):
            return jsonify({'error': 'sentence must be a string'}), 400
        return submit_response(controller, controller.submit_initial(sentence))

    @app.route('/api/session/command', methods=['POST'])
    def command():
        controller = current()
        text = (request.get_json(silent=True) or {}).get('command')
        if text is not None and not isinstance(text, str):
            return jsonify({'error': 'command must be a string'}), 400
        return submit_response(controller, controller.submit_command(text))

    @app.route('/api/session/undo', methods=['POST'])
    def undo():
        controller = current()
        return state_response(controller, undone=controller.undo())

    @app.route('/api/session/steps/<int:index>', methods=['PUT'])
    def edit_step(index):
        controller = current()
        text = (request.get_json(silent=True) or {}).get('equation')
        if not isinstance(text, str):
            return jsonify({'error': 'equation must be a string'}), 400
        if index >= len(controller.history):
            return jsonify({'error': f'No step at index {index}'}), 404
        controller.edit_equation(index, text)
        return state_response(controller)

    @app.route('/api/session/drafts/<field>', methods=['PUT'])
    def set_draft(field):
        controller = current()
        target = _parse_target(field)
        text = (request.get_json(silent=True) or {}).get('text', '')
        if target is None or not isinstance(text, str):
            return jsonify({'error': f'Unknown draft field: {field}'}), 400
        controller.set_draft(target, text)
        return state_response(controller)

    @app.route('/api/session/reset', methods=['POST'])
    def reset():
        controller = current()
        controller.reset()
        return state_response(controller)

    @app.route('/api/session/dictation/start', methods=['POST'])
    def start_dictation():
        controller = current()
        target = _parse_target((request.get_json(silent=True) or {}).get('target'))
        if target is None:
            return jsonify({'error': 'target must be "initial" or "command"'}), 400
        try:
            controller.start_dictation(target)
        except DictationUnavailable as e:
            return jsonify({'error': str(e)}), 503
        return state_response(controller)

    @app.route('/api/session/dictation/stop', methods=['POST'])
    def stop_dictation():
        controller = current()
        return state_response(controller, stopped=controller.stop_dictation())

    @app.route('/api/session/dictation/transcript', methods=['POST'])
    def transcript():
        controller = current()
        payload = request.get_json(silent=True) or {}
        text = payload.get('text')
        if not isinstance(text, str):
            return jsonify({'error': 'text must be a string'}), 400
        target = None
        if payload.get('target') is not None:
            target = _parse_target(payload['target'])
            if target is None:
                return jsonify({'error': 'target must be "initial" or "command"'}), 400
        accepted = controller.receive_transcript(text, target)
        return state_response(controller, accepted=accepted)

    return app


app = create_app()


if __name__ == '__main__':
    app.run(debug=True, threaded=True)

from flask import Blueprint, request, jsonify, current_app, send_file
from io import BytesIO
import logging
import threading
import uuid

from docquill.core.config import EditorConfig, TOOLBAR_DEFAULTS, FONT_SIZES, BLOCK_FORMATS, DEFAULT_FONT_SIZE
from docquill.core.controller import DocumentController
from docquill.core.find_replace import FindReplaceSpec
from docquill.core.fragments import fragment_from_dict
from docquill.core.surface import MarkupSurface

# Note: Feature, FeatureType, FeatureState are INJECTED by the loader.

editor_bp = Blueprint('editor', __name__, url_prefix='/api/editor')
blueprint = editor_bp
logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory editor sessions, one controller per editor client."""

    def __init__(self):
        self._sessions = {}
        self._lock = threading.Lock()

    def create(self, controller: DocumentController) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._sessions[session_id] = controller
        return session_id

    def get(self, session_id: str):
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self):
        with self._lock:
            return len(self._sessions)


SESSIONS = SessionStore()


def get_app_state():
    """Deferred lookup of app-level settings and features."""
    return current_app.config.get('DOCQUILL_SETTINGS', {}), current_app.config.get('DOCQUILL_FEATURES')


def _session_or_404(session_id):
    controller = SESSIONS.get(session_id)
    if controller is None:
        logger.warning(f"Editor: unknown session {session_id}")
    return controller


def _not_found(session_id):
    return jsonify({'error': 'Session not found', 'session': session_id}), 404


def _outcome(controller, result):
    """Map a controller outcome to (payload, status)."""
    state = controller.to_dict()
    if result is None:
        if controller.read_only:
            return {'error': 'Document is read-only', **state}, 409
        return {'skipped': True, **state}, 200
    if isinstance(result, str):
        return {'preview': result, **state}, 200
    if not result.accepted:
        return {**result.to_dict(), **state}, 422
    return {**result.to_dict(), **state}, 200


def _result_response(controller, result):
    payload, status = _outcome(controller, result)
    return jsonify(payload), status


def _json_object():
    """Request body as a dict. Missing or unparsable bodies count as empty; None for non-objects."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Editor: rejected {type(data).__name__} payload on {request.path}")
        return None
    return data


def _bad_payload(message='Request body must be a JSON object'):
    return jsonify({'error': message}), 400


def _is_offset(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _stage_surface(controller, data):
    """Apply the host-reported surface state (content after the host rendered, selection)."""
    surface = controller.surface
    if not isinstance(surface, MarkupSurface):
        return
    selection = data.get('selection')
    if isinstance(selection, (list, tuple)) and len(selection) == 2 and all(_is_offset(v) for v in selection):
        surface.select(selection[0], selection[1])


@editor_bp.route('/toolbar')
def toolbar_options():
    """Toolbar defaults and select-box options."""
    return jsonify({
        'defaults': dict(TOOLBAR_DEFAULTS),
        'fontSizes': dict(FONT_SIZES),
        'defaultFontSize': DEFAULT_FONT_SIZE,
        'blockFormats': dict(BLOCK_FORMATS),
    })


@editor_bp.route('/sessions', methods=['POST'])
def create_session():
    settings, features = get_app_state()
    data = _json_object()
    if data is None:
        return _bad_payload()
    try:
        config = EditorConfig.from_dict(data, settings)
    except (TypeError, ValueError) as e:
        logger.warning(f"Editor: invalid session config: {e}")
        return jsonify({'error': str(e)}), 400

    controller = DocumentController(MarkupSurface(config.initial_content), config, features)
    session_id = SESSIONS.create(controller)
    logger.info(f"Editor: created session {session_id} ({len(config.initial_content)} bytes)")
    return jsonify({'session': session_id, **controller.to_dict()}), 201


@editor_bp.route('/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    return jsonify({'session': session_id, **controller.to_dict()})


@editor_bp.route('/sessions/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    if not SESSIONS.remove(session_id):
        return _not_found(session_id)
    logger.info(f"Editor: closed session {session_id}")
    return jsonify({'success': True})


@editor_bp.route('/sessions/<session_id>/input', methods=['POST'])
def session_input(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    data = _json_object()
    if data is None:
        return _bad_payload()
    content = data.get('content')
    if not isinstance(content, str):
        return jsonify({'error': 'Missing content'}), 400

    if controller.read_only:
        return _result_response(controller, None)
    controller.surface.set_content(content)
    _stage_surface(controller, data)
    return _result_response(controller, controller.handle_input())


@editor_bp.route('/sessions/<session_id>/format', methods=['POST'])
def session_format(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    data = _json_object()
    if data is None:
        return _bad_payload()
    command = data.get('command')
    if not command or not isinstance(command, str):
        return jsonify({'error': 'Missing command'}), 400
    value = data.get('value')
    if value is not None and not isinstance(value, str):
        return _bad_payload('Command value must be a string')

    # The browser executed the command; it reports the resulting markup
    content = data.get('content')
    if isinstance(content, str) and isinstance(controller.surface, MarkupSurface):
        controller.surface.stage(content)
    _stage_surface(controller, data)
    return _result_response(controller, controller.execute_format(command, value))


@editor_bp.route('/sessions/<session_id>/insert', methods=['POST'])
def session_insert(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    data = _json_object()
    if data is None:
        return _bad_payload()
    try:
        spec = fragment_from_dict(data)
    except TypeError as e:
        return _bad_payload(str(e))
    if spec is None:
        return jsonify({'error': f"Unknown fragment type: {data.get('type')!r}"}), 400

    _stage_surface(controller, data)
    return _result_response(controller, controller.insert_fragment(spec))


@editor_bp.route('/sessions/<session_id>/undo', methods=['POST'])
def session_undo(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    return _result_response(controller, controller.undo())


@editor_bp.route('/sessions/<session_id>/redo', methods=['POST'])
def session_redo(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    return _result_response(controller, controller.redo())


@editor_bp.route('/sessions/<session_id>/find-replace', methods=['POST'])
def session_find_replace(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    data = _json_object()
    if data is None:
        return _bad_payload()
    pattern = data.get('pattern')
    if not pattern or not isinstance(pattern, str):
        return jsonify({'error': 'Missing pattern'}), 400
    replacement = data.get('replacement') or ''
    if not isinstance(replacement, str):
        return _bad_payload('Replacement must be a string')

    spec = FindReplaceSpec(pattern=pattern, replacement=replacement)
    matches = controller.count_matches(pattern)
    payload, status = _outcome(controller, controller.find_replace(spec))
    return jsonify({**payload, 'matches': matches}), status


@editor_bp.route('/sessions/<session_id>/clear-highlights', methods=['POST'])
def session_clear_highlights(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    controller.clear_highlights()
    return jsonify({'surface': controller.surface.get_content(), **controller.to_dict()})


@editor_bp.route('/sessions/<session_id>/import', methods=['POST'])
def session_import(session_id):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    upload = request.files.get('file')
    if upload is None:
        return jsonify({'error': 'Missing file'}), 400

    try:
        result = controller.import_file(upload.read(), upload.mimetype)
    except Exception as e:
        logger.error(f"Editor: import failed for session {session_id}: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    if result is None and not controller.read_only:
        return jsonify({'error': f'Unsupported file type: {upload.mimetype}', **controller.to_dict()}), 415
    return _result_response(controller, result)


@editor_bp.route('/sessions/<session_id>/export/<format_ext>', methods=['GET'])
def session_export(session_id, format_ext):
    controller = _session_or_404(session_id)
    if controller is None:
        return _not_found(session_id)
    if not controller.toolbar.get('export', True):
        return jsonify({'error': 'Export is disabled for this editor'}), 403

    try:
        exported = controller.export(format_ext)
    except Exception as e:
        logger.error(f"Editor: export to {format_ext} failed: {e}", exc_info=True)
        return jsonify({'error': f"Export Failed: {str(e)}"}), 500

    if exported is None:
        # Specific error for the frontend "missing plugin" flow
        return jsonify({
            "error": "Export plugin not installed",
            "code": "MISSING_PLUGIN",
            "plugin_name": f"docquill-plugin-{format_ext}",
            "message": f"The {format_ext.upper()} export plugin is not installed."
        }), 404

    return send_file(
        BytesIO(exported.data),
        mimetype=exported.mimetype,
        as_attachment=True,
        download_name=exported.filename
    )


def get_features():
    """Register the Editor functionality."""
    return [
        Feature(
            name="Document Editor",
            handler=None,
            state=FeatureState.STANDARD,
            feature_type=FeatureType.UI_EXTENSION,
            meta={"source": "bundled", "preinstalled": True}
        )
    ]

# Metadata
PLUGIN_METADATA = {
    'name': 'Document Editor',
    'description': 'Rich-text editor sessions: gated commits, undo/redo, find/replace and fragment insertion.',
    'category': 'editor',
    'preinstalled': True
}

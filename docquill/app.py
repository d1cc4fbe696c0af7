"""
DocQuill
A Flask application serving rich-text editor sessions: gated commits,
undo/redo history, find/replace, fragment insertion and file interchange.
"""

from flask import Flask, request, jsonify, send_file
from io import BytesIO
import logging

from docquill.core.config import load_settings
from docquill.core.exporters import core_export_features, export_document
from docquill.core.loader import load_plugins
from docquill.features.registry import FeatureManager, PluginRegistry
from docquill.version_info import __version__ as VERSION

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50 MB request bodies (imports, exports)


def create_app(settings=None, registry=None) -> Flask:
    """
    Build the Flask app: load settings, plugins and export features, then
    register every plugin blueprint.
    """
    settings = settings if settings is not None else load_settings()

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    app.config['DOCQUILL_SETTINGS'] = settings

    logger.info(f"Application starting - Version {VERSION}")

    registry = registry or PluginRegistry()
    features = FeatureManager(registry)
    for feature in core_export_features():
        features.register(feature)

    try:
        logger.info("Initializing Plugin System...")
        load_plugins(registry, settings.get('plugin_dirs'))
        registry.initialize_all()
        features.refresh()
        registry.register_blueprints(app)
        logger.info(f"Registry initialized. Plugin count: {len(registry.get_all_plugins())}")
    except Exception as e:
        logger.error(f"Plugin system initialization failed: {e}", exc_info=True)

    app.config['DOCQUILL_FEATURES'] = features

    @app.route('/api/version')
    def get_version():
        return jsonify({'version': VERSION})

    @app.route('/api/export-formats')
    def get_export_formats():
        return jsonify({'formats': features.get_export_formats()})

    @app.route('/api/export/<format_ext>', methods=['POST'])
    def handle_export_request(format_ext):
        """
        Stateless export of posted markup. Delegates to registered handlers.
        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be a JSON object with html'}), 400
        html_content = data.get('html')
        if not isinstance(html_content, str):
            return jsonify({'error': 'Missing html'}), 400

        try:
            exported = export_document(html_content, format_ext, features)
        except Exception as e:
            logger.error(f"Export handler failed: {e}", exc_info=True)
            return jsonify({"error": f"Plugin Execution Failed: {str(e)}"}), 500

        if exported is None:
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

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"500 Error: {error}", exc_info=True)
        return jsonify({'error': 'Internal Server Error'}), 500

    return app

#!/usr/bin/env python
"""
Command-line interface for DocQuill
"""

import argparse
import json
import sys
from pathlib import Path

from docquill.version_info import __version__, __build_timestamp__, __build_type__


def print_version():
    """Print version information."""
    print(f"DocQuill v{__version__}")
    print(f"Build: {__build_timestamp__}")
    print(f"Build Type: {__build_type__}")


def _setup_logging(settings, debug=False):
    from docquill.core.logging_config import setup_logging_from_settings
    return setup_logging_from_settings(settings, True if debug else None)


def start_server(args, settings):
    """Start the Flask server."""
    from docquill.app import create_app

    _setup_logging(settings, args.debug)
    app = create_app(settings)

    host = args.host
    port = args.port or 8000

    print(f"Starting DocQuill v{__version__}")
    print(f"Server: http://{host}:{port}")
    print(f"Editor API: http://{host}:{port}/api/editor/sessions")
    print("Press Ctrl+C to stop")
    print()

    app.run(host=host, port=port, debug=args.debug)
    return 0


def _read_document(path_str):
    path = Path(path_str)
    if not path.exists():
        print(f"File not found: {path}", file=sys.stderr)
        return None
    return path.read_text(encoding='utf-8')


def show_stats(args, settings):
    """Print character and word counts of a document."""
    from docquill.core.stats import compute_stats

    content = _read_document(args.file)
    if content is None:
        return 1
    stats = compute_stats(content)
    if args.json:
        print(json.dumps(stats.to_dict()))
    else:
        print(f"Characters: {stats.char_count}")
        print(f"Words: {stats.word_count}")
    return 0


def export_file(args, settings):
    """Export a markup document to another format."""
    from docquill.core.exporters import core_export_features, export_document
    from docquill.core.loader import load_plugins
    from docquill.features.registry import FeatureManager, PluginRegistry

    content = _read_document(args.file)
    if content is None:
        return 1

    registry = PluginRegistry()
    features = FeatureManager(registry)
    for feature in core_export_features():
        features.register(feature)
    load_plugins(registry, settings.get('plugin_dirs'))
    features.refresh()

    exported = export_document(content, args.format, features)
    if exported is None:
        print(f"No exporter available for format: {args.format}", file=sys.stderr)
        return 1

    output = Path(args.output) if args.output else Path(args.file).with_name(exported.filename)
    output.write_bytes(exported.data)
    print(f"Exported {len(exported.data)} bytes to {output}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog='docquill',
        description=f'DocQuill v{__version__}',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  docquill --version                      Show version information
  docquill serve                          Start server on 0.0.0.0:8000
  docquill serve --port 8080              Start server on port 8080
  docquill stats notes.html               Character and word counts
  docquill export notes.html -f txt       Write document.txt next to the input
        """
    )

    parser.add_argument('--version', '-v', action='store_true', help='Show version information')
    parser.add_argument('--config', '-c', type=str, default=None, help='Path to settings JSON (default: ./config.json)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    serve_parser = subparsers.add_parser('serve', help='Start the editor server')
    serve_parser.add_argument('--host', type=str, default='0.0.0.0', help='Host to bind to (default: 0.0.0.0)')
    serve_parser.add_argument('--port', '-p', type=int, default=8000, help='Port to bind to (default: 8000)')
    serve_parser.add_argument('--debug', '-d', action='store_true', help='Run in debug mode')

    stats_parser = subparsers.add_parser('stats', help='Show character and word counts')
    stats_parser.add_argument('file', help='HTML or text document')
    stats_parser.add_argument('--json', action='store_true', help='Print JSON instead of text')

    export_parser = subparsers.add_parser('export', help='Export a document')
    export_parser.add_argument('file', help='HTML document')
    export_parser.add_argument('--format', '-f', default='txt', help='Target format: html, txt, docx (default: txt)')
    export_parser.add_argument('--output', '-o', default=None, help='Output file (default: document.<format> beside the input)')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print_version()
        return 0

    from docquill.core.config import load_settings
    settings = load_settings(args.config)

    if args.command == 'stats':
        return show_stats(args, settings)
    if args.command == 'export':
        return export_file(args, settings)

    # Default behavior: Start Server
    if args.command is None:
        args = parser.parse_args(['serve'])
    try:
        return start_server(args, settings)
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0
    except Exception as e:
        import traceback
        traceback.print_exc()
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

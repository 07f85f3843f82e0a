"""HTTP surface: public slug redirects and the sync status endpoint.

Endpoints:
    GET /{prefix}/<slug>             302 to the local permalink or to Notion, 404 if unknown
    GET /{media}/<file>              Images imported from synced pages
    GET /api/databases/<id>/rows     Stored entries of a synced database
    GET /api/sync-status             Composite status for ids and/or a batch
    GET /health                      Liveness check
"""

import logging
import os
import time
from typing import Any, List, Optional

from flask import Flask, abort, g, jsonify, redirect, request, send_from_directory

from src.registry.models import RemoteType
from src.storage.errors import StorageError

logger = logging.getLogger(__name__)


def create_app(context: Any) -> Flask:
    """Build the Flask app.

    Args:
        context: Object exposing `config` (AppConfig), `url_router`,
            `status_resolver`, `batch_worker`, `registry` and `row_store`,
            e.g. the CLI's AppContext

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    prefix = context.config.router.prefix.strip('/')
    media_prefix = context.config.media.url_prefix.strip('/')
    media_directory = os.path.abspath(context.config.media.directory)

    @app.before_request
    def _start_timer():
        g.start_time = time.monotonic()

    @app.after_request
    def _log_request(response):
        duration = time.monotonic() - g.get('start_time', time.monotonic())
        logger.debug(f"{request.method} {request.path} -> {response.status_code} ({duration:.3f}s)")
        return response

    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({'status': 'ok'})

    @app.route(f'/{prefix}/<slug>', methods=['GET'])
    def route_slug(slug: str):
        result = context.url_router.route(slug)
        if not result.is_redirect:
            abort(404)
        return redirect(result.location, code=302)

    @app.route(f'/{media_prefix}/<path:filename>', methods=['GET'])
    def media_file(filename: str):
        return send_from_directory(media_directory, filename)

    @app.route('/api/databases/<database_id>/rows', methods=['GET'])
    def database_rows(database_id: str):
        entry = context.registry.find_by_remote_id(database_id)
        if entry is None or entry.remote_type != RemoteType.DATABASE:
            abort(404)
        limit = request.args.get('limit', type=int)
        rows = context.row_store.list_rows(entry.remote_id_compact, limit=limit)
        return jsonify({
            'database_id': entry.remote_id_compact,
            'title': entry.remote_title,
            'rows': [row.to_dict() for row in rows],
        })

    @app.route('/api/sync-status', methods=['GET'])
    def sync_status():
        """Status for ?ids=a&ids=b (or ids=a,b), plus ?batch_id= progress.

        Without ids, every item of an active batch is reported.
        """
        ids = _parse_ids(request.args.getlist('ids'))
        batch = _load_batch(context, request.args.get('batch_id'))

        if not ids and batch is not None and batch.is_active:
            ids = list(batch.item_ids)

        statuses = context.status_resolver.statuses_for(ids)
        return jsonify({
            'pages': {remote_id: status.to_dict() for remote_id, status in statuses.items()},
            'batch': batch.to_dict() if batch is not None else None,
        })

    return app


def _parse_ids(values: List[str]) -> List[str]:
    ids: List[str] = []
    for value in values:
        for part in value.split(','):
            part = part.strip()
            if part and part not in ids:
                ids.append(part)
    return ids


def _load_batch(context: Any, batch_id: Optional[str]):
    if not batch_id:
        return None
    try:
        return context.batch_worker.get_progress(batch_id)
    except StorageError as e:
        logger.warning(f"Could not read batch {batch_id}: {e}")
        return None

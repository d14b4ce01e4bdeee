"""
Flask API for the audit engine
Visual diff, change history and the retention cron endpoint
"""

import asyncio
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from auditor import config
from auditor.logger import get_logger
from history.factory import create_stores
from pipeline.visual import build_visual_diff

logger = get_logger("api")

# Rough size of one history entry, for the "storage saved" estimate
ESTIMATED_ENTRY_BYTES = 100_000


def _int_arg(name, default):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def create_app(history_store=None, cron_secret=None):
    app = Flask(__name__)

    if history_store is None:
        history_store, _ = create_stores()
    secret = cron_secret if cron_secret is not None else config.CRON_SECRET

    # ============================================================
    # VISUAL DIFF - two most recent scans of a resource
    # ============================================================

    @app.route("/api/visual-diff")
    def visual_diff():
        resource_id = request.args.get("resourceId")
        if not resource_id:
            return jsonify({"error": "Missing resourceId"}), 400

        payload = asyncio.run(build_visual_diff(history_store, resource_id))
        if payload is None:
            return jsonify({"error": "No history found for this page"}), 404

        return jsonify(payload)

    # ============================================================
    # HISTORY - change timeline, newest first
    # ============================================================

    @app.route("/api/history")
    def history():
        resource_id = request.args.get("resourceId")
        if not resource_id:
            return jsonify({"error": "Missing resourceId"}), 400

        try:
            limit = _int_arg("limit", None)
        except ValueError:
            return jsonify({"error": "limit must be an integer"}), 400
        if limit is not None and limit < 1:
            return jsonify({"error": "limit must be a positive integer"}), 400

        entries = asyncio.run(history_store.history(resource_id, limit=limit))
        return jsonify({
            "resourceId": resource_id,
            "count": len(entries),
            "entries": [e.to_dict() for e in entries],
        })

    # ============================================================
    # CLEANUP - retention job, triggered by an external scheduler
    # ============================================================

    @app.route("/api/cron/cleanup", methods=["GET", "POST"])
    def cleanup():
        if secret and request.headers.get("X-Cron-Secret") != secret:
            return jsonify({"error": "Unauthorized"}), 401

        try:
            max_age_days = _int_arg("maxAgeDays", config.RETENTION_MAX_AGE_DAYS)
            keep_per_resource = _int_arg("keepPerResource", config.RETENTION_KEEP_PER_RESOURCE)
        except ValueError:
            return jsonify({"error": "maxAgeDays and keepPerResource must be integers"}), 400

        logger.info(f"[API] Cleanup requested: maxAgeDays={max_age_days}, keepPerResource={keep_per_resource}")

        try:
            result = asyncio.run(history_store.cleanup(max_age_days, keep_per_resource))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            logger.error(f"[API] Cleanup failed: {e}")
            return jsonify({"error": "Cleanup failed", "details": str(e)}), 500

        saved_mb = result.deleted * ESTIMATED_ENTRY_BYTES / (1024 * 1024)
        return jsonify({
            "success": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "config": {"maxAgeDays": max_age_days, "keepPerResource": keep_per_resource},
            "contentChanges": result.to_dict(),
            "estimatedStorageSaved": f"{saved_mb:.2f} MB",
        })

    return app

# decentscore/routes/asset_routes.py
import logging

from flask import Blueprint, jsonify, request

from decentscore.errors import AssetNotFoundError, RefreshInProgressError
from decentscore.models.refresh_lock import REFRESH_CLASSES
from decentscore.services import jobs, refresh_lock, store
from decentscore.services.refresh import refresh_history

logger = logging.getLogger(__name__)

bp = Blueprint("assets", __name__)  # prefijo /api/assets al registrar


@bp.get("/<chain_id>/<address>/scorecard")
def scorecard(chain_id: str, address: str):
    """
    Scorecard: último score + evidencia referenciada
    ---
    tags:
      - Assets
    parameters:
      - in: path
        name: chain_id
        required: true
        type: string
        description: CAIP-2 (eip155:1) o numérico (1)
        example: "eip155:1"
      - in: path
        name: address
        required: true
        type: string
        example: "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984"
    responses:
      200:
        description: OK (score null si el asset aún no se ingirió)
      400:
        description: Dirección o chain inválidos
    """
    try:
        asset = store.ensure_asset(chain_id, address)
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    return jsonify({"ok": True, **store.scorecard(asset)}), 200


@bp.post("/refresh")
def request_refresh():
    """
    Refresh: encolar (fire-and-forget)
    ---
    tags:
      - Assets
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - chain_id
            - address
          properties:
            chain_id:
              type: string
              example: "eip155:1"
            address:
              type: string
              example: "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984"
            refresh_class:
              type: string
              enum: [full, semiVolatile, volatile]
              default: full
    responses:
      202:
        description: Aceptado (job encolado o ya existente)
      400:
        description: Faltan campos / valores inválidos
      409:
        description: Refresh ya en curso
      500:
        description: Error al encolar
    """
    data = request.get_json(silent=True) or {}
    chain_id = str(data.get("chain_id") or "").strip()
    address = (data.get("address") or "").strip()
    refresh_class = (data.get("refresh_class") or "full").strip()

    if not chain_id or not address:
        return jsonify({"ok": False, "error": "Falta 'chain_id' o 'address'"}), 400
    if refresh_class not in REFRESH_CLASSES:
        return jsonify({"ok": False, "error": f"refresh_class inválido: {refresh_class}"}), 400

    try:
        job = jobs.enqueue_refresh(chain_id, address, refresh_class)
    except RefreshInProgressError as e:
        return jsonify({"ok": False, "error": str(e), "asset_id": e.asset_id}), 409
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except Exception as e:
        logger.exception("enqueue failed")
        return jsonify({"ok": False, "error": f"enqueue failed: {e}"}), 500

    return jsonify({
        "ok": True,
        "job_id": job.id,
        "asset_id": job.asset_id,
        "status": job.status,
    }), 202


@bp.get("/<int:asset_id>/queue-status")
def queue_status(asset_id: int):
    """
    Estado de cola por asset (locks, job, posición, profundidad)
    ---
    tags:
      - Assets
    parameters:
      - in: path
        name: asset_id
        required: true
        type: integer
    responses:
      200:
        description: OK
      404:
        description: Asset no encontrado
    """
    try:
        asset = store.get_asset(asset_id)
    except AssetNotFoundError as e:
        return jsonify({"ok": False, "error": str(e)}), 404

    return jsonify({
        "ok": True,
        "asset_id": asset.id,
        "locks": refresh_lock.lock_state(asset.id),
        "job": jobs.job_status_for_asset(asset.id),
        "queue": jobs.queue_stats(),
        "history": [h.to_dict() for h in refresh_history(asset.id, limit=5)],
    }), 200

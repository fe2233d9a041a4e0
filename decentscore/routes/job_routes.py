# decentscore/routes/job_routes.py
from flask import Blueprint, jsonify, request

from decentscore.services import jobs

bp = Blueprint("jobs", __name__)  # prefijo /api/jobs al registrar


@bp.get("")
def list_jobs():
    """
    Listar jobs recientes
    ---
    tags:
      - Jobs
    parameters:
      - in: query
        name: status
        type: string
        enum: [queued, running, done, error]
      - in: query
        name: limit
        type: integer
        default: 20
    responses:
      200:
        description: OK
    """
    status = request.args.get("status") or None
    limit = min(max(request.args.get("limit", 20, type=int), 1), 200)
    return jsonify({"ok": True, "jobs": [j.to_dict() for j in jobs.list_jobs(status, limit)]}), 200


@bp.get("/stats")
def stats():
    """
    Estadísticas de jobs y de la cola
    ---
    tags:
      - Jobs
    responses:
      200:
        description: OK
    """
    return jsonify({"ok": True, "jobs": jobs.job_stats(), "queue": jobs.queue_stats()}), 200


@bp.get("/<int:job_id>")
def get_job(job_id: int):
    """
    Estado de un job
    ---
    tags:
      - Jobs
    parameters:
      - in: path
        name: job_id
        required: true
        type: integer
    responses:
      200: {description: OK}
      404: {description: No encontrado}
    """
    job = jobs.get_job(job_id)
    if not job:
        return jsonify({"ok": False, "error": "job no encontrado"}), 404
    return jsonify({"ok": True, "job": job.to_dict()}), 200


@bp.post("/backfill")
def backfill():
    """
    Backfill: encolar refresh completo para varias direcciones
    ---
    tags:
      - Jobs
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
            - addresses
          properties:
            chain_id:
              type: string
              example: "eip155:1"
            addresses:
              type: array
              items:
                type: string
    responses:
      202:
        description: Encolados
      400:
        description: Faltan campos
    """
    data = request.get_json(silent=True) or {}
    chain_id = str(data.get("chain_id") or "").strip()
    addresses = data.get("addresses")
    if not chain_id or not isinstance(addresses, list) or not addresses:
        return jsonify({"ok": False, "error": "Falta 'chain_id' o 'addresses'"}), 400
    try:
        out = jobs.enqueue_backfill(chain_id, [str(a).strip() for a in addresses])
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    return jsonify({"ok": True, **out}), 202

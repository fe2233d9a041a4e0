# decentscore/routes/scoring_routes.py
from flask import Blueprint, current_app, jsonify, request

from decentscore.services.scoring_config import get_active_config, get_active_weights, set_active_weights

bp = Blueprint("scoring", __name__)  # prefijo /api/scoring


@bp.get("/weights")
def get_weights():
    """
    Pesos activos por categoría
    ---
    tags:
      - Scoring
    responses:
      200:
        description: OK
    """
    cfg = get_active_config()
    return jsonify({
        "ok": True,
        "weights": get_active_weights(),
        "source": "db" if cfg else "config",
        "calc_version": current_app.config.get("CALC_VERSION"),
    }), 200


@bp.put("/weights")
def put_weights():
    """
    Reemplazar pesos activos
    ---
    tags:
      - Scoring
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            weights:
              type: object
              example: {"ownership": 0.3, "controlRisk": 0.3, "liquidity": 0.15, "governance": 0.15, "chainLevel": 0.05, "codeAssurance": 0.05}
    responses:
      200:
        description: OK
      400:
        description: Pesos inválidos
    """
    data = request.get_json(silent=True) or {}
    weights = data.get("weights")
    if not isinstance(weights, dict):
        return jsonify({"ok": False, "error": "Falta 'weights'"}), 400
    try:
        cfg = set_active_weights(weights, data.get("version"))
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    return jsonify({"ok": True, "config": cfg.to_dict()}), 200

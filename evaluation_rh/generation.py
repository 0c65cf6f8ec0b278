# evaluation_rh/generation.py
"""
Point d'entrée HTTP de génération de rapport, appelable par un client externe.

Contrat : POST JSON {"feedbacks": [...], "credential": "..."} ; la clé de
l'appelant est obligatoire, celle du serveur n'est jamais utilisée. Réponse
{"report": "..."} en cas de succès, {"error": ..., "details": ..., "status": ...}
sinon. Les en-têtes CORS sont ajoutés à chaque réponse.
"""

from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request

from .services import ConfigurationError, NoInputError, UpstreamError
from .synthese import ClientSynthese

bp = Blueprint("generation", __name__, url_prefix="/functions/v1")

ERREUR_GENERATION = "Failed to generate report with OpenAI"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}


@bp.after_request
def ajouter_cors(response: Response) -> Response:
    response.headers.update(CORS_HEADERS)
    return response


@bp.route("/generate-report", methods=["POST", "OPTIONS"])
def generate_report() -> tuple[Response, int]:
    if request.method == "OPTIONS":
        return Response(status=200), 200

    body: dict[str, Any] = request.get_json(silent=True) or {}
    client = ClientSynthese.depuis_config(current_app.config)
    # Point d'entrée public : seule la clé fournie par l'appelant est utilisée.
    client.credential = body.get("credential") or body.get("openaiApiKey")

    try:
        report = client.generer_rapport(body.get("feedbacks") or [])
        return jsonify({"report": report}), 200
    except ConfigurationError:
        return jsonify({"error": "OpenAI API key is required"}), 400
    except NoInputError:
        return jsonify({"error": "No feedbacks provided"}), 400
    except UpstreamError as e:
        current_app.logger.error(f"Erreur du service de génération (status {e.status}): {e.details}")
        return jsonify({"error": ERREUR_GENERATION, "details": e.details or e.error, "status": e.status}), 500
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        current_app.logger.error(f"Requête de génération invalide: {e}", exc_info=True)
        return jsonify({"error": str(e) or "Internal server error"}), 500

# bovinsights/api/__init__.py
"""
Camada HTTP (Flask) sobre os serviços.

Cada requisição ganha o seu próprio cliente Supabase, vinculado ao token do
usuário enviado em ``Authorization: Bearer <token>``.
"""
import logging

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from bovinsights.core.db import get_supabase_client
from bovinsights.core.errors import BovinsightsError

logger = logging.getLogger(__name__)


def _bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_client():
    """Cliente Supabase da requisição atual."""
    factory = current_app.config.get("SUPABASE_CLIENT_FACTORY") or get_supabase_client
    return factory(_bearer_token(), request.headers.get("X-Refresh-Token"))


def json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(app):
    @app.errorhandler(BovinsightsError)
    def handle_domain_error(e):
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        logger.exception("Erro inesperado em %s %s", request.method, request.path)
        return jsonify({"error": "Erro interno do servidor"}), 500

# bovinsights/api/proxy.py
"""Repasse de geocodificação e imagens de satélite. Não exigem usuário autenticado."""
from flask import Blueprint, jsonify, request

from bovinsights.api import json_body
from bovinsights.core import geo

proxy = Blueprint('proxy', __name__)


@proxy.route('/geocode', methods=['GET'])
def geocode():
    return jsonify(geo.geocode(request.args.get('q', '')))


@proxy.route('/satellite', methods=['POST'])
def satellite():
    return jsonify(geo.latest_satellite_image(json_body().get('bbox')))

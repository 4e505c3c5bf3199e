# bovinsights/api/reports.py
from flask import Blueprint, jsonify, request, send_file

from bovinsights.api import get_client
from bovinsights.core import charts
from bovinsights.core import validation as v
from bovinsights.core.errors import NotFoundError, ValidationError
from bovinsights.services import despesas, pesagens, relatorios

reports = Blueprint('reports', __name__)


def _date_arg(name, label):
    if not request.args.get(name):
        return None
    return v.require_date(request.args, name, label)


@reports.route('/relatorios/rebanho-atual', methods=['GET'])
def current_herd_report():
    rows = relatorios.get_current_herd_report(get_client())
    return jsonify([row.to_dict() for row in rows])


@reports.route('/relatorios/pesagens-desempenho', methods=['GET'])
def weighing_performance_report():
    """Aceita ``data_inicio`` e ``data_fim`` (AAAA-MM-DD)."""
    rows = relatorios.get_weighing_performance_report(
        get_client(), _date_arg('data_inicio', 'Data inicial'), _date_arg('data_fim', 'Data final')
    )
    return jsonify([row.to_dict() for row in rows])


@reports.route('/relatorios/desempenho-lotes', methods=['GET'])
def lot_performance_report():
    rows = relatorios.get_lot_performance_report(get_client())
    return jsonify([row.to_dict() for row in rows])


# --- Gráficos (PNG) ---

@reports.route('/graficos/evolucao-peso', methods=['GET'])
def weight_evolution_chart():
    """
    Gráfico de peso de um animal (``animal_id``) ou de um lote (``lote_id``).

    Para o lote, a série é o peso médio: média de entrada e as pesagens agregadas.
    """
    animal_id, lote_id = request.args.get('animal_id'), request.args.get('lote_id')
    if animal_id:
        rows = pesagens.list_weighings_by_animal(get_client(), animal_id)
        titulo = 'Evolução de Peso'
    elif lote_id:
        rows = pesagens.lot_weight_series_by_id(get_client(), lote_id)
        titulo = 'Evolução do Peso Médio do Lote'
    else:
        raise ValidationError("Informe 'animal_id' ou 'lote_id'.")

    buf = charts.generate_weight_evolution_chart(rows, titulo)
    if buf is None:
        raise NotFoundError("Nenhuma pesagem para gerar o gráfico.")
    return send_file(buf, mimetype='image/png')


@reports.route('/graficos/despesas-por-categoria', methods=['GET'])
def expense_category_chart():
    stats = despesas.expense_statistics(
        get_client(), request.args.get('data_inicio'), request.args.get('data_fim')
    )
    buf = charts.generate_expense_category_chart(stats.total_por_categoria)
    if buf is None:
        raise NotFoundError("Nenhuma despesa para gerar o gráfico.")
    return send_file(buf, mimetype='image/png')

# bovinsights/api/records.py
from flask import Blueprint, jsonify, request

from bovinsights.api import get_client, json_body
from bovinsights.core import validation as v
from bovinsights.services import animais, despesas, lotes, pesagens, tarefas, vendas

records = Blueprint('records', __name__)


def _query_filters(*names):
    return {name: request.args.get(name) for name in names if request.args.get(name)}


# --- Lotes ---

@records.route('/lotes', methods=['GET'])
def list_lots():
    """Lista os lotes. Aceita ``q`` (busca no nome) e ``status``."""
    query, status = request.args.get('q'), request.args.get('status')
    if query or status:
        return jsonify(lotes.search_lots(get_client(), query, status))
    return jsonify(lotes.list_lots(get_client()))


@records.route('/lotes', methods=['POST'])
def create_lot():
    return jsonify(lotes.create_lot(get_client(), json_body())), 201


@records.route('/lotes/<lot_id>', methods=['GET'])
def get_lot(lot_id):
    return jsonify(lotes.get_lot_by_id(get_client(), lot_id))


@records.route('/lotes/<lot_id>', methods=['PUT', 'PATCH'])
def update_lot(lot_id):
    return jsonify(lotes.update_lot(get_client(), lot_id, json_body()))


@records.route('/lotes/<lot_id>', methods=['DELETE'])
def deactivate_lot(lot_id):
    """Lotes não são apagados, só inativados."""
    return jsonify(lotes.deactivate_lot(get_client(), lot_id))


@records.route('/lotes/<lot_id>/custo-total', methods=['GET'])
def lot_cost_total(lot_id):
    return jsonify({'lote_id': lot_id, 'custo_total': vendas.lot_cost_total(get_client(), lot_id)})


@records.route('/lotes/<lot_id>/resumo-financeiro', methods=['GET'])
def lot_financial_summary(lot_id):
    """Aceita ``preco_arroba`` (cotação atual) para avaliar o estoque."""
    preco = None
    if request.args.get('preco_arroba'):
        preco = v.require_positive(request.args, 'preco_arroba', 'Preço da arroba')
    return jsonify(vendas.lot_financial_summary(get_client(), lot_id, preco).to_dict())


@records.route('/lotes/<lot_id>/custo-cabeca-mes', methods=['GET'])
def lot_monthly_cost_per_head(lot_id):
    return jsonify([mes.to_dict() for mes in vendas.lot_monthly_cost_per_head(get_client(), lot_id)])


@records.route('/lotes/<lot_id>/pesagens', methods=['GET'])
def list_lot_weighings(lot_id):
    return jsonify(pesagens.list_weighings_by_lot(get_client(), lot_id))


@records.route('/lotes/<lot_id>/pesagens', methods=['POST'])
def create_lot_weighing(lot_id):
    data = json_body()
    result = pesagens.create_lot_weighing(
        get_client(),
        lot_id,
        total_weight=data.get('peso_total'),
        head_count=data.get('quantidade_animais'),
        weighing_date=data.get('data_pesagem'),
        notes=data.get('observacoes'),
    )
    return jsonify(result), 201


# --- Pesagens ---

@records.route('/pesagens', methods=['GET'])
def list_weighings():
    filters = _query_filters('lote_id', 'animal_id', 'data_inicio', 'data_fim')
    return jsonify(pesagens.list_weighings(get_client(), filters))


@records.route('/pesagens', methods=['POST'])
def create_weighing():
    return jsonify(pesagens.create_weighing(get_client(), json_body())), 201


@records.route('/pesagens/estatisticas', methods=['GET'])
def weighing_statistics():
    return jsonify(pesagens.weighing_statistics(get_client()).to_dict())


@records.route('/pesagens/<weighing_id>', methods=['GET'])
def get_weighing(weighing_id):
    return jsonify(pesagens.get_weighing_by_id(get_client(), weighing_id))


@records.route('/pesagens/<weighing_id>', methods=['PUT', 'PATCH'])
def update_weighing(weighing_id):
    return jsonify(pesagens.update_weighing(get_client(), weighing_id, json_body()))


@records.route('/pesagens/<weighing_id>', methods=['DELETE'])
def delete_weighing(weighing_id):
    pesagens.delete_weighing(get_client(), weighing_id)
    return '', 204


# --- Animais ---

@records.route('/animais', methods=['GET'])
def list_animals():
    """Aceita ``q`` (brinco ou nome), ``lote_id``, ``sexo``, ``raca``, ``tipo`` e ``status``."""
    query = request.args.get('q')
    filters = _query_filters('sexo', 'raca', 'tipo', 'status')
    if query or filters:
        filters.update(_query_filters('lote_id'))
        return jsonify(animais.search_animals(get_client(), query, filters))
    return jsonify(animais.list_animals(get_client(), request.args.get('lote_id')))


@records.route('/animais', methods=['POST'])
def create_animal():
    return jsonify(animais.create_animal(get_client(), json_body())), 201


@records.route('/animais/estatisticas', methods=['GET'])
def animal_statistics():
    return jsonify(animais.animal_statistics(get_client()).to_dict())


@records.route('/animais/<animal_id>', methods=['GET'])
def get_animal(animal_id):
    return jsonify(animais.get_animal_by_id(get_client(), animal_id))


@records.route('/animais/<animal_id>', methods=['PUT', 'PATCH'])
def update_animal(animal_id):
    return jsonify(animais.update_animal(get_client(), animal_id, json_body()))


@records.route('/animais/<animal_id>', methods=['DELETE'])
def delete_animal(animal_id):
    animais.delete_animal(get_client(), animal_id)
    return '', 204


@records.route('/animais/<animal_id>/transferir', methods=['POST'])
def transfer_animal(animal_id):
    return jsonify(animais.transfer_animal(get_client(), animal_id, json_body().get('lote_id')))


@records.route('/animais/<animal_id>/pesagens', methods=['GET'])
def list_animal_weighings(animal_id):
    return jsonify(pesagens.list_weighings_by_animal(get_client(), animal_id))


@records.route('/animais/<animal_id>/gmd', methods=['GET'])
def animal_gmd(animal_id):
    return jsonify(pesagens.animal_gmd_summary(get_client(), animal_id).to_dict())


# --- Despesas ---

@records.route('/despesas', methods=['GET'])
def list_expenses():
    filters = _query_filters('categoria', 'lote_id', 'data_inicio', 'data_fim', 'texto')
    return jsonify(despesas.list_expenses(get_client(), filters))


@records.route('/despesas', methods=['POST'])
def create_expense():
    return jsonify(despesas.create_expense(get_client(), json_body())), 201


@records.route('/despesas/por-mes', methods=['GET'])
def expenses_by_month():
    meses = despesas.expenses_by_month(get_client(), request.args.get('lote_id'))
    return jsonify([mes.to_dict() for mes in meses])


@records.route('/despesas/estatisticas', methods=['GET'])
def expense_statistics():
    stats = despesas.expense_statistics(
        get_client(), request.args.get('data_inicio'), request.args.get('data_fim')
    )
    return jsonify(stats.to_dict())


@records.route('/despesas/<expense_id>', methods=['GET'])
def get_expense(expense_id):
    return jsonify(despesas.get_expense_by_id(get_client(), expense_id))


@records.route('/despesas/<expense_id>', methods=['PUT', 'PATCH'])
def update_expense(expense_id):
    return jsonify(despesas.update_expense(get_client(), expense_id, json_body()))


@records.route('/despesas/<expense_id>', methods=['DELETE'])
def delete_expense(expense_id):
    despesas.delete_expense(get_client(), expense_id)
    return '', 204


# --- Vendas ---

@records.route('/vendas', methods=['GET'])
def list_sales():
    return jsonify(vendas.list_sales(get_client(), request.args.get('lote_id')))


@records.route('/vendas', methods=['POST'])
def create_sale():
    return jsonify(vendas.create_sale(get_client(), json_body())), 201


@records.route('/vendas/estatisticas', methods=['GET'])
def sale_statistics():
    return jsonify(vendas.sale_statistics(get_client()).to_dict())


@records.route('/vendas/<sale_id>', methods=['GET'])
def get_sale(sale_id):
    return jsonify(vendas.get_sale_by_id(get_client(), sale_id))


@records.route('/vendas/<sale_id>', methods=['PUT', 'PATCH'])
def update_sale(sale_id):
    return jsonify(vendas.update_sale(get_client(), sale_id, json_body()))


@records.route('/vendas/<sale_id>', methods=['DELETE'])
def delete_sale(sale_id):
    vendas.delete_sale(get_client(), sale_id)
    return '', 204


# --- Tarefas ---

@records.route('/tarefas', methods=['GET'])
def list_tasks():
    return jsonify(tarefas.list_tasks(get_client(), request.args.get('status')))


@records.route('/tarefas', methods=['POST'])
def create_task():
    return jsonify(tarefas.create_task(get_client(), json_body())), 201


@records.route('/tarefas/<task_id>', methods=['GET'])
def get_task(task_id):
    return jsonify(tarefas.get_task_by_id(get_client(), task_id))


@records.route('/tarefas/<task_id>', methods=['PUT', 'PATCH'])
def update_task(task_id):
    return jsonify(tarefas.update_task(get_client(), task_id, json_body()))


@records.route('/tarefas/<task_id>/concluir', methods=['POST'])
def complete_task(task_id):
    return jsonify(tarefas.complete_task(get_client(), task_id))


@records.route('/tarefas/<task_id>/reabrir', methods=['POST'])
def reopen_task(task_id):
    return jsonify(tarefas.reopen_task(get_client(), task_id))


@records.route('/tarefas/<task_id>', methods=['DELETE'])
def delete_task(task_id):
    tarefas.delete_task(get_client(), task_id)
    return '', 204

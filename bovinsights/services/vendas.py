# bovinsights/services/vendas.py
"""
Vendas de animais.

Arrobas, valor da venda, lucro bruto, margem e o indicador de objetivo são
derivados do peso, do preço da @ e do custo, e gravados junto com a venda.
A margem é o lucro sobre a receita; o objetivo é ``metrics.OBJETIVO_MARGEM``
tanto na criação quanto na atualização.
"""
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from bovinsights.core import db, metrics
from bovinsights.core import validation as v
from bovinsights.core.errors import NotFoundError, UpstreamError
from bovinsights.core.models import CustoCabecaMes, EstatisticasVendas, ResumoFinanceiroLote
from bovinsights.services import despesas, lotes
from bovinsights.utils.formatting import parse_date

logger = logging.getLogger(__name__)

TABLE = "vendas"
MODOS_PAGAMENTO = ("a_vista", "prazo", "permuta")
STATUS_PAGAMENTO = ("pendente", "pago", "parcial")
PRICING_FIELDS = ("peso_total_kg", "preco_arroba_venda", "custo_total")

EDITABLE_FIELDS = {
    "lote_id", "data_venda", "quantidade_cabecas", "peso_total_kg", "preco_arroba_venda",
    "custo_total", "comprador", "observacoes", "modo_pagamento", "data_vencimento",
    "valor_permuta", "descricao_permuta", "status_pagamento",
    "post_mortem_data", "post_mortem_frigorifico", "post_mortem_rendimento_carcaca",
}
REQUIRED = ("data_venda", "quantidade_cabecas", "peso_total_kg", "preco_arroba_venda", "custo_total")
RULES = {
    "data_venda": v.rule(v.require_date, "data_venda", "Data da venda"),
    "quantidade_cabecas": v.rule(v.require_positive, "quantidade_cabecas", "Quantidade de cabeças"),
    "peso_total_kg": v.rule(v.require_positive, "peso_total_kg", "Peso total (kg)"),
    "preco_arroba_venda": v.rule(v.require_positive, "preco_arroba_venda", "Preço da arroba"),
    "custo_total": v.rule(v.require_non_negative, "custo_total", "Custo total"),
    "modo_pagamento": v.rule(v.require_choice, "modo_pagamento", "Modo de pagamento", choices=MODOS_PAGAMENTO),
    "status_pagamento": v.rule(v.require_choice, "status_pagamento", "Status do pagamento", choices=STATUS_PAGAMENTO),
    "data_vencimento": v.rule(v.require_date, "data_vencimento", "Data de vencimento"),
}


def derive_sale_fields(peso_total_kg: float, preco_arroba_venda: float, custo_total: float) -> Dict[str, Any]:
    return metrics.sale_figures(float(peso_total_kg), float(preco_arroba_venda), float(custo_total))


def list_sales(supabase_client: Client, lot_id: Optional[str] = None) -> List[Dict[str, Any]]:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("usuario_id", user_id)
    if lot_id:
        query = query.eq("lote_id", lot_id)
    return db.fetch_rows(query.order("data_venda", desc=True), "listar vendas")


def get_sale_by_id(supabase_client: Client, sale_id: str) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("id", sale_id).eq("usuario_id", user_id)
    return db.fetch_one(query, "buscar venda", "Venda não encontrada")


def create_sale(supabase_client: Client, data: Dict[str, Any]) -> Dict[str, Any]:
    """Registra a venda e, se houver lote vinculado, marca o lote como vendido."""
    user_id = db.get_current_user_id(supabase_client)
    v.validate_fields(data, RULES, REQUIRED)

    record = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    record["data_venda"] = parse_date(record["data_venda"]).isoformat()
    record["modo_pagamento"] = record.get("modo_pagamento") or "a_vista"
    record["status_pagamento"] = "pago" if record["modo_pagamento"] == "a_vista" else "pendente"
    record["lote_id"] = record.get("lote_id") or None
    record.update(derive_sale_fields(record["peso_total_kg"], record["preco_arroba_venda"], record["custo_total"]))
    record["usuario_id"] = user_id

    venda = db.write_one(supabase_client.table(TABLE).insert(record), "criar venda")
    logger.info(
        "Venda %s registrada: margem %s%% (objetivo %s)",
        venda.get("id"), record["margem_percentual"], "atingido" if record["atingiu_objetivo"] else "não atingido",
    )

    if venda.get("lote_id"):
        try:
            db.execute(
                supabase_client.table(lotes.TABLE).update({"status": "vendido"})
                .eq("id", venda["lote_id"]).eq("usuario_id", user_id),
                "marcar lote como vendido",
            )
        except UpstreamError:
            # A venda já foi gravada; o status do lote pode ser corrigido pela edição do lote
            logger.warning("Lote %s não foi marcado como vendido", venda["lote_id"])

    return venda


def update_sale(supabase_client: Client, sale_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Atualiza a venda, recalculando os derivados quando peso, preço ou custo mudam."""
    user_id = db.get_current_user_id(supabase_client)
    changes = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    v.validate_fields(changes, RULES, REQUIRED, partial_update=True)

    if any(field in changes for field in PRICING_FIELDS):
        current = get_sale_by_id(supabase_client, sale_id)
        pricing = {field: changes.get(field, current.get(field)) or 0 for field in PRICING_FIELDS}
        changes.update(derive_sale_fields(**pricing))

    query = supabase_client.table(TABLE).update(changes).eq("id", sale_id).eq("usuario_id", user_id)
    return db.write_one(query, "atualizar venda", "Venda não encontrada")


def delete_sale(supabase_client: Client, sale_id: str) -> None:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).delete().eq("id", sale_id).eq("usuario_id", user_id)
    if not db.fetch_rows(query, "excluir venda"):
        raise NotFoundError("Venda não encontrada")
    logger.info("Venda %s excluída", sale_id)


def sale_statistics(supabase_client: Client) -> EstatisticasVendas:
    vendas = list_sales(supabase_client)
    if not vendas:
        return EstatisticasVendas()

    total = len(vendas)
    margens = [venda["margem_percentual"] for venda in vendas if venda.get("margem_percentual") is not None]
    atingiram = sum(1 for venda in vendas if venda.get("atingiu_objetivo"))
    maior_venda = max(vendas, key=lambda venda: venda.get("valor_total_venda") or 0)

    return EstatisticasVendas(
        total_vendas=total,
        valor_total_vendido=round(sum(venda.get("valor_total_venda") or 0 for venda in vendas), 2),
        lucro_total=round(sum(venda.get("lucro_bruto") or 0 for venda in vendas), 2),
        margem_media=round(sum(margens) / len(margens), 2) if margens else None,
        vendas_atingiram_objetivo=atingiram,
        percentual_objetivo=round(atingiram / total * 100),
        maior_venda=maior_venda,
    )


# --- Resultado por lote ---

def _lot_expenses(supabase_client: Client, lot_id: str) -> List[Dict[str, Any]]:
    user_id = db.get_current_user_id(supabase_client)
    query = (
        supabase_client.table(despesas.TABLE)
        .select("valor,data_despesa")
        .eq("usuario_id", user_id)
        .eq("lote_id", lot_id)
    )
    return db.fetch_rows(query, "buscar despesas do lote")


def lot_cost_total(supabase_client: Client, lot_id: str) -> float:
    """Custo total do lote: aquisição mais as despesas vinculadas a ele."""
    lote = lotes.get_lot_by_id(supabase_client, lot_id)
    custeios = sum(d["valor"] for d in _lot_expenses(supabase_client, lot_id))
    return round((lote.get("custo_total") or 0) + custeios, 2)


def lot_financial_summary(
    supabase_client: Client,
    lot_id: str,
    preco_arroba_atual: Optional[float] = None,
) -> ResumoFinanceiroLote:
    """
    Investimento, receita e resultado de um lote.

    O total investido é o mesmo de ``lot_cost_total``. O estoque só é avaliado
    com uma cotação da @ e enquanto o lote não foi vendido; o peso considerado
    é o peso médio de referência do lote vezes a quantidade de animais.
    """
    lote = lotes.get_lot_by_id(supabase_client, lot_id)
    investimento_inicial = lote.get("custo_total") or 0
    custeios = sum(d["valor"] for d in _lot_expenses(supabase_client, lot_id))
    total_investido = investimento_inicial + custeios
    receita_vendas = sum(venda.get("valor_total_venda") or 0 for venda in list_sales(supabase_client, lot_id))

    total_animais = lote["total_animais"]
    total_arrobas = metrics.kg_to_arrobas(lote["peso_medio"] * total_animais)
    valor_estoque = None
    if preco_arroba_atual and lote.get("status") != "vendido":
        valor_estoque = round(total_arrobas * float(preco_arroba_atual), 2)

    receita_total = receita_vendas + (valor_estoque or 0)
    lucro = receita_total - total_investido
    margem = metrics.margin_percent(lucro, receita_total)
    custo_por_cabeca = metrics.per_unit(total_investido, total_animais)
    custo_por_arroba = metrics.per_unit(total_investido, total_arrobas)

    return ResumoFinanceiroLote(
        lote_id=lot_id,
        lote_nome=lote.get("nome"),
        investimento_inicial=round(investimento_inicial, 2),
        custeios=round(custeios, 2),
        total_investido=round(total_investido, 2),
        receita_vendas=round(receita_vendas, 2),
        valor_estoque_atual=valor_estoque,
        lucro_ou_prejuizo=round(lucro, 2),
        margem_percentual=round(margem, 1) if margem is not None else None,
        total_animais=total_animais,
        total_arrobas=round(total_arrobas, 2),
        custo_por_cabeca=round(custo_por_cabeca, 2) if custo_por_cabeca is not None else None,
        custo_por_arroba=round(custo_por_arroba, 2) if custo_por_arroba is not None else None,
    )


def lot_monthly_cost_per_head(supabase_client: Client, lot_id: str) -> List[CustoCabecaMes]:
    """Despesas do lote por mês, rateadas pela quantidade atual de animais. Mês mais recente primeiro."""
    lote = lotes.get_lot_by_id(supabase_client, lot_id)
    meses = despesas.expense_totals_by_month(_lot_expenses(supabase_client, lot_id))
    result = []
    for mes in meses:
        custo_cabeca = metrics.per_unit(mes.total, lote["total_animais"])
        result.append(CustoCabecaMes(
            mes=mes.mes,
            custo_total=mes.total,
            custo_cabeca=round(custo_cabeca, 2) if custo_cabeca is not None else None,
        ))
    return result

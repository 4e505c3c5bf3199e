# bovinsights/services/despesas.py
import datetime
import logging
from typing import Any, Dict, List, Optional

import pandas as pd
from supabase import Client

from bovinsights.core import db
from bovinsights.core import validation as v
from bovinsights.core.errors import NotFoundError, ValidationError
from bovinsights.core.models import CATEGORIAS_DESPESA, EstatisticasFinanceiras, GastosMes
from bovinsights.utils.formatting import parse_date

logger = logging.getLogger(__name__)

TABLE = "despesas"
SEM_LOTE = "sem_lote"

EDITABLE_FIELDS = {"lote_id", "categoria", "descricao", "valor", "data_despesa", "observacoes"}
REQUIRED = ("categoria", "descricao", "valor", "data_despesa")
RULES = {
    "categoria": v.rule(v.require_choice, "categoria", "Categoria", choices=CATEGORIAS_DESPESA),
    "descricao": v.rule(v.require_text, "descricao", "Descrição"),
    "valor": v.rule(v.require_positive, "valor", "Valor"),
    "data_despesa": v.rule(v.require_date, "data_despesa", "Data da despesa"),
}


# --- Agregações (pandas) ---

def expense_totals_by_category(rows: List[Dict[str, Any]]) -> Dict[str, float]:
    """Total gasto por categoria. Categorias sem despesas aparecem com zero."""
    totals = {categoria: 0.0 for categoria in CATEGORIAS_DESPESA}
    df = pd.DataFrame(rows, columns=["categoria", "valor"])
    if df.empty:
        return totals

    for categoria, total in df.groupby("categoria")["valor"].sum().items():
        totals[categoria] = round(float(total), 2)
    return totals


def expense_totals_by_month(rows: List[Dict[str, Any]]) -> List[GastosMes]:
    """Despesas agrupadas por mês ('YYYY-MM'), mês mais recente primeiro."""
    df = pd.DataFrame(rows, columns=["data_despesa", "valor"])
    if df.empty:
        return []

    df["mes"] = pd.to_datetime(df["data_despesa"].str[:10]).dt.strftime("%Y-%m")
    months = []
    for mes, group in df.groupby("mes"):
        months.append(GastosMes(
            mes=mes,
            total=round(float(group["valor"].sum()), 2),
            despesas=[rows[i] for i in group.index],
        ))
    return sorted(months, key=lambda m: m.mes, reverse=True)


def _statistics_from_rows(rows: List[Dict[str, Any]], today: datetime.date) -> EstatisticasFinanceiras:
    por_categoria = expense_totals_by_category(rows)
    # O total é a soma das categorias, para os dois números sempre baterem
    total_gasto = round(sum(por_categoria.values()), 2)

    inicio_mes = today.replace(day=1)
    despesas_mes_atual = sum(r["valor"] for r in rows if parse_date(r["data_despesa"]) >= inicio_mes)

    maior_categoria = None
    for categoria, valor in por_categoria.items():
        if valor > 0 and (maior_categoria is None or valor > maior_categoria["valor"]):
            maior_categoria = {"categoria": categoria, "valor": valor}

    com_lote = [r for r in rows if r.get("lote_id")]
    lotes_unicos = {r["lote_id"] for r in com_lote}
    custo_medio_por_lote = sum(r["valor"] for r in com_lote) / len(lotes_unicos) if lotes_unicos else 0.0

    return EstatisticasFinanceiras(
        total_gasto=total_gasto,
        despesas_mes_atual=round(despesas_mes_atual, 2),
        custo_medio_por_lote=round(custo_medio_por_lote, 2),
        maior_categoria=maior_categoria,
        total_por_categoria=por_categoria,
    )


# --- CRUD ---

def list_expenses(supabase_client: Client, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """
    Lista despesas do usuário, mais recentes primeiro.

    Filtros: ``categoria``, ``lote_id`` (ou ``"sem_lote"``), ``data_inicio``,
    ``data_fim`` e ``texto`` (busca na descrição).
    """
    filters = filters or {}
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("usuario_id", user_id)

    if filters.get("texto"):
        query = query.ilike("descricao", f"%{filters['texto']}%")
    if filters.get("categoria"):
        if filters["categoria"] not in CATEGORIAS_DESPESA:
            raise ValidationError(f"Categoria de despesa inválida: {filters['categoria']}")
        query = query.eq("categoria", filters["categoria"])
    if filters.get("lote_id") == SEM_LOTE:
        query = query.is_("lote_id", "null")
    elif filters.get("lote_id"):
        query = query.eq("lote_id", filters["lote_id"])
    if filters.get("data_inicio"):
        query = query.gte("data_despesa", v.require_date(filters, "data_inicio", "Data inicial"))
    if filters.get("data_fim"):
        query = query.lte("data_despesa", v.require_date(filters, "data_fim", "Data final"))

    return db.fetch_rows(query.order("data_despesa", desc=True), "listar despesas")


def get_expense_by_id(supabase_client: Client, expense_id: str) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("id", expense_id).eq("usuario_id", user_id)
    return db.fetch_one(query, "buscar despesa", "Despesa não encontrada")


def create_expense(supabase_client: Client, data: Dict[str, Any]) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    v.validate_fields(data, RULES, REQUIRED)

    record = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    record["descricao"] = record["descricao"].strip()
    record["data_despesa"] = parse_date(record["data_despesa"]).isoformat()
    record["lote_id"] = record.get("lote_id") or None
    record["usuario_id"] = user_id

    despesa = db.write_one(supabase_client.table(TABLE).insert(record), "criar despesa")
    logger.info("Despesa registrada: %s (%s, R$ %.2f)", despesa.get("id"), record["categoria"], float(record["valor"]))
    return despesa


def update_expense(supabase_client: Client, expense_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    changes = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    v.validate_fields(changes, RULES, REQUIRED, partial_update=True)

    query = supabase_client.table(TABLE).update(changes).eq("id", expense_id).eq("usuario_id", user_id)
    return db.write_one(query, "atualizar despesa", "Despesa não encontrada")


def delete_expense(supabase_client: Client, expense_id: str) -> None:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).delete().eq("id", expense_id).eq("usuario_id", user_id)
    if not db.fetch_rows(query, "excluir despesa"):
        raise NotFoundError("Despesa não encontrada")
    logger.info("Despesa %s excluída", expense_id)


def expenses_by_month(supabase_client: Client, lot_id: Optional[str] = None) -> List[GastosMes]:
    filters = {"lote_id": lot_id} if lot_id else {}
    return expense_totals_by_month(list_expenses(supabase_client, filters))


def expense_statistics(
    supabase_client: Client,
    data_inicio: Optional[str] = None,
    data_fim: Optional[str] = None,
    today: Optional[datetime.date] = None,
) -> EstatisticasFinanceiras:
    """Indicadores financeiros das despesas no período (todo o histórico por padrão)."""
    rows = list_expenses(supabase_client, {"data_inicio": data_inicio, "data_fim": data_fim})
    return _statistics_from_rows(rows, today or datetime.date.today())
